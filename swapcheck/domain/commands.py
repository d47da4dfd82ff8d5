"""
swapcheck.domain.commands — Typed administrative command payloads (Pydantic).

Every command sent through ``Database.run_command`` is one of the request
models below, and every reply is validated against its reply model. This
gives us:
  • Explicit required / optional fields per command kind
  • Shape errors surfaced at the call site instead of deep in an assertion
  • The command name always serialised as the first key (the server
    dispatches on it)
"""

from typing import Any, ClassVar, Dict, List, Optional

from bson import SON
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class CommandRequest(BaseModel):
    """Base request; subclasses declare the command-name field first."""
    command_name: ClassVar[str] = ""

    class Config:
        populate_by_name = True

    def to_son(self) -> SON:
        body = self.model_dump(by_alias=True, exclude_none=True)
        son = SON([(self.command_name, body.pop(self.command_name))])
        son.update(body)
        return son


class CommandReply(BaseModel):
    ok: float = 1.0

    class Config:
        populate_by_name = True
        extra = "allow"


# ---------------------------------------------------------------------------
# count
# ---------------------------------------------------------------------------

class CountCommand(CommandRequest):
    command_name: ClassVar[str] = "count"
    count: str
    query: Optional[Dict[str, Any]] = None


class CountReply(CommandReply):
    n: int


# ---------------------------------------------------------------------------
# aggregate / find (cursor replies)
# ---------------------------------------------------------------------------

class AggregateCommand(CommandRequest):
    command_name: ClassVar[str] = "aggregate"
    aggregate: str
    pipeline: List[Dict[str, Any]]
    cursor: Dict[str, Any] = Field(default_factory=dict)


class FindCommand(CommandRequest):
    command_name: ClassVar[str] = "find"
    find: str
    filter: Dict[str, Any] = Field(default_factory=dict)
    limit: Optional[int] = None


class CursorBatch(BaseModel):
    id: int = 0
    ns: str = ""
    first_batch: List[Dict[str, Any]] = Field(default_factory=list, alias="firstBatch")

    class Config:
        populate_by_name = True


class CursorReply(CommandReply):
    cursor: CursorBatch


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------

class DeleteStatement(BaseModel):
    q: Dict[str, Any]
    limit: int = 1


class DeleteCommand(CommandRequest):
    command_name: ClassVar[str] = "delete"
    delete: str
    deletes: List[DeleteStatement]


class DeleteReply(CommandReply):
    n: int


# ---------------------------------------------------------------------------
# findAndModify
# ---------------------------------------------------------------------------

class FindAndModifyCommand(CommandRequest):
    command_name: ClassVar[str] = "findAndModify"
    find_and_modify: str = Field(alias="findAndModify")
    query: Dict[str, Any]
    remove: bool = False
    update: Optional[Dict[str, Any]] = None
    new: Optional[bool] = None


class FindAndModifyReply(CommandReply):
    value: Optional[Dict[str, Any]] = None
    last_error_object: Optional[Dict[str, Any]] = Field(default=None, alias="lastErrorObject")


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

class GetLogCommand(CommandRequest):
    command_name: ClassVar[str] = "getLog"
    get_log: str = Field(alias="getLog")


class GetLogReply(CommandReply):
    log: List[str] = Field(default_factory=list)
    total_lines_written: Optional[int] = Field(default=None, alias="totalLinesWritten")


class BuildInfoCommand(CommandRequest):
    command_name: ClassVar[str] = "buildInfo"
    build_info: int = Field(default=1, alias="buildInfo")


class BuildInfoReply(CommandReply):
    version: str
