"""
MongoDB access layer for swapcheck.
Wraps one pymongo client per invocation and exposes the typed command
channel plus the topology queries the oracle needs.
"""

import logging
from typing import Iterable, List, Optional, Type, TypeVar

from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.database import Database as MongoDatabase
from pymongo.errors import OperationFailure

from swapcheck import config
from swapcheck.domain.commands import CommandReply, CommandRequest
from swapcheck.errors import CommandFailed

logger = logging.getLogger(__name__)

ReplyT = TypeVar("ReplyT", bound=CommandReply)


class Database:
    """
    Thin wrapper around a pymongo ``Database``.

    ``db`` is the raw pymongo database; everything the protocol does to
    collections goes through it directly.
    """

    def __init__(self, db: MongoDatabase, client: Optional[MongoClient] = None) -> None:
        self.db = db
        self._client = client

    def __getitem__(self, name: str):
        return self.db[name]

    @property
    def name(self) -> str:
        return self.db.name

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Typed command channel
    # ------------------------------------------------------------------

    def run_command(self, request: CommandRequest, reply_model: Type[ReplyT]) -> ReplyT:
        """Send ``request`` and validate the reply against ``reply_model``."""
        son = request.to_son()
        logger.debug("command %s: %s", request.command_name, dict(son))
        try:
            raw = self.db.command(son)
        except OperationFailure as exc:
            raise CommandFailed(f"{request.command_name} failed: {exc}") from exc

        try:
            reply = reply_model.model_validate(raw)
        except ValidationError as exc:
            raise CommandFailed(
                f"{request.command_name} replied with an unexpected shape: {exc}"
            ) from exc
        if reply.ok != 1:
            raise CommandFailed(f"{request.command_name} replied ok={reply.ok}")
        return reply

    # ------------------------------------------------------------------
    # Topology
    # ------------------------------------------------------------------

    def collection_names(self, ignored: Iterable[str] = ()) -> List[str]:
        """Collection names, minus ``system.*`` and the ``ignored`` ones."""
        skip = set(ignored)
        return sorted(
            name for name in self.db.list_collection_names()
            if name not in skip and not name.startswith("system.")
        )

    def index_count(self, collection: str) -> int:
        return len(list(self.db[collection].list_indexes()))

    def ensure_collection(self, name: str) -> bool:
        """Create ``name`` if missing. Returns True when it was created."""
        if name in self.db.list_collection_names():
            return False
        self.db.create_collection(name)
        logger.info("Created collection %s", name)
        return True


def get_db(url: Optional[str] = None, database: Optional[str] = None) -> Database:
    """Open a client for one invocation. Caller must close it."""
    client = MongoClient(
        url or config.MONGODB_URL,
        serverSelectionTimeoutMS=config.SERVER_SELECTION_TIMEOUT_MS,
    )
    return Database(client[database or config.DATABASE_NAME], client=client)
