"""
swapcheck.domain.models — Canonical dataclass / Pydantic models.

Import pattern::

    from swapcheck.domain.models import SentinelMarker, Checkpoints, LedgerEntry
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from swapcheck import config
from swapcheck.core.constants import (
    B_VALUE_AFTER_A, B_VALUE_AFTER_B, COLLECTION_A, COLLECTION_X,
    EXPECTED_INDEX_COUNT, FIELD_RUN_B, FIELD_VERIFY, LEDGER_DOC_ID,
)
from swapcheck.domain.enums import Checkpoint, PhaseState


# ---------------------------------------------------------------------------
# Sentinel markers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SentinelMarker:
    """
    A boolean flag stored as an ordinary document.

    The marker document is the one in ``collection`` that has ``field``;
    its value is the boolean held in that field.
    """
    name:       str
    collection: str
    field:      str

    @property
    def predicate(self) -> Dict[str, Any]:
        """Filter matching the marker document whatever its value."""
        return {self.field: {"$exists": True}}

    @property
    def set_predicate(self) -> Dict[str, Any]:
        """Filter matching the marker document only while it is set."""
        return {self.field: True}


def default_markers(state_collection: str) -> Dict[str, SentinelMarker]:
    """The three markers of the protocol, keyed by name."""
    return {
        "phase_a_done": SentinelMarker("phase_a_done", COLLECTION_A, FIELD_RUN_B),
        "enter_b":      SentinelMarker("enter_b", state_collection, FIELD_RUN_B),
        "verify":       SentinelMarker("verify", COLLECTION_X, FIELD_VERIFY),
    }


# ---------------------------------------------------------------------------
# Checkpoints (expected values per phase boundary)
# ---------------------------------------------------------------------------

class Checkpoints(BaseModel):
    """Expected counts and values the oracle compares against."""
    index_count:         int = EXPECTED_INDEX_COUNT
    b_value_after_a:     int = B_VALUE_AFTER_A
    b_value_after_b:     int = B_VALUE_AFTER_B
    collections_after_a: int = 2
    collections_after_b: int = 4

    @classmethod
    def from_config(cls) -> "Checkpoints":
        return cls(
            collections_after_a=config.EXPECTED_COLLECTIONS_AFTER_A,
            collections_after_b=config.EXPECTED_COLLECTIONS_AFTER_B,
        )

    def b_value(self, checkpoint: Checkpoint) -> int:
        if checkpoint is Checkpoint.PHASE_A:
            return self.b_value_after_a
        return self.b_value_after_b

    def collections(self, checkpoint: Checkpoint) -> int:
        if checkpoint is Checkpoint.PHASE_A:
            return self.collections_after_a
        return self.collections_after_b


# ---------------------------------------------------------------------------
# Phase ledger record (stored in the state collection)
# ---------------------------------------------------------------------------

class LedgerEntry(BaseModel):
    """
    Single authoritative record of protocol progress.

    ``state`` is the last committed state; ``intent`` is set while a phase
    body runs and cleared on commit, so a leftover intent means a crash.
    ``version`` increments on every write and guards compare-and-set.
    """
    id:         str                  = Field(default=LEDGER_DOC_ID, alias="_id")
    state:      PhaseState           = PhaseState.AWAITING_A
    intent:     Optional[PhaseState] = None
    version:    int                  = 0
    updated_at: datetime             = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        populate_by_name = True

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "LedgerEntry":
        return cls.model_validate(doc)


# ---------------------------------------------------------------------------
# Oracle results
# ---------------------------------------------------------------------------

@dataclass
class CheckResult:
    name:     str
    expected: Any
    actual:   Any

    @property
    def passed(self) -> bool:
        return self.expected == self.actual

    def __str__(self) -> str:
        return f"{self.name}: expected {self.expected!r}, got {self.actual!r}"
