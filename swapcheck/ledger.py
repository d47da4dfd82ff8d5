"""
Phase ledger: one authoritative record of protocol progress.

Transitions are two compare-and-set writes on the same document:

  begin   — record the intent to run the phase gated by ``state``
  commit  — clear the intent and store the next state

Both only apply if the record still carries the version this run read.
A run that crashes between the two leaves the intent behind, which the
next run reports instead of silently skipping or repeating the phase.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from swapcheck import config
from swapcheck.core.constants import LEDGER_DOC_ID
from swapcheck.domain.enums import PhaseState
from swapcheck.domain.models import LedgerEntry
from swapcheck.errors import PhaseConflict

logger = logging.getLogger(__name__)


class PhaseLedger:
    def __init__(self, db, collection: Optional[str] = None) -> None:
        self._col = db[collection or config.STATE_COLLECTION]

    def load(self) -> Optional[LedgerEntry]:
        doc = self._col.find_one({"_id": LEDGER_DOC_ID})
        return LedgerEntry.from_doc(doc) if doc else None

    def begin(self, state: PhaseState, current: Optional[LedgerEntry]) -> LedgerEntry:
        """Mark the phase gated by ``state`` as in progress."""
        version = current.version if current else 0
        return self._compare_and_set(
            {"_id": LEDGER_DOC_ID, "version": version, "intent": None},
            {"state": state.value, "intent": state.value},
            upsert=current is None,
        )

    def commit(self, entry: LedgerEntry, next_state: PhaseState) -> LedgerEntry:
        """Close the phase opened by ``begin`` and advance to ``next_state``."""
        if entry.intent is None:
            raise PhaseConflict("commit without a pending intent")
        committed = self._compare_and_set(
            {"_id": LEDGER_DOC_ID, "version": entry.version, "intent": entry.intent.value},
            {"state": next_state.value, "intent": None},
        )
        logger.info("Ledger committed %s -> %s", entry.intent.value, next_state.value)
        return committed

    def _compare_and_set(self, expected: dict, fields: dict, upsert: bool = False) -> LedgerEntry:
        fields = dict(fields, updated_at=datetime.now(timezone.utc))
        try:
            doc = self._col.find_one_and_update(
                expected,
                {"$set": fields, "$inc": {"version": 1}},
                upsert=upsert,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            # Upsert raced a record created by another invocation.
            raise PhaseConflict("phase ledger was created by another run") from exc
        if doc is None:
            raise PhaseConflict(
                f"phase ledger changed since it was read (expected {expected})"
            )
        return LedgerEntry.from_doc(doc)
