"""
Phase bodies.

Phase A (old backend) builds the baseline: records and indexes in ``a``
and ``b``, plus one pass over the administrative command surface against
``a``. Phase B (new backend) adds ``c`` and ``x`` and moves ``b`` to its
second value. Every step is checked immediately; the first mismatch
aborts the run.
"""

from __future__ import annotations

import logging
from typing import Any

from swapcheck.core.constants import (
    B_VALUE_AFTER_A, B_VALUE_AFTER_B, B_VALUE_INITIAL, COLLECTION_A,
    COLLECTION_B, COLLECTION_C, COLLECTION_X, FIELD_DELETE, RECORD_FIELD,
    RECORD_ID,
)
from swapcheck.domain.commands import (
    AggregateCommand, CountCommand, CountReply, CursorReply, DeleteCommand,
    DeleteReply, DeleteStatement, FindAndModifyCommand, FindAndModifyReply,
    FindCommand,
)
from swapcheck.domain.models import CheckResult, Checkpoints
from swapcheck.errors import InvariantViolation
from swapcheck.indexes import ensure_indexes

logger = logging.getLogger(__name__)


def expect(name: str, expected: Any, actual: Any) -> None:
    result = CheckResult(name, expected, actual)
    if not result.passed:
        raise InvariantViolation("check failed", [result])


def _ensure_record(db, collection: str) -> None:
    """Insert ``{_id: 1, a: 1}`` unless the record already exists."""
    col = db[collection]
    if col.find_one({"_id": RECORD_ID}) is not None:
        logger.warning("Record %s in %s already exists, not inserting", RECORD_ID, collection)
        return
    col.insert_one({"_id": RECORD_ID, RECORD_FIELD: B_VALUE_INITIAL})


def _move_value(db, collection: str, old: int, new: int) -> None:
    """Update-by-filter ``a: old -> new`` and read the new value back."""
    db[collection].update_one({RECORD_FIELD: old}, {"$set": {RECORD_FIELD: new}})
    doc = db[collection].find_one({RECORD_FIELD: new})
    expect(f"{collection}.{RECORD_FIELD} after update", new, doc.get(RECORD_FIELD) if doc else None)


def _create_indexed(db, collection: str, checkpoints: Checkpoints) -> None:
    ensure_indexes(db, collection)
    expect(f"indexes on {collection}", checkpoints.index_count, db.index_count(collection))


# ---------------------------------------------------------------------------
# Phase A
# ---------------------------------------------------------------------------

def run_phase_a(db, checkpoints: Checkpoints, ignored=()) -> None:
    logger.info("Running phase A")

    _ensure_record(db, COLLECTION_A)
    _create_indexed(db, COLLECTION_A, checkpoints)
    _move_value(db, COLLECTION_A, B_VALUE_INITIAL, B_VALUE_AFTER_A)

    _ensure_record(db, COLLECTION_B)
    _create_indexed(db, COLLECTION_B, checkpoints)
    _move_value(db, COLLECTION_B, B_VALUE_INITIAL, B_VALUE_AFTER_A)

    expect("collection count", checkpoints.collections_after_a, len(db.collection_names(ignored)))

    exercise_command_surface(db)


def exercise_command_surface(db) -> None:
    """count, aggregate, find, delete and findAndModify against ``a``."""
    for name in (COLLECTION_A, COLLECTION_B):
        reply = db.run_command(CountCommand(count=name), CountReply)
        expect(f"count {name}", 1, reply.n)

    reply = db.run_command(
        AggregateCommand(
            aggregate=COLLECTION_A,
            pipeline=[{"$project": {RECORD_FIELD: 1}}, {"$count": "n"}],
        ),
        CursorReply,
    )
    batch = reply.cursor.first_batch
    expect("aggregate $count", 1, batch[0].get("n") if batch else None)

    reply = db.run_command(FindCommand(find=COLLECTION_A, filter={}), CursorReply)
    batch = reply.cursor.first_batch
    expect("find first document", {"_id": RECORD_ID, RECORD_FIELD: B_VALUE_AFTER_A},
           batch[0] if batch else None)

    db[COLLECTION_A].insert_one({FIELD_DELETE: True})
    reply = db.run_command(
        DeleteCommand(delete=COLLECTION_A, deletes=[DeleteStatement(q={FIELD_DELETE: True}, limit=1)]),
        DeleteReply,
    )
    expect("delete n", 1, reply.n)

    # Replace the record and put it back; findAndModify with a plain
    # document is a full replacement that keeps _id.
    for old, new in ((B_VALUE_AFTER_A, B_VALUE_INITIAL), (B_VALUE_INITIAL, B_VALUE_AFTER_A)):
        db.run_command(
            FindAndModifyCommand(
                find_and_modify=COLLECTION_A,
                query={RECORD_FIELD: old},
                remove=False,
                update={RECORD_FIELD: new},
            ),
            FindAndModifyReply,
        )
        expect(
            f"findAndModify {old} -> {new}",
            {"_id": RECORD_ID, RECORD_FIELD: new},
            db[COLLECTION_A].find_one({RECORD_FIELD: new}),
        )


# ---------------------------------------------------------------------------
# Phase B
# ---------------------------------------------------------------------------

def run_phase_b(db, checkpoints: Checkpoints, ignored=()) -> None:
    logger.info("Running phase B")

    _ensure_record(db, COLLECTION_C)
    _create_indexed(db, COLLECTION_C, checkpoints)

    _move_value(db, COLLECTION_B, B_VALUE_AFTER_A, B_VALUE_AFTER_B)

    db.ensure_collection(COLLECTION_X)
    expect("collection count", checkpoints.collections_after_b, len(db.collection_names(ignored)))
