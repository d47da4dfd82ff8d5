"""
swapcheck — Protocol constants.

Collection names, marker fields and checkpoint values that make up the
persisted layout. Deployment-specific values (collection counts) live in
``swapcheck.config`` instead.
"""

# ---------------------------------------------------------------------------
# Domain collections
# ---------------------------------------------------------------------------

COLLECTION_A: str = "a"
COLLECTION_B: str = "b"
COLLECTION_C: str = "c"
# Created by phase B only to move the collection count.
COLLECTION_X: str = "x"

# Collections carrying the single-field ascending index.
INDEXED_COLLECTIONS = (COLLECTION_A, COLLECTION_B, COLLECTION_C)

# Identity of every domain record and the field the phases mutate.
RECORD_ID: int = 1
RECORD_FIELD: str = "a"

# ---------------------------------------------------------------------------
# Sentinel marker fields
# ---------------------------------------------------------------------------

FIELD_RUN_B: str = "runB"
FIELD_VERIFY: str = "verify"
# Throwaway document inserted then deleted by phase A's delete command.
FIELD_DELETE: str = "delete"

# ---------------------------------------------------------------------------
# Checkpoint values
# ---------------------------------------------------------------------------

# Default `_id` index plus the declared `a_1` index.
EXPECTED_INDEX_COUNT: int = 2

# Values of b.a: inserted as 1, phase A moves it to 2, phase B to 3.
B_VALUE_INITIAL: int = 1
B_VALUE_AFTER_A: int = 2
B_VALUE_AFTER_B: int = 3

# ---------------------------------------------------------------------------
# Bookkeeping documents
# ---------------------------------------------------------------------------

LEDGER_DOC_ID: str = "phase_state"
PROBE_DOC_ID: str = "probe"
