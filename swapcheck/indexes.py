"""
swapcheck.indexes — Index definitions for the domain collections.

Each of ``a``, ``b`` and ``c`` carries one single-field ascending index on
the mutable field, declared by the phase that creates the collection:

  a  — phase A (old backend)
  b  — phase A (old backend)
  c  — phase B (new backend)

With the default ``_id`` index that makes two indexes per collection, which
is the count the oracle checks on every phase boundary.
"""

from __future__ import annotations

import logging
from pymongo import ASCENDING, IndexModel

from swapcheck.core.constants import INDEXED_COLLECTIONS, RECORD_FIELD

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Index blueprints
# ---------------------------------------------------------------------------

INDEXES: dict[str, list[IndexModel]] = {
    name: [IndexModel([(RECORD_FIELD, ASCENDING)], name=f"{RECORD_FIELD}_1")]
    for name in INDEXED_COLLECTIONS
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def ensure_indexes(db, collection_name: str) -> list[str]:
    """
    Create the indexes declared for ``collection_name``.

    Safe to call twice: the server treats an identical index as a no-op,
    which is what keeps a repeated phase A from adding indexes.

    Args:
        db: Open ``Database`` wrapper (has ``db.db`` pymongo Database attribute).
    """
    models = INDEXES[collection_name]
    names = db.db[collection_name].create_indexes(models)
    logger.debug("Indexes ensured for collection %s: %s", collection_name, names)
    return names


def describe_indexes(db) -> dict:
    """Declared index names next to the live index count, per collection."""
    out = {}
    for col, models in INDEXES.items():
        out[col] = {
            "declared": [m.document.get("name") for m in models],
            "present":  db.index_count(col),
        }
    return out
