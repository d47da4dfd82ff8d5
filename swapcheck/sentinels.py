"""
Sentinel markers: boolean flags stored as ordinary documents.

The markers are the only thing one invocation leaves for the next, so they
live in the very collections under test rather than anywhere else.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from swapcheck import config
from swapcheck.domain.models import SentinelMarker, default_markers

logger = logging.getLogger(__name__)


class SentinelStore:
    def __init__(self, db, markers: Optional[Dict[str, SentinelMarker]] = None) -> None:
        self._db = db
        self.markers = markers or default_markers(config.STATE_COLLECTION)

    def __getitem__(self, name: str) -> SentinelMarker:
        return self.markers[name]

    def is_set(self, marker: SentinelMarker) -> bool:
        """True if the marker document exists and holds ``True``.

        A missing collection simply has no documents, so this is safe to
        call before anything was ever written.
        """
        return self._db[marker.collection].find_one(marker.set_predicate) is not None

    def set(self, marker: SentinelMarker, value: bool) -> None:
        """Store ``value`` in the marker document.

        Setting creates the document when missing; clearing never does, so
        clearing an absent marker leaves the database untouched.
        """
        result = self._db[marker.collection].update_one(
            marker.predicate,
            {"$set": {marker.field: bool(value)}},
            upsert=bool(value),
        )
        logger.info(
            "Marker %s (%s.%s) -> %s (matched=%d)",
            marker.name, marker.collection, marker.field, bool(value), result.matched_count,
        )

    def snapshot(self) -> Dict[str, bool]:
        return {name: self.is_set(marker) for name, marker in self.markers.items()}
