"""
Invariant checkpoints for each phase boundary.

The oracle holds no state of its own: every check reads the database and
compares against ``Checkpoints``. It runs at the start of the next phase
(on the other backend) to prove the previous phase's writes survived the
swap.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from swapcheck import config
from swapcheck.core.constants import (
    COLLECTION_A, COLLECTION_B, COLLECTION_C, RECORD_FIELD,
)
from swapcheck.domain.enums import Checkpoint
from swapcheck.domain.models import CheckResult, Checkpoints
from swapcheck.errors import InvariantViolation

logger = logging.getLogger(__name__)


class InvariantOracle:
    def __init__(self, db, checkpoints: Optional[Checkpoints] = None, ignored=None) -> None:
        self._db = db
        self.checkpoints = checkpoints or Checkpoints.from_config()
        self._ignored = list(config.IGNORED_COLLECTIONS if ignored is None else ignored)

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------

    def check_index_count(self, collection: str) -> CheckResult:
        return CheckResult(
            f"indexes on {collection}",
            self.checkpoints.index_count,
            self._db.index_count(collection),
        )

    def check_b_value(self, expected: int) -> CheckResult:
        doc = self._db[COLLECTION_B].find_one({RECORD_FIELD: expected})
        actual = doc.get(RECORD_FIELD) if doc else None
        return CheckResult(f"{COLLECTION_B}.{RECORD_FIELD}", expected, actual)

    def check_collection_count(self, expected: int) -> CheckResult:
        names = self._db.collection_names(self._ignored)
        logger.debug("Collections: %s", names)
        return CheckResult("collection count", expected, len(names))

    # ------------------------------------------------------------------
    # Phase checkpoints
    # ------------------------------------------------------------------

    def check(self, checkpoint: Checkpoint) -> List[CheckResult]:
        checkpoint = Checkpoint(checkpoint)
        indexed = [COLLECTION_A, COLLECTION_B]
        if checkpoint is Checkpoint.PHASE_B:
            indexed.append(COLLECTION_C)

        results = [self.check_index_count(name) for name in indexed]
        results.append(self.check_b_value(self.checkpoints.b_value(checkpoint)))
        results.append(self.check_collection_count(self.checkpoints.collections(checkpoint)))

        for r in results:
            logger.debug("check %s -> %s", r, "ok" if r.passed else "FAILED")
        return results

    def assert_phase(self, checkpoint: Checkpoint) -> List[CheckResult]:
        results = self.check(checkpoint)
        failures = [r for r in results if not r.passed]
        if failures:
            raise InvariantViolation(
                f"phase {Checkpoint(checkpoint).value} checkpoint failed", failures
            )
        logger.info("Phase %s checkpoint holds (%d checks)", Checkpoint(checkpoint).value, len(results))
        return results
