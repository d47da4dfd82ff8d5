"""
Phase controller — the cross-invocation state machine.

Each invocation:

  1. resolves the pending state from the sentinel markers
  2. cross-checks it against the phase ledger
  3. verifies the live backend is the one that state requires
  4. asserts the previous phase's checkpoint (read-only)
  5. runs the gated phase exactly once, flips the markers, commits

Marker rules, in priority order:

  phase_a_done unset and verify unset  -> AWAITING_A
  enter_b set                          -> AWAITING_B
  verify set                           -> AWAITING_VERIFY
  otherwise                            -> INIT (no-op pass)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from swapcheck import config
from swapcheck.domain.enums import BackendVersion, Checkpoint, PhaseState
from swapcheck.domain.models import Checkpoints, LedgerEntry
from swapcheck.errors import BackendMismatch, InterruptedPhase, InvariantViolation
from swapcheck.indexes import describe_indexes
from swapcheck.ledger import PhaseLedger
from swapcheck.oracle import InvariantOracle
from swapcheck.phases import run_phase_a, run_phase_b
from swapcheck.probe import BackendVersionProbe, get_probe
from swapcheck.sentinels import SentinelStore

logger = logging.getLogger(__name__)


@dataclass
class RunOutcome:
    """What one invocation did."""
    resolved: PhaseState
    final:    PhaseState
    backend:  Optional[BackendVersion] = None
    ran:      bool = False
    markers:  Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "resolved": self.resolved.value,
            "final":    self.final.value,
            "backend":  self.backend.value if self.backend else None,
            "ran":      self.ran,
            "markers":  self.markers,
        }


class PhaseController:
    def __init__(
        self,
        db,
        probe: Optional[BackendVersionProbe] = None,
        sentinels: Optional[SentinelStore] = None,
        ledger: Optional[PhaseLedger] = None,
        oracle: Optional[InvariantOracle] = None,
        checkpoints: Optional[Checkpoints] = None,
        ignored=None,
    ) -> None:
        self.db = db
        self.checkpoints = checkpoints or Checkpoints.from_config()
        self.ignored = list(config.IGNORED_COLLECTIONS if ignored is None else ignored)
        self.probe = probe or get_probe(db)
        self.sentinels = sentinels or SentinelStore(db)
        self.ledger = ledger or PhaseLedger(db)
        self.oracle = oracle or InvariantOracle(db, self.checkpoints, self.ignored)

    # ------------------------------------------------------------------
    # State resolution
    # ------------------------------------------------------------------

    def resolve_state(self) -> PhaseState:
        s = self.sentinels
        phase_a_done = s.is_set(s["phase_a_done"])
        verify = s.is_set(s["verify"])

        if not phase_a_done and not verify:
            return PhaseState.AWAITING_A
        if s.is_set(s["enter_b"]):
            return PhaseState.AWAITING_B
        if verify:
            return PhaseState.AWAITING_VERIFY
        return PhaseState.INIT

    def _check_ledger(self, resolved: PhaseState, entry: Optional[LedgerEntry]) -> None:
        if entry is None:
            return
        if entry.intent is not None:
            raise InterruptedPhase(
                f"a previous run started {entry.intent.value} and never committed it "
                f"(ledger version {entry.version}); inspect the data and reset the database"
            )
        if entry.state is not PhaseState.DONE and entry.state is not resolved:
            raise InvariantViolation(
                f"phase ledger says {entry.state.value} but markers resolve to {resolved.value}"
            )

    def _require_backend(self, state: PhaseState) -> BackendVersion:
        detected = self.probe.detect()
        expected = state.required_backend
        if detected is not expected:
            raise BackendMismatch(state, expected, detected)
        return detected

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> RunOutcome:
        resolved = self.resolve_state()
        entry = self.ledger.load()
        logger.info(
            "Resolved state %s (ledger: %s)",
            resolved.value, entry.state.value if entry else "none",
        )
        self._check_ledger(resolved, entry)

        if entry is not None and entry.state is PhaseState.DONE:
            logger.info("Sequence already complete, nothing to do")
            return self._outcome(resolved, PhaseState.DONE)

        if not resolved.actionable:
            logger.info("No phase pending, nothing to do")
            return self._outcome(resolved, resolved)

        backend = self._require_backend(resolved)
        # Checkpoints are read-only and run before the intent is recorded.
        self._check_previous_phase(resolved)
        pending = self.ledger.begin(resolved, entry)

        if resolved is PhaseState.AWAITING_A:
            self._phase_a()
        elif resolved is PhaseState.AWAITING_B:
            self._phase_b()
        else:
            self._verify()

        final = resolved.next_state
        self.ledger.commit(pending, final)
        logger.info("Invocation complete: %s -> %s", resolved.value, final.value)
        return self._outcome(resolved, final, backend=backend, ran=True)

    def _check_previous_phase(self, resolved: PhaseState) -> None:
        if resolved is PhaseState.AWAITING_B:
            # Continuity: phase A's writes must read back on the new backend.
            self.oracle.assert_phase(Checkpoint.PHASE_A)
        elif resolved is PhaseState.AWAITING_VERIFY:
            # Round trip: phase B's writes must read back on the old backend.
            self.oracle.assert_phase(Checkpoint.PHASE_B)

    def _phase_a(self) -> None:
        s = self.sentinels
        run_phase_a(self.db, self.checkpoints, self.ignored)
        s.set(s["phase_a_done"], True)
        s.set(s["enter_b"], True)

    def _phase_b(self) -> None:
        s = self.sentinels
        run_phase_b(self.db, self.checkpoints, self.ignored)
        s.set(s["phase_a_done"], False)
        s.set(s["verify"], True)
        s.set(s["enter_b"], False)

    def _verify(self) -> None:
        logger.info("DONE: data written on the new backend reads back on the old one")

    def _outcome(self, resolved, final, backend=None, ran=False) -> RunOutcome:
        return RunOutcome(
            resolved=resolved,
            final=final,
            backend=backend,
            ran=ran,
            markers=self.sentinels.snapshot(),
        )

    # ------------------------------------------------------------------
    # Status (read-only)
    # ------------------------------------------------------------------

    def status(self) -> dict:
        entry = self.ledger.load()
        return {
            "resolved": self.resolve_state().value,
            "ledger": entry.model_dump(mode="json", by_alias=True) if entry else None,
            "markers": self.sentinels.snapshot(),
            "collections": self.db.collection_names(self.ignored),
            "indexes": describe_indexes(self.db),
        }
