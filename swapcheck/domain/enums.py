"""
swapcheck.domain.enums — Enumerations used across the protocol.

Keep this module import-clean (stdlib only).
"""

from enum import Enum


# ---------------------------------------------------------------------------
# Backend identity (derived per invocation, never persisted)
# ---------------------------------------------------------------------------

class BackendVersion(str, Enum):
    OLD = "old"
    NEW = "new"


# ---------------------------------------------------------------------------
# Phase state machine
# ---------------------------------------------------------------------------

class PhaseState(str, Enum):
    """
    Where the three-run sequence currently stands.

    INIT:            nothing actionable; the invocation is a no-op pass.
    AWAITING_A:      next run populates under the old backend.
    AWAITING_B:      next run mutates under the new backend.
    AWAITING_VERIFY: next run confirms under the old backend.
    DONE:            sequence complete.
    """
    INIT            = "init"
    AWAITING_A      = "awaiting_a"
    AWAITING_B      = "awaiting_b"
    AWAITING_VERIFY = "awaiting_verify"
    DONE            = "done"

    @property
    def required_backend(self):
        """Backend a run must observe to act on this state (None = no run)."""
        return {
            "awaiting_a":      BackendVersion.OLD,
            "awaiting_b":      BackendVersion.NEW,
            "awaiting_verify": BackendVersion.OLD,
        }.get(self.value)

    @property
    def next_state(self) -> "PhaseState":
        """State committed after the phase gated by this state completes."""
        return {
            "awaiting_a":      PhaseState.AWAITING_B,
            "awaiting_b":      PhaseState.AWAITING_VERIFY,
            "awaiting_verify": PhaseState.DONE,
        }.get(self.value, self)

    @property
    def actionable(self) -> bool:
        return self.required_backend is not None


# ---------------------------------------------------------------------------
# Oracle checkpoints
# ---------------------------------------------------------------------------

class Checkpoint(str, Enum):
    """Phase whose artifacts the oracle checks."""
    PHASE_A = "a"
    PHASE_B = "b"
