"""
swapcheck.errors — Fatal error taxonomy.

Nothing here is retried: a failed run leaves the persisted markers as they
were (or flags an interrupted phase), and the operator re-runs the sequence.
Each class carries the process exit code the runner reports for it.
"""

from __future__ import annotations

from typing import Iterable, Optional


class SwapCheckError(Exception):
    exit_code: int = 1


class BackendMismatch(SwapCheckError):
    """The detected backend is not the one the pending phase requires."""
    exit_code = 2

    def __init__(self, state, expected, detected) -> None:
        self.state = state
        self.expected = expected
        self.detected = detected
        super().__init__(
            f"{state.value} requires the {expected.value} backend, "
            f"detected {detected.value}: runs were invoked out of order"
        )


class InvariantViolation(SwapCheckError):
    """A checkpoint value differs from what the phase boundary guarantees."""
    exit_code = 3

    def __init__(self, message: str, failures: Optional[Iterable] = None) -> None:
        self.failures = list(failures or [])
        if self.failures:
            message = message + ": " + "; ".join(str(f) for f in self.failures)
        super().__init__(message)


class CommandFailed(InvariantViolation):
    """An administrative command failed or replied with an unexpected shape."""


class DetectionFailure(SwapCheckError):
    """The backend identity could not be read from the diagnostics."""
    exit_code = 4


class PhaseConflict(SwapCheckError):
    """The phase ledger changed underneath this run (overlapping invocation)."""
    exit_code = 5


class InterruptedPhase(PhaseConflict):
    """A previous run started a phase and never committed it."""
