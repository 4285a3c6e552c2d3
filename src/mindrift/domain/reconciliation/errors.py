"""Failures surfaced by the reconciler.

Every failure means "could not reconcile automatically". The reconciler never
falls back to an inconsistent best guess.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .contracts import CandidateEvaluation


class ReconciliationError(RuntimeError):
    """Base class for reconciliation failures."""


class EmptyCandidateSetError(ReconciliationError):
    """The candidate generator produced nothing."""

    def __init__(self, message: str = "Candidate generator produced no candidates") -> None:
        super().__init__(message)


class NoConsistentCandidateError(ReconciliationError):
    """Candidates existed but the oracle rejected all of them."""

    def __init__(self, evaluations: tuple[CandidateEvaluation[object], ...]) -> None:
        super().__init__(
            f"None of {len(evaluations)} candidates is consistent with the destination"
        )
        self.evaluations = evaluations


class ReconciliationCancelledError(ReconciliationError):
    """Aborted by the caller or by a deadline; partial results are discarded."""


class CapabilityFailureError(ReconciliationError):
    """An injected capability raised while evaluating a candidate."""

    def __init__(self, message: str, *, index: int | None = None) -> None:
        super().__init__(message)
        self.index = index


class GeneratorFailureError(CapabilityFailureError):
    """The candidate generator raised."""


class OracleFailureError(CapabilityFailureError):
    """The consistency oracle raised for one candidate."""


class DiffFailureError(CapabilityFailureError):
    """The diff metric raised or returned an invalid distance."""


class ToleranceExceededError(ReconciliationError):
    """Raised on request when the winning diff is larger than the caller accepts."""

    def __init__(self, diff: float, tolerance: float) -> None:
        super().__init__(f"Minimal diff {diff:.4f} exceeds tolerance {tolerance:.4f}")
        self.diff = diff
        self.tolerance = tolerance
