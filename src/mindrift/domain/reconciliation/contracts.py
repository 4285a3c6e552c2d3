"""Result types shared by the sequential and concurrent reconcilers."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import ToleranceExceededError


@dataclass(frozen=True, kw_only=True)
class CandidateEvaluation[S]:
    """Verdict for one candidate, keyed by its position in generation order.

    ``diff`` is only computed for consistent candidates. ``index`` is ``None``
    for the implicit incumbent (the unchanged source appended by the reconciler).
    """

    index: int | None
    candidate: S
    consistent: bool
    diff: float | None = None
    is_source: bool = False

    @property
    def rank_key(self) -> tuple[float, bool, float]:
        """Smaller diff first, then the unchanged source, then generation order."""

        if self.diff is None:
            raise ValueError("Only consistent, measured candidates can be ranked")
        position = float("inf") if self.index is None else float(self.index)
        return (self.diff, not self.is_source, position)


@dataclass(frozen=True, kw_only=True)
class Reconciliation[S]:
    """Outcome of one successful reconciliation.

    ``winner`` is ``None`` only for the no-op case where the destination did not
    change and no candidate was evaluated.
    """

    source: S
    diff: float
    winner: CandidateEvaluation[S] | None = None
    evaluations: tuple[CandidateEvaluation[S], ...] = field(default_factory=tuple)
    tolerance: float | None = None

    @property
    def noop(self) -> bool:
        return self.winner is None

    @property
    def unchanged(self) -> bool:
        """True when the previous source is kept as-is."""

        return self.winner is None or self.winner.is_source

    @property
    def generated(self) -> int:
        return sum(1 for e in self.evaluations if e.index is not None)

    @property
    def consistent_count(self) -> int:
        return sum(1 for e in self.evaluations if e.consistent)

    @property
    def within_tolerance(self) -> bool | None:
        if self.tolerance is None:
            return None
        return self.diff <= self.tolerance

    def require_within(self, tolerance: float | None = None) -> S:
        """Return the new source, raising if its diff exceeds ``tolerance``."""

        limit = self.tolerance if tolerance is None else tolerance
        if limit is not None and self.diff > limit:
            raise ToleranceExceededError(self.diff, limit)
        return self.source
