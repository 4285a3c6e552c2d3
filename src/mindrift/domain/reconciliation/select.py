"""Candidate planning and minimal-diff selection.

Selection is a pure function of the evaluations: the smallest diff wins, the
unchanged source wins any tie it is part of, and remaining ties go to the
candidate generated first. Completion order of concurrent evaluations never
matters because every evaluation carries its original index.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from .contracts import CandidateEvaluation, Reconciliation
from .errors import DiffFailureError, NoConsistentCandidateError

if TYPE_CHECKING:
    from collections.abc import Sequence

type PlannedCandidate[S] = tuple[int | None, S, bool]


def same_value(left: object, right: object) -> bool:
    if left is right:
        return True
    return bool(left == right)


def plan_candidates[S](
    candidates: Sequence[S],
    source: S,
    *,
    include_source: bool,
) -> list[PlannedCandidate[S]]:
    """Attach generation index and incumbent flag to each candidate.

    With ``include_source`` the previous source is appended (index ``None``)
    unless the generator already proposed it.
    """

    planned: list[PlannedCandidate[S]] = [
        (index, candidate, same_value(candidate, source))
        for index, candidate in enumerate(candidates)
    ]
    if include_source and not any(is_source for _, _, is_source in planned):
        planned.append((None, source, True))
    return planned


def validate_distance(value: object, *, index: int | None) -> float:
    try:
        distance = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise DiffFailureError(
            f"Diff metric returned a non-numeric value {value!r}", index=index
        ) from exc
    if math.isnan(distance) or distance < 0:
        raise DiffFailureError(
            f"Diff metric returned an invalid distance {distance!r}", index=index
        )
    return distance


def select_minimal[S](
    evaluations: Sequence[CandidateEvaluation[S]],
    *,
    tolerance: float | None = None,
) -> Reconciliation[S]:
    consistent = [evaluation for evaluation in evaluations if evaluation.consistent]
    if not consistent:
        raise NoConsistentCandidateError(tuple(evaluations))

    winner = min(consistent, key=lambda evaluation: evaluation.rank_key)
    if winner.diff is None:
        raise DiffFailureError("Winning candidate has no diff", index=winner.index)
    return Reconciliation(
        source=winner.candidate,
        diff=winner.diff,
        winner=winner,
        evaluations=tuple(evaluations),
        tolerance=tolerance,
    )
