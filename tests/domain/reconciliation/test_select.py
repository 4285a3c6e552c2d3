from __future__ import annotations

import pytest

from mindrift.domain.reconciliation import (
    CandidateEvaluation,
    DiffFailureError,
    NoConsistentCandidateError,
    Reconciliation,
)
from mindrift.domain.reconciliation.select import (
    plan_candidates,
    select_minimal,
    validate_distance,
)


def _evaluation(
    index: int | None,
    candidate: str,
    *,
    diff: float | None,
    consistent: bool = True,
    is_source: bool = False,
) -> CandidateEvaluation[str]:
    return CandidateEvaluation(
        index=index,
        candidate=candidate,
        consistent=consistent,
        diff=diff,
        is_source=is_source,
    )


def test_plan_appends_source_once() -> None:
    assert plan_candidates(["a", "b"], "s0", include_source=True) == [
        (0, "a", False),
        (1, "b", False),
        (None, "s0", True),
    ]
    assert plan_candidates(["s0", "a"], "s0", include_source=True) == [
        (0, "s0", True),
        (1, "a", False),
    ]
    assert plan_candidates(["a"], "s0", include_source=False) == [(0, "a", False)]


def test_selection_is_independent_of_evaluation_order() -> None:
    evaluations = [
        _evaluation(2, "c", diff=0.1),
        _evaluation(0, "a", diff=0.1),
        _evaluation(1, "b", diff=0.3),
        _evaluation(3, "d", diff=None, consistent=False),
    ]

    forward = select_minimal(evaluations)
    backward = select_minimal(list(reversed(evaluations)))

    assert forward.source == backward.source == "a"


def test_source_beats_generated_candidate_on_tie() -> None:
    result = select_minimal(
        [
            _evaluation(0, "a", diff=0.0),
            _evaluation(None, "s0", diff=0.0, is_source=True),
        ]
    )

    assert result.source == "s0"
    assert result.unchanged


def test_no_consistent_evaluation_raises() -> None:
    evaluations = [_evaluation(0, "a", diff=None, consistent=False)]

    with pytest.raises(NoConsistentCandidateError) as excinfo:
        select_minimal(evaluations)

    assert excinfo.value.evaluations == tuple(evaluations)


@pytest.mark.parametrize(("value", "expected"), [(0, 0.0), (0.25, 0.25), ("1.5", 1.5)])
def test_validate_distance_accepts_numbers(value: object, expected: float) -> None:
    assert validate_distance(value, index=0) == expected


@pytest.mark.parametrize("value", [-1, float("nan"), None, object()])
def test_validate_distance_rejects_invalid_values(value: object) -> None:
    with pytest.raises(DiffFailureError) as excinfo:
        validate_distance(value, index=4)
    assert excinfo.value.index == 4


def test_rank_key_requires_diff() -> None:
    with pytest.raises(ValueError, match="ranked"):
        _ = _evaluation(0, "a", diff=None, consistent=False).rank_key


def test_reconciliation_counts() -> None:
    result = Reconciliation(
        source="a",
        diff=0.2,
        winner=_evaluation(0, "a", diff=0.2),
        evaluations=(
            _evaluation(0, "a", diff=0.2),
            _evaluation(1, "b", diff=None, consistent=False),
            _evaluation(None, "s0", diff=None, consistent=False, is_source=True),
        ),
        tolerance=0.5,
    )

    assert not result.noop
    assert not result.unchanged
    assert result.generated == 2
    assert result.consistent_count == 1
    assert result.within_tolerance is True
