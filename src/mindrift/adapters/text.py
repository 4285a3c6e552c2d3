"""Reference capabilities for plain-text artifacts.

Edit distances are normalized to ``[0, 1]`` by the length of the longer input,
so ``0.0`` means identical (after normalization) and ``1.0`` means nothing in
common. They satisfy ``diff(x, x) == 0`` as the reconciler expects.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence


def normalize_text(value: str) -> str:
    """NFKC-fold and collapse runs of whitespace."""

    folded = unicodedata.normalize("NFKC", value)
    return " ".join(folded.split())


def levenshtein[T](left: Sequence[T], right: Sequence[T]) -> int:
    """Classic insert/delete/substitute edit distance over two sequences."""

    if len(left) < len(right):
        left, right = right, left
    if not right:
        return len(left)

    previous = list(range(len(right) + 1))
    for i, left_item in enumerate(left, start=1):
        current = [i]
        for j, right_item in enumerate(right, start=1):
            cost = 0 if left_item == right_item else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def _normalized[T](left: Sequence[T], right: Sequence[T]) -> float:
    longest = max(len(left), len(right))
    if longest == 0:
        return 0.0
    return levenshtein(left, right) / longest


def normalized_edit_distance(left: str, right: str) -> float:
    """Character-level edit distance scaled to ``[0, 1]``."""

    return _normalized(normalize_text(left), normalize_text(right))


def token_edit_distance(left: str, right: str) -> float:
    """Whitespace-token edit distance scaled to ``[0, 1]``.

    Cheaper than the character metric on long inputs and closer to how a
    reviewer perceives word-level edits.
    """

    return _normalized(normalize_text(left).split(), normalize_text(right).split())


@dataclass(frozen=True, slots=True)
class ThresholdOracle:
    """Consistent when ``metric(source, destination) <= threshold``.

    Only meaningful when both sides live in comparable domains, e.g. a text and
    its lightly edited copy, or two renderings of the same code.
    """

    metric: Callable[[str, str], float]
    threshold: float

    def __post_init__(self) -> None:
        if not self.threshold >= 0:
            raise ValueError("threshold must be non-negative")

    def __call__(self, source: str, destination: str, /) -> bool:
        return self.metric(source, destination) <= self.threshold


METRICS: dict[str, Callable[[str, str], float]] = {
    "chars": normalized_edit_distance,
    "tokens": token_edit_distance,
}
