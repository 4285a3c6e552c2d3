"""Reconciliation run settings."""

from __future__ import annotations

from dataclasses import dataclass

from mindrift.domain.reconciliation.engine import DEFAULT_CONCURRENCY

from .env import env_bool, env_float, env_int


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    """Options forwarded to the reconciler by the application layer.

    ``tolerance`` is advisory: results whose diff exceeds it are flagged for
    review, never rejected.
    """

    concurrency: int = DEFAULT_CONCURRENCY
    timeout_seconds: float | None = None
    tolerance: float | None = None
    max_candidates: int | None = None
    include_source: bool = True


def get_reconcile_config() -> ReconcileConfig:
    return ReconcileConfig(
        concurrency=env_int("MINDRIFT_CONCURRENCY", default=DEFAULT_CONCURRENCY, minimum=1)
        or DEFAULT_CONCURRENCY,
        timeout_seconds=env_float("MINDRIFT_TIMEOUT_SECONDS", minimum=0.0),
        tolerance=env_float("MINDRIFT_TOLERANCE", minimum=0.0),
        max_candidates=env_int("MINDRIFT_MAX_CANDIDATES", minimum=1),
        include_source=env_bool("MINDRIFT_INCLUDE_SOURCE", default=True),
    )
