"""Domain ports: capabilities and persistence contracts."""

from __future__ import annotations

from .capabilities import (
    CandidateGenerator,
    Candidates,
    ConsistencyOracle,
    DiffMetric,
    run_in_thread,
    swap_oracle,
)

__all__ = [
    "CandidateGenerator",
    "Candidates",
    "ConsistencyOracle",
    "DiffMetric",
    "run_in_thread",
    "swap_oracle",
]
