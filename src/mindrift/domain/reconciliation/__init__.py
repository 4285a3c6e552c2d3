"""Minimal-drift reconciliation core.

Keeps a source/destination pair consistent by repairing the unchanged side
with the smallest edit that restores consistency:

1) ask the injected generator for replacement candidates
2) judge each candidate against the new destination with the injected oracle
3) measure consistent candidates against the old source with the injected metric
4) select the minimal diff (unchanged source first, then generation order)
"""

from __future__ import annotations

from .contracts import CandidateEvaluation, Reconciliation
from .engine import Reconciler, reconcile, reconcile_async, reconcile_chain
from .errors import (
    CapabilityFailureError,
    DiffFailureError,
    EmptyCandidateSetError,
    GeneratorFailureError,
    NoConsistentCandidateError,
    OracleFailureError,
    ReconciliationCancelledError,
    ReconciliationError,
    ToleranceExceededError,
)

__all__ = [
    "CandidateEvaluation",
    "CapabilityFailureError",
    "DiffFailureError",
    "EmptyCandidateSetError",
    "GeneratorFailureError",
    "NoConsistentCandidateError",
    "OracleFailureError",
    "Reconciler",
    "Reconciliation",
    "ReconciliationCancelledError",
    "ReconciliationError",
    "ToleranceExceededError",
    "reconcile",
    "reconcile_async",
    "reconcile_chain",
]
