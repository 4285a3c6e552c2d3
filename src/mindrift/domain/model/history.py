"""Audit trail of reconciliation attempts on tracked pairs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from .entity import Entity, utcnow

if TYPE_CHECKING:
    from uuid import UUID

    from .enums import ReconciliationOutcome, Side


@dataclass(eq=False, kw_only=True)
class ReconciliationRecord(Entity):
    """One attempt: which side changed, what the other side became, and why.

    ``reconciled_to`` is ``None`` when the attempt failed; the pair then keeps
    its last consistent state.
    """

    pair_id: UUID
    pair_revision: int
    changed_side: Side
    outcome: ReconciliationOutcome
    changed_from: str
    changed_to: str
    reconciled_from: str
    reconciled_to: str | None = None
    diff: float | None = None
    evaluated: int = 0
    consistent_candidates: int = 0
    needs_review: bool = False
    error: str | None = None
    created_at: datetime = field(default_factory=utcnow)
