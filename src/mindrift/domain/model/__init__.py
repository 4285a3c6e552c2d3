"""Public domain model surface."""

from __future__ import annotations

from mindrift.domain.model.element import Element
from mindrift.domain.model.entity import Entity, new_id
from mindrift.domain.model.enums import ReconciliationOutcome, Side
from mindrift.domain.model.history import ReconciliationRecord
from mindrift.domain.model.pair import StaleRevisionError, TrackedPair

__all__ = [
    "Element",
    "Entity",
    "ReconciliationOutcome",
    "ReconciliationRecord",
    "Side",
    "StaleRevisionError",
    "TrackedPair",
    "new_id",
]
