"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Side(StrEnum):
    SOURCE = "source"
    DESTINATION = "destination"

    @property
    def other(self) -> Side:
        return Side.DESTINATION if self is Side.SOURCE else Side.SOURCE


class ReconciliationOutcome(StrEnum):
    """How one reconciliation attempt on a tracked pair ended."""

    RECONCILED = "reconciled"
    UNCHANGED = "unchanged"
    FAILED = "failed"
