"""Tracked source/destination pairs.

A pair is created once both sides are aligned, changes whenever either side is
edited (and the other side is reconciled), and is removed when either artifact
leaves the tracked corpus. Consistency is computed lazily by an oracle and
cached until one of the sides changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from .entity import Entity, utcnow
from .enums import Side

if TYPE_CHECKING:
    from .element import Element


class StaleRevisionError(RuntimeError):
    """Raised when an update was computed against an outdated pair revision."""

    def __init__(self, *, expected: int, actual: int) -> None:
        super().__init__(f"Pair revision is {actual}, update expected {expected}")
        self.expected = expected
        self.actual = actual


@dataclass(eq=False, kw_only=True)
class TrackedPair(Entity):
    name: str
    source: Element
    destination: Element
    revision: int = 1
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    _consistent: bool | None = field(default=None, init=False, repr=False)

    def side(self, side: Side) -> Element:
        return self.source if side is Side.SOURCE else self.destination

    @property
    def consistent(self) -> bool | None:
        """Cached verdict; ``None`` until an oracle has judged the current sides."""

        return self._consistent

    def record_consistency(self, verdict: bool) -> None:
        self._consistent = verdict

    def check_revision(self, expected: int | None) -> None:
        if expected is not None and expected != self.revision:
            raise StaleRevisionError(expected=expected, actual=self.revision)

    def realign(self, *, source: str, destination: str) -> None:
        """Replace both payloads after a reconciliation; both sides are consistent."""

        changed = (source, destination) != (self.source.payload, self.destination.payload)
        self.source = self.source.with_payload(source)
        self.destination = self.destination.with_payload(destination)
        if changed:
            self.revision += 1
            self.updated_at = utcnow()
        self._consistent = True

    def update(self, side: Side, payload: str) -> None:
        """Edit one side without reconciling the other; invalidates the cached verdict."""

        if payload == self.side(side).payload:
            return
        if side is Side.SOURCE:
            self.source = self.source.with_payload(payload)
        else:
            self.destination = self.destination.with_payload(payload)
        self.revision += 1
        self.updated_at = utcnow()
        self._consistent = None
