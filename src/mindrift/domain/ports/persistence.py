"""Ports for persisting tracked pairs and their reconciliation history."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from mindrift.domain.model import ReconciliationRecord, TrackedPair

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class PairRepository(Repository[TrackedPair], Protocol):
    """Persistence contract for tracked pairs."""

    def get(self, pair_id: UUID) -> TrackedPair | None: ...

    def get_by_name(self, name: str) -> TrackedPair | None: ...

    def list(self) -> Sequence[TrackedPair]: ...

    def remove(self, pair: TrackedPair) -> None: ...


@runtime_checkable
class HistoryRepository(Repository[ReconciliationRecord], Protocol):
    """Persistence contract for reconciliation attempts."""

    def for_pair(self, pair_id: UUID) -> Sequence[ReconciliationRecord]: ...

    def remove_for_pair(self, pair_id: UUID) -> None: ...
