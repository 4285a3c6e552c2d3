"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from mindrift.domain.ports.persistence import HistoryRepository, PairRepository


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@dataclass(slots=True)
class PairRepositories(RepositoryCollection):
    pairs: PairRepository
    history: HistoryRepository


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Transactional boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool | None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


type PairUnitOfWork = UnitOfWork[PairRepositories]
