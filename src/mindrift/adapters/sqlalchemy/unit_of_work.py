"""SQLAlchemy-backed unit of work for tracked pairs.

The adapter keeps one engine per process. ``startup()`` maps the domain
classes, migrates the schema, and must run before any unit of work is opened.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from mindrift.adapters.sqlalchemy.mappings import start_mappers
from mindrift.adapters.sqlalchemy.migrations import upgrade_head
from mindrift.adapters.sqlalchemy.repositories import (
    SqlAlchemyHistoryRepository,
    SqlAlchemyPairRepository,
)
from mindrift.config.storage import get_database_config
from mindrift.domain.ports.unit_of_work import PairRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the adapter is used before ``startup()`` or reconfigured by accident."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to ``engine`` (or a new one for ``database_uri``) and migrate it."""

    if _STATE.engine is not None and not force:
        raise StartupError("SQLAlchemy adapter already started. Pass force=True to rebind.")

    resolved = engine or create_engine(database_uri or get_database_config().uri, future=True)
    start_mappers()
    upgrade_head(engine=resolved)
    _STATE.engine = resolved
    _STATE.session_factory = sessionmaker(bind=resolved, expire_on_commit=False)
    log.info("Pair store ready at %s", resolved.url.render_as_string(hide_password=True))


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the engine and forget it (mainly for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
    _STATE.session_factory = None


class SqlAlchemyPairUnitOfWork:
    """One session, one transaction: pairs and their history change together.

    Leaving the block with an exception rolls back whatever was not committed.
    """

    def __init__(self) -> None:
        if _STATE.session_factory is None:
            raise StartupError(
                "SQLAlchemy adapter not started. Call "
                "mindrift.adapters.sqlalchemy.unit_of_work.startup() first."
            )
        self.session_factory = _STATE.session_factory
        self._session: Session | None = None
        self._repositories: PairRepositories | None = None

    def __enter__(self) -> SqlAlchemyPairUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = self.session_factory()
        self._repositories = PairRepositories(
            pairs=SqlAlchemyPairRepository(self._session),
            history=SqlAlchemyHistoryRepository(self._session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        if exc_type is not None:
            session.rollback()
        session.close()
        self._session = None
        self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> PairRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from mindrift.domain.ports.unit_of_work import PairUnitOfWork

    def _uow_check() -> PairUnitOfWork:
        return SqlAlchemyPairUnitOfWork()
