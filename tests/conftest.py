from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from mindrift.adapters.sqlalchemy import start_mappers
from mindrift.adapters.sqlalchemy.migrations import upgrade_head
from mindrift.adapters.sqlalchemy.unit_of_work import SqlAlchemyPairUnitOfWork, shutdown, startup
from mindrift.config import LlmConfig, RateLimit, ReconcileConfig, ResilienceConfig

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyPairUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyPairUnitOfWork:
        return SqlAlchemyPairUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def llm_config() -> LlmConfig:
    return LlmConfig(
        api_key="test-key",
        model="test-model",
        candidates=3,
        temperature=0.2,
        resilience=ResilienceConfig(
            name="llm-test",
            base_url="https://llm.test/v1/",
            timeout_seconds=5.0,
            ratelimit=RateLimit(max_calls=100, per_seconds=1.0),
        ),
    )


@pytest.fixture
def reconcile_config() -> ReconcileConfig:
    return ReconcileConfig(concurrency=2)
