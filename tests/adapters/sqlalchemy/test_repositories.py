"""Tests for SQLAlchemy repositories."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import Session  # noqa: TC002

from mindrift.adapters.sqlalchemy import create_all_tables
from mindrift.adapters.sqlalchemy.repositories import (
    SqlAlchemyHistoryRepository,
    SqlAlchemyPairRepository,
)
from mindrift.domain.model import (
    Element,
    ReconciliationOutcome,
    ReconciliationRecord,
    Side,
    TrackedPair,
)


def _pair(name: str) -> TrackedPair:
    return TrackedPair(
        name=name,
        source=Element(f"{name} source", "en"),
        destination=Element(f"{name} destination", None),
    )


def _record(pair: TrackedPair, *, created_at: datetime) -> ReconciliationRecord:
    return ReconciliationRecord(
        pair_id=pair.id,
        pair_revision=pair.revision,
        changed_side=Side.DESTINATION,
        outcome=ReconciliationOutcome.RECONCILED,
        changed_from="old",
        changed_to="new",
        reconciled_from=pair.source.payload,
        reconciled_to="reconciled",
        diff=0.25,
        created_at=created_at,
    )


def test_pair_repository_round_trips_elements(sqlite_session: Session) -> None:
    repository = SqlAlchemyPairRepository(sqlite_session)
    pair = _pair("intro")
    pair.record_consistency(True)
    repository.add(pair)
    sqlite_session.commit()
    sqlite_session.expunge_all()

    loaded = repository.get(pair.id)

    assert loaded is not None
    assert loaded.source == Element("intro source", "en")
    assert loaded.destination == Element("intro destination", None)
    assert loaded.consistent is True
    assert loaded.created_at.tzinfo is not None


def test_pair_repository_lookup_by_name_and_listing(sqlite_session: Session) -> None:
    repository = SqlAlchemyPairRepository(sqlite_session)
    for name in ("zeta", "alpha"):
        repository.add(_pair(name))
    sqlite_session.commit()

    assert repository.get_by_name("missing") is None
    found = repository.get_by_name("zeta")
    assert found is not None
    assert found.name == "zeta"
    assert [pair.name for pair in repository.list()] == ["alpha", "zeta"]


def test_element_changes_are_persisted(sqlite_session: Session) -> None:
    repository = SqlAlchemyPairRepository(sqlite_session)
    pair = _pair("intro")
    repository.add(pair)
    sqlite_session.commit()

    pair.realign(source="new source", destination="new destination")
    sqlite_session.commit()
    sqlite_session.expunge_all()

    loaded = repository.get(pair.id)
    assert loaded is not None
    assert loaded.source.payload == "new source"
    assert loaded.revision == 2


def test_history_repository_orders_and_removes(sqlite_session: Session) -> None:
    pairs = SqlAlchemyPairRepository(sqlite_session)
    history = SqlAlchemyHistoryRepository(sqlite_session)
    pair = _pair("intro")
    other = _pair("other")
    pairs.add(pair)
    pairs.add(other)
    base = datetime.now(tz=UTC)
    later = _record(pair, created_at=base + timedelta(minutes=1))
    earlier = _record(pair, created_at=base)
    history.add(later)
    history.add(earlier)
    history.add(_record(other, created_at=base))
    sqlite_session.commit()

    assert [record.id for record in history.for_pair(pair.id)] == [earlier.id, later.id]
    assert history.for_pair(pair.id)[0].changed_side is Side.DESTINATION

    history.remove_for_pair(pair.id)
    sqlite_session.commit()

    assert history.for_pair(pair.id) == []
    assert len(history.for_pair(other.id)) == 1


def test_migrations_create_expected_tables(sqlite_session: Session) -> None:
    tables = set(inspect(sqlite_session.get_bind()).get_table_names())

    assert {"tracked_pair", "reconciliation_record", "alembic_version"} <= tables


def test_metadata_matches_migrated_columns(sqlite_session: Session) -> None:
    fresh = create_engine("sqlite+pysqlite:///:memory:")
    try:
        create_all_tables(fresh)
        created = inspect(fresh)
        migrated = inspect(sqlite_session.get_bind())
        for table in ("tracked_pair", "reconciliation_record"):
            expected = {column["name"] for column in migrated.get_columns(table)}
            assert {column["name"] for column in created.get_columns(table)} == expected
    finally:
        fresh.dispose()
