"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, select

from mindrift.adapters.sqlalchemy.mappings import (
    reconciliation_record_table,
    tracked_pair_table,
)
from mindrift.domain.model import ReconciliationRecord, TrackedPair

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.orm import Session


class SqlAlchemyPairRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: TrackedPair) -> None:
        self.session.add(entity)

    def get(self, pair_id: UUID) -> TrackedPair | None:
        return self.session.get(TrackedPair, pair_id)

    def get_by_name(self, name: str) -> TrackedPair | None:
        stmt = select(TrackedPair).where(tracked_pair_table.c.name == name)
        return self.session.execute(stmt).scalar_one_or_none()

    def list(self) -> Sequence[TrackedPair]:
        stmt = select(TrackedPair).order_by(tracked_pair_table.c.name)
        return self.session.execute(stmt).scalars().all()

    def remove(self, pair: TrackedPair) -> None:
        self.session.delete(pair)


class SqlAlchemyHistoryRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: ReconciliationRecord) -> None:
        self.session.add(entity)

    def for_pair(self, pair_id: UUID) -> Sequence[ReconciliationRecord]:
        stmt = (
            select(ReconciliationRecord)
            .where(reconciliation_record_table.c.pair_id == pair_id)
            .order_by(reconciliation_record_table.c.created_at)
        )
        return self.session.execute(stmt).scalars().all()

    def remove_for_pair(self, pair_id: UUID) -> None:
        self.session.execute(
            delete(reconciliation_record_table).where(
                reconciliation_record_table.c.pair_id == pair_id
            )
        )


if TYPE_CHECKING:
    from mindrift.domain.ports.persistence import HistoryRepository, PairRepository

    def _repository_checks(session: Session) -> None:
        _pairs: PairRepository = SqlAlchemyPairRepository(session)
        _history: HistoryRepository = SqlAlchemyHistoryRepository(session)
