"""SQLAlchemy mapping metadata for tracked pairs and their history."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    orm,
)
from sqlalchemy.orm import composite, configure_mappers

from mindrift.domain.model import (
    Element,
    ReconciliationOutcome,
    ReconciliationRecord,
    Side,
    TrackedPair,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

tracked_pair_table = Table(
    "tracked_pair",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("source_payload", Text, nullable=False),
    Column("source_domain", String(64), nullable=True),
    Column("destination_payload", Text, nullable=False),
    Column("destination_domain", String(64), nullable=True),
    Column("revision", Integer, nullable=False),
    Column("consistent", Boolean, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

reconciliation_record_table = Table(
    "reconciliation_record",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column(
        "pair_id",
        UUIDColumnType,
        ForeignKey("tracked_pair.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("pair_revision", Integer, nullable=False),
    Column("changed_side", Enum(Side, native_enum=False), nullable=False),
    Column("outcome", Enum(ReconciliationOutcome, native_enum=False), nullable=False),
    Column("changed_from", Text, nullable=False),
    Column("changed_to", Text, nullable=False),
    Column("reconciled_from", Text, nullable=False),
    Column("reconciled_to", Text, nullable=True),
    Column("diff", Float, nullable=True),
    Column("evaluated", Integer, nullable=False),
    Column("consistent_candidates", Integer, nullable=False),
    Column("needs_review", Boolean, nullable=False),
    Column("error", Text, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("ix_reconciliation_record_pair_created", "pair_id", "created_at"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        TrackedPair,
        tracked_pair_table,
        properties={
            "source": composite(
                Element,
                tracked_pair_table.c.source_payload,
                tracked_pair_table.c.source_domain,
            ),
            "destination": composite(
                Element,
                tracked_pair_table.c.destination_payload,
                tracked_pair_table.c.destination_domain,
            ),
            "_consistent": tracked_pair_table.c.consistent,
        },
    )

    mapper_registry.map_imperatively(ReconciliationRecord, reconciliation_record_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
