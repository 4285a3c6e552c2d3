"""SQLAlchemy adapter package for mindrift."""

from __future__ import annotations

from .mappings import (
    create_all_tables,
    mapper_registry,
    reconciliation_record_table,
    start_mappers,
    tracked_pair_table,
)
from .repositories import SqlAlchemyHistoryRepository, SqlAlchemyPairRepository

__all__ = [
    "SqlAlchemyHistoryRepository",
    "SqlAlchemyPairRepository",
    "create_all_tables",
    "mapper_registry",
    "reconciliation_record_table",
    "start_mappers",
    "tracked_pair_table",
]
