"""Tracked pairs and their reconciliation history.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from alembic import op

from mindrift.adapters.sqlalchemy.mappings import UTCDateTime

if TYPE_CHECKING:
    from collections.abc import Sequence

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "tracked_pair",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("source_payload", sa.Text(), nullable=False),
        sa.Column("source_domain", sa.String(length=64), nullable=True),
        sa.Column("destination_payload", sa.Text(), nullable=False),
        sa.Column("destination_domain", sa.String(length=64), nullable=True),
        sa.Column("revision", sa.Integer(), nullable=False),
        sa.Column("consistent", sa.Boolean(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_tracked_pair")),
        sa.UniqueConstraint("name", name=op.f("uq_tracked_pair_name")),
    )
    op.create_table(
        "reconciliation_record",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("pair_id", sa.Uuid(), nullable=False),
        sa.Column("pair_revision", sa.Integer(), nullable=False),
        sa.Column(
            "changed_side",
            sa.Enum("SOURCE", "DESTINATION", name="side", native_enum=False),
            nullable=False,
        ),
        sa.Column(
            "outcome",
            sa.Enum(
                "RECONCILED",
                "UNCHANGED",
                "FAILED",
                name="reconciliationoutcome",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("changed_from", sa.Text(), nullable=False),
        sa.Column("changed_to", sa.Text(), nullable=False),
        sa.Column("reconciled_from", sa.Text(), nullable=False),
        sa.Column("reconciled_to", sa.Text(), nullable=True),
        sa.Column("diff", sa.Float(), nullable=True),
        sa.Column("evaluated", sa.Integer(), nullable=False),
        sa.Column("consistent_candidates", sa.Integer(), nullable=False),
        sa.Column("needs_review", sa.Boolean(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["pair_id"],
            ["tracked_pair.id"],
            name=op.f("fk_reconciliation_record_pair_id_tracked_pair"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_reconciliation_record")),
    )
    op.create_index(
        "ix_reconciliation_record_pair_created",
        "reconciliation_record",
        ["pair_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_reconciliation_record_pair_created", table_name="reconciliation_record")
    op.drop_table("reconciliation_record")
    op.drop_table("tracked_pair")
