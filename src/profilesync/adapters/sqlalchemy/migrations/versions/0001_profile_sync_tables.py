"""Create profile sync tables

Revision ID: 0001_profile_sync_tables
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from alembic import op

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

revision: str = "0001_profile_sync_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUM = sa.String(32)


def _timestamp(name: str, *, nullable: bool = False) -> sa.Column[datetime]:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "profile_field",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("domain", ENUM, nullable=False),
        sa.Column("field", sa.String(), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("source", ENUM, nullable=False),
        sa.Column("actor_kind", ENUM, nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("confidence", sa.Integer(), nullable=True),
        sa.Column("reasoning", sa.Text(), nullable=True),
        _timestamp("source_timestamp"),
        _timestamp("updated_at"),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_profile_field"),
        sa.UniqueConstraint(
            "entity_id", "domain", "field", name="uq_profile_field_entity_field"
        ),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("source", ENUM, nullable=False),
        sa.Column("source_id", sa.String(), nullable=True),
        sa.Column("domain", ENUM, nullable=False),
        sa.Column("field", sa.String(), nullable=False),
        sa.Column("action", ENUM, nullable=False),
        sa.Column("processed_by", ENUM, nullable=False),
        sa.Column("validation_score", sa.Integer(), nullable=True),
        sa.Column("reasoning", sa.Text(), nullable=True),
        sa.Column("extracted_insights", sa.Text(), nullable=False),
        sa.Column("previous_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("conflict_id", sa.Uuid(), nullable=True),
        _timestamp("timestamp"),
        sa.PrimaryKeyConstraint("id", name="pk_audit_log"),
    )
    op.create_index("ix_audit_log_entity_timestamp", "audit_log", ["entity_id", "timestamp"])

    op.create_table(
        "conflict_record",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("domain", ENUM, nullable=False),
        sa.Column("conflict_type", sa.String(), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=False),
        sa.Column("new_value", sa.Text(), nullable=False),
        sa.Column("severity", ENUM, nullable=False),
        sa.Column("resolution_method", ENUM, nullable=False),
        sa.Column("resolved_value", sa.Text(), nullable=True),
        sa.Column("reasoning", sa.Text(), nullable=True),
        sa.Column("resolved_by", sa.String(), nullable=True),
        _timestamp("timestamp"),
        _timestamp("resolved_at", nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_conflict_record"),
    )
    op.create_index(
        "ix_conflict_record_entity_method",
        "conflict_record",
        ["entity_id", "resolution_method"],
    )

    op.create_table(
        "undo_record",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("log_id", sa.Uuid(), nullable=False),
        sa.Column("previous_state", sa.Text(), nullable=False),
        sa.Column("performed_by", sa.String(), nullable=False),
        sa.Column("revert_log_id", sa.Uuid(), nullable=True),
        _timestamp("timestamp"),
        sa.PrimaryKeyConstraint("id", name="pk_undo_record"),
        sa.UniqueConstraint("log_id", name="uq_undo_record_log_id"),
    )

    op.create_table(
        "unified_identity",
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("key_characteristics", sa.Text(), nullable=False),
        sa.Column("academic_score", sa.Integer(), nullable=False),
        sa.Column("social_emotional_score", sa.Integer(), nullable=False),
        sa.Column("behavioral_score", sa.Integer(), nullable=False),
        sa.Column("motivation_score", sa.Integer(), nullable=False),
        sa.Column("risk_level", sa.Integer(), nullable=False),
        sa.Column("strengths", sa.Text(), nullable=False),
        sa.Column("challenges", sa.Text(), nullable=False),
        sa.Column("recent_changes", sa.Text(), nullable=False),
        sa.Column("intervention_priority", ENUM, nullable=False),
        _timestamp("last_updated"),
        sa.PrimaryKeyConstraint("entity_id", name="pk_unified_identity"),
    )


def downgrade() -> None:
    op.drop_table("unified_identity")
    op.drop_table("undo_record")
    op.drop_index("ix_conflict_record_entity_method", table_name="conflict_record")
    op.drop_table("conflict_record")
    op.drop_index("ix_audit_log_entity_timestamp", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_table("profile_field")
