"""SQLAlchemy mapping metadata for the profile sync domain model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)

from profilesync.domain.model import (
    ActorKind,
    AuditAction,
    AuditLogEntry,
    ConflictRecord,
    Domain,
    InterventionPriority,
    ProcessedBy,
    ProfileField,
    ResolutionMethod,
    Severity,
    Source,
    UndoRecord,
    UnifiedIdentity,
)

if TYPE_CHECKING:
    from enum import StrEnum

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]

# every enum column fits the longest member name with room to spare
ENUM_LENGTH: Final[int] = 32


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


class JSONValue(TypeDecorator[Any]):
    """Store typed profile values as JSON text so booleans stay distinct from numbers."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:  # noqa: ANN401
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> Any:  # noqa: ANN401
        _ = dialect
        if value is None:
            return None
        return json.loads(value)


def _enum(enum_cls: type[StrEnum]) -> Enum:
    return Enum(enum_cls, native_enum=False, length=ENUM_LENGTH)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Tables ----------------------------------------------------------------------

profile_field_table = Table(
    "profile_field",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("entity_id", String, nullable=False),
    Column("domain", _enum(Domain), nullable=False),
    Column("field", String, nullable=False),
    Column("value", JSONValue, nullable=False),
    Column("source", _enum(Source), nullable=False),
    Column("actor_kind", _enum(ActorKind), nullable=False),
    Column("actor_id", String, nullable=True),
    Column("confidence", Integer, nullable=True),
    Column("reasoning", Text, nullable=True),
    Column("source_timestamp", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("version", Integer, nullable=False),
    UniqueConstraint("entity_id", "domain", "field", name="uq_profile_field_entity_field"),
)

audit_log_table = Table(
    "audit_log",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("entity_id", String, nullable=False),
    Column("source", _enum(Source), nullable=False),
    Column("source_id", String, nullable=True),
    Column("domain", _enum(Domain), nullable=False),
    Column("field", String, nullable=False),
    Column("action", _enum(AuditAction), nullable=False),
    Column("processed_by", _enum(ProcessedBy), nullable=False),
    Column("validation_score", Integer, nullable=True),
    Column("reasoning", Text, nullable=True),
    Column("extracted_insights", JSONValue, nullable=False),
    Column("previous_value", JSONValue, nullable=True),
    Column("new_value", JSONValue, nullable=True),
    Column("conflict_id", UUIDColumnType, nullable=True),
    Column("timestamp", UTCDateTime(), nullable=False),
    Index("ix_audit_log_entity_timestamp", "entity_id", "timestamp"),
)

conflict_record_table = Table(
    "conflict_record",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("entity_id", String, nullable=False),
    Column("domain", _enum(Domain), nullable=False),
    Column("conflict_type", String, nullable=False),
    Column("old_value", JSONValue, nullable=False),
    Column("new_value", JSONValue, nullable=False),
    Column("severity", _enum(Severity), nullable=False),
    Column("resolution_method", _enum(ResolutionMethod), nullable=False),
    Column("resolved_value", JSONValue, nullable=True),
    Column("reasoning", Text, nullable=True),
    Column("resolved_by", String, nullable=True),
    Column("timestamp", UTCDateTime(), nullable=False),
    Column("resolved_at", UTCDateTime(), nullable=True),
    Index("ix_conflict_record_entity_method", "entity_id", "resolution_method"),
)

undo_record_table = Table(
    "undo_record",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("entity_id", String, nullable=False),
    Column("log_id", UUIDColumnType, nullable=False),
    Column("previous_state", JSONValue, nullable=False),
    Column("performed_by", String, nullable=False),
    Column("revert_log_id", UUIDColumnType, nullable=True),
    Column("timestamp", UTCDateTime(), nullable=False),
    UniqueConstraint("log_id", name="uq_undo_record_log_id"),
)

unified_identity_table = Table(
    "unified_identity",
    mapper_registry.metadata,
    Column("entity_id", String, primary_key=True),
    Column("summary", Text, nullable=False),
    Column("key_characteristics", JSONValue, nullable=False),
    Column("academic_score", Integer, nullable=False),
    Column("social_emotional_score", Integer, nullable=False),
    Column("behavioral_score", Integer, nullable=False),
    Column("motivation_score", Integer, nullable=False),
    Column("risk_level", Integer, nullable=False),
    Column("strengths", JSONValue, nullable=False),
    Column("challenges", JSONValue, nullable=False),
    Column("recent_changes", JSONValue, nullable=False),
    Column("intervention_priority", _enum(InterventionPriority), nullable=False),
    Column("last_updated", UTCDateTime(), nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        ProfileField,
        profile_field_table,
        version_id_col=profile_field_table.c.version,
    )
    mapper_registry.map_imperatively(AuditLogEntry, audit_log_table)
    mapper_registry.map_imperatively(ConflictRecord, conflict_record_table)
    mapper_registry.map_imperatively(UndoRecord, undo_record_table)
    mapper_registry.map_imperatively(UnifiedIdentity, unified_identity_table)

    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
