"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, distinct, func, select

from profilesync.adapters.sqlalchemy.mappings import (
    audit_log_table,
    conflict_record_table,
    profile_field_table,
    undo_record_table,
    unified_identity_table,
)
from profilesync.domain.model import (
    AuditLogEntry,
    ConflictRecord,
    ProfileField,
    ResolutionMethod,
    SyncStatistics,
    UndoRecord,
    UnifiedIdentity,
)

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy import Table
    from sqlalchemy.orm import Session

    from profilesync.domain.model import Domain, Severity, Source


class _SqlAlchemyEntityScopedRepository[TEntity]:
    """Shared ``add``/``delete_for_entity`` for tables keyed by ``entity_id``."""

    table: Table

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def delete_for_entity(self, entity_id: str) -> int:
        self.session.flush()
        result = self.session.execute(
            delete(self.table).where(self.table.c.entity_id == entity_id),
            execution_options={"synchronize_session": False},
        )
        self.session.expunge_all()
        return result.rowcount


class SqlAlchemyProfileFieldRepository(_SqlAlchemyEntityScopedRepository[ProfileField]):
    table = profile_field_table

    def get(self, entity_id: str, domain: Domain, field: str) -> ProfileField | None:
        stmt = (
            select(ProfileField)
            .where(profile_field_table.c.entity_id == entity_id)
            .where(profile_field_table.c.domain == domain)
            .where(profile_field_table.c.field == field)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_entity(self, entity_id: str) -> list[ProfileField]:
        stmt = (
            select(ProfileField)
            .where(profile_field_table.c.entity_id == entity_id)
            .order_by(profile_field_table.c.domain, profile_field_table.c.field)
        )
        return list(self.session.execute(stmt).scalars())

    def latest_update(self, entity_id: str) -> datetime | None:
        stmt = select(func.max(profile_field_table.c.updated_at)).where(
            profile_field_table.c.entity_id == entity_id
        )
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyAuditLogRepository(_SqlAlchemyEntityScopedRepository[AuditLogEntry]):
    table = audit_log_table

    def get(self, log_id: UUID) -> AuditLogEntry | None:
        return self.session.get(AuditLogEntry, log_id)

    def recent(
        self,
        entity_id: str,
        *,
        limit: int,
        source: Source | None = None,
    ) -> list[AuditLogEntry]:
        stmt = select(AuditLogEntry).where(audit_log_table.c.entity_id == entity_id)
        if source is not None:
            stmt = stmt.where(audit_log_table.c.source == source)
        stmt = stmt.order_by(audit_log_table.c.timestamp.desc()).limit(limit)
        return list(self.session.execute(stmt).scalars())

    def statistics(self, entity_id: str | None = None) -> SyncStatistics:
        stmt = select(
            func.count(),
            func.avg(audit_log_table.c.validation_score),
            func.count(distinct(audit_log_table.c.source)),
            func.count(distinct(audit_log_table.c.domain)),
        ).select_from(audit_log_table)
        if entity_id is not None:
            stmt = stmt.where(audit_log_table.c.entity_id == entity_id)
        total, average, sources, domains = self.session.execute(stmt).one()
        return SyncStatistics(
            total_updates=int(total),
            average_validation_score=None if average is None else float(average),
            unique_sources=int(sources),
            affected_domains=int(domains),
        )


class SqlAlchemyConflictRepository(_SqlAlchemyEntityScopedRepository[ConflictRecord]):
    table = conflict_record_table

    def get(self, conflict_id: UUID) -> ConflictRecord | None:
        return self.session.get(ConflictRecord, conflict_id)

    def pending(self, entity_id: str | None = None) -> list[ConflictRecord]:
        stmt = select(ConflictRecord).where(
            conflict_record_table.c.resolution_method == ResolutionMethod.PENDING
        )
        if entity_id is not None:
            stmt = stmt.where(conflict_record_table.c.entity_id == entity_id)
        stmt = stmt.order_by(conflict_record_table.c.timestamp.desc())
        return list(self.session.execute(stmt).scalars())

    def count_pending(self, entity_id: str, *, severity: Severity) -> int:
        stmt = (
            select(func.count())
            .select_from(conflict_record_table)
            .where(conflict_record_table.c.entity_id == entity_id)
            .where(conflict_record_table.c.severity == severity)
            .where(conflict_record_table.c.resolution_method == ResolutionMethod.PENDING)
        )
        return int(self.session.execute(stmt).scalar_one())


class SqlAlchemyUndoRepository(_SqlAlchemyEntityScopedRepository[UndoRecord]):
    table = undo_record_table

    def get_by_log_id(self, log_id: UUID) -> UndoRecord | None:
        stmt = select(UndoRecord).where(undo_record_table.c.log_id == log_id)
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyIdentityRepository(_SqlAlchemyEntityScopedRepository[UnifiedIdentity]):
    table = unified_identity_table

    def get(self, entity_id: str) -> UnifiedIdentity | None:
        return self.session.get(UnifiedIdentity, entity_id)
