"""Ports for persisting profile state, the audit log and the conflict ledger."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from profilesync.domain.model import (
    AuditLogEntry,
    ConflictRecord,
    ProfileField,
    UndoRecord,
    UnifiedIdentity,
)

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from profilesync.domain.model import Domain, Severity, Source, SyncStatistics


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class EntityScopedRepository[TEntity](Repository[TEntity], Protocol):
    """Store whose rows are owned by one entity and removed with it."""

    def delete_for_entity(self, entity_id: str) -> int: ...


@runtime_checkable
class ProfileFieldRepository(EntityScopedRepository[ProfileField], Protocol):
    """Canonical profile store."""

    def get(self, entity_id: str, domain: Domain, field: str) -> ProfileField | None: ...

    def list_for_entity(self, entity_id: str) -> list[ProfileField]: ...

    def latest_update(self, entity_id: str) -> datetime | None: ...


@runtime_checkable
class AuditLogRepository(EntityScopedRepository[AuditLogEntry], Protocol):
    """Append-only audit log. Entries are never updated once added."""

    def get(self, log_id: UUID) -> AuditLogEntry | None: ...

    def recent(
        self,
        entity_id: str,
        *,
        limit: int,
        source: Source | None = None,
    ) -> list[AuditLogEntry]: ...

    def statistics(self, entity_id: str | None = None) -> SyncStatistics: ...


@runtime_checkable
class ConflictRepository(EntityScopedRepository[ConflictRecord], Protocol):
    """Conflict ledger."""

    def get(self, conflict_id: UUID) -> ConflictRecord | None: ...

    def pending(self, entity_id: str | None = None) -> list[ConflictRecord]: ...

    def count_pending(self, entity_id: str, *, severity: Severity) -> int: ...


@runtime_checkable
class UndoRepository(EntityScopedRepository[UndoRecord], Protocol):
    """Undo records, at most one per audit entry."""

    def get_by_log_id(self, log_id: UUID) -> UndoRecord | None: ...


@runtime_checkable
class IdentityRepository(EntityScopedRepository[UnifiedIdentity], Protocol):
    """Unified identity cache."""

    def get(self, entity_id: str) -> UnifiedIdentity | None: ...
