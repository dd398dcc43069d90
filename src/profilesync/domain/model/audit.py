"""Audit trail records: append-only log entries and undo records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .entity import Entity, utcnow

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from .enums import AuditAction, Domain, ProcessedBy, Source
    from .values import ProfileValue


@dataclass(eq=False, kw_only=True)
class AuditLogEntry(Entity):
    """Immutable record of one accepted (or rejected) mutation.

    ``previous_value`` holds the field value before the write and is what the undo
    manager reapplies. It stays ``None`` for first writes and rejected proposals.
    """

    entity_id: str
    source: Source
    domain: Domain
    field: str
    action: AuditAction
    processed_by: ProcessedBy
    source_id: str | None = None
    validation_score: int | None = None
    reasoning: str | None = None
    extracted_insights: dict[str, Any] = field(default_factory=dict[str, Any])
    previous_value: ProfileValue | None = None
    new_value: ProfileValue | None = None
    conflict_id: UUID | None = None
    timestamp: datetime = field(default_factory=utcnow)

    def snapshot(self) -> dict[str, Any]:
        """Return a plain mapping of the entry, suitable for storing with an undo record."""

        return {
            "id": str(self.id),
            "entityId": self.entity_id,
            "source": str(self.source),
            "sourceId": self.source_id,
            "domain": str(self.domain),
            "field": self.field,
            "action": str(self.action),
            "processedBy": str(self.processed_by),
            "validationScore": self.validation_score,
            "reasoning": self.reasoning,
            "previousValue": self.previous_value,
            "newValue": self.new_value,
            "conflictId": str(self.conflict_id) if self.conflict_id else None,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(eq=False, kw_only=True)
class UndoRecord(Entity):
    """One-shot record of a reverted audit entry."""

    entity_id: str
    log_id: UUID
    previous_state: dict[str, Any]
    performed_by: str
    revert_log_id: UUID | None = None
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class SyncStatistics:
    """Aggregate view over the audit log."""

    total_updates: int
    average_validation_score: float | None
    unique_sources: int
    affected_domains: int
