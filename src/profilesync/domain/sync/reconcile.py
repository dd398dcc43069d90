"""Reconciler: the only writer of canonical profile fields.

One ``apply`` call runs under the entity lock and performs, in order:
1. schema lookup (unknown fields are logged as rejected and dropped)
2. conflict detection against the stored value
3. resolution, unless the conflict is high severity and AI-originated
4. the field write, committed before the audit entry that documents it
5. the unified identity recompute
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from profilesync.domain.errors import (
    ConcurrencyViolationError,
    NotFoundError,
    UnknownMappingError,
    ValidationError,
)
from profilesync.domain.model import (
    ActorKind,
    ActorRef,
    AuditAction,
    AuditLogEntry,
    ConflictRecord,
    ProcessedBy,
    ProfileField,
    ResolutionMethod,
    Severity,
    Source,
    is_profile_value,
    utcnow,
)
from profilesync.domain.schema import lookup_field, require_field

from .detect import DEFAULT_THRESHOLDS, DetectionOutcome, detect_conflict
from .policy import MANUAL_CONFIDENCE, Winner

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from profilesync.domain.model import ProfileValue, ProposedUpdate
    from profilesync.domain.ports import ProfileSyncUnitOfWork

    from .detect import Conflict, DetectionThresholds
    from .identity import UnifiedIdentityAggregator
    from .locks import EntityLockRegistry
    from .policy import PolicyHint, Resolution, ResolutionPolicyEngine

log = logging.getLogger(__name__)


@dataclass(slots=True, kw_only=True)
class ApplyResult:
    """Outcome of one reconciler call."""

    applied: bool
    conflict_id: UUID | None = None
    log_id: UUID | None = None
    rejected: bool = False
    severity: Severity | None = None
    resolution_method: ResolutionMethod | None = None


class Reconciler:
    """Serialises and applies proposed updates per entity."""

    def __init__(
        self,
        *,
        unit_of_work_factory: Callable[[], ProfileSyncUnitOfWork],
        policy: ResolutionPolicyEngine,
        aggregator: UnifiedIdentityAggregator,
        locks: EntityLockRegistry,
        thresholds: DetectionThresholds = DEFAULT_THRESHOLDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._policy = policy
        self._aggregator = aggregator
        self._locks = locks
        self._thresholds = thresholds
        self._clock = clock

    def apply(
        self,
        update: ProposedUpdate,
        *,
        hint: PolicyHint | None = None,
        processed_by: ProcessedBy | None = None,
    ) -> ApplyResult:
        """Reconcile ``update`` into the canonical profile of its entity."""

        with self._locks.hold(update.entity_id):
            try:
                return self._apply_once(update, hint, processed_by)
            except ConcurrencyViolationError:
                log.warning(
                    "Concurrent write detected on %s.%s for %s; retrying once",
                    update.domain,
                    update.field,
                    update.entity_id,
                )
                return self._apply_once(update, hint, processed_by)

    def resolve_pending(
        self,
        conflict_id: UUID,
        *,
        selected_value: ProfileValue,
        reason: str | None,
        resolved_by: str,
        method: ResolutionMethod = ResolutionMethod.MANUAL,
    ) -> ConflictRecord:
        """Settle a pending conflict with a human-selected value."""

        if not is_profile_value(selected_value):
            raise ValidationError(f"Unsupported selected value: {selected_value!r}")
        if not resolved_by or not resolved_by.strip():
            raise ValidationError("Manual resolution requires resolved_by")

        with self._unit_of_work_factory() as uow:
            record = uow.repositories.conflicts.get(conflict_id)
            if record is None:
                raise NotFoundError("Conflict", conflict_id)
            entity_id = record.entity_id

        with self._locks.hold(entity_id):
            try:
                return self._resolve_pending_once(
                    conflict_id, selected_value, reason, resolved_by, method
                )
            except ConcurrencyViolationError:
                log.warning("Concurrent write while resolving %s; retrying once", conflict_id)
                return self._resolve_pending_once(
                    conflict_id, selected_value, reason, resolved_by, method
                )

    # Apply -------------------------------------------------------------------

    def _apply_once(
        self,
        update: ProposedUpdate,
        hint: PolicyHint | None,
        processed_by: ProcessedBy | None,
    ) -> ApplyResult:
        with self._unit_of_work_factory() as uow:
            try:
                require_field(update.domain, update.field)
            except UnknownMappingError as exc:
                return self._reject(uow, update, exc)

            repositories = uow.repositories
            current = repositories.fields.get(update.entity_id, update.domain, update.field)
            decision = detect_conflict(current, update, thresholds=self._thresholds)
            if decision.outcome is DetectionOutcome.NO_CONFLICT:
                return self._write_direct(uow, update, current, processed_by)
            return self._handle_conflict(uow, decision, hint, processed_by)

    def _write_direct(
        self,
        uow: ProfileSyncUnitOfWork,
        update: ProposedUpdate,
        current: ProfileField | None,
        processed_by: ProcessedBy | None,
    ) -> ApplyResult:
        repositories = uow.repositories
        now = self._clock()
        previous = None if current is None else current.value
        if current is None:
            repositories.fields.add(ProfileField.from_update(update, now=now))
        else:
            current.assign(
                update.value,
                source=update.source,
                actor=update.actor,
                confidence=update.confidence,
                reasoning=update.reasoning,
                source_timestamp=update.timestamp,
                now=now,
            )
        uow.commit()

        entry = _entry_for(
            update,
            action=AuditAction.UPDATED,
            processed_by=processed_by or _processed_by_actor(update.actor),
            previous_value=previous,
            new_value=update.value,
            now=now,
        )
        repositories.audit_log.add(entry)
        uow.commit()
        log.info(
            "Applied %s.%s for %s from %s",
            update.domain,
            update.field,
            update.entity_id,
            update.source,
        )

        self._recompute(uow, update.entity_id, now)
        return ApplyResult(applied=True, log_id=entry.id)

    def _handle_conflict(
        self,
        uow: ProfileSyncUnitOfWork,
        conflict: Conflict,
        hint: PolicyHint | None,
        processed_by: ProcessedBy | None,
    ) -> ApplyResult:
        repositories = uow.repositories
        update = conflict.proposed
        current = conflict.current
        now = self._clock()
        record = ConflictRecord(
            entity_id=update.entity_id,
            domain=update.domain,
            conflict_type=update.field,
            old_value=current.value,
            new_value=update.value,
            severity=conflict.severity,
            reasoning=conflict.reason,
            timestamp=now,
        )
        repositories.conflicts.add(record)

        manual = hint is not None and hint.is_manual
        if (
            conflict.severity is Severity.HIGH
            and update.actor.kind is ActorKind.AI
            and not manual
        ):
            uow.commit()
            log.warning(
                "Parked high-severity conflict %s on %s.%s for %s pending human review",
                record.id,
                update.domain,
                update.field,
                update.entity_id,
            )
            self._recompute(uow, update.entity_id, now)
            return ApplyResult(
                applied=False,
                conflict_id=record.id,
                severity=record.severity,
                resolution_method=ResolutionMethod.PENDING,
            )

        resolution = self._policy.resolve(conflict, hint)
        record.resolve(
            value=resolution.value,
            method=resolution.method,
            reasoning=resolution.reasoning,
            resolved_by=resolution.resolved_by,
            now=now,
        )
        previous = current.value
        written = resolution.winner is not Winner.CURRENT
        if written:
            _write_resolution(current, update, resolution, now)
        uow.commit()

        entry = _entry_for(
            update,
            action=AuditAction.UPDATED,
            processed_by=processed_by
            or (ProcessedBy.MANUAL if resolution.is_manual else ProcessedBy.AI),
            previous_value=previous,
            new_value=resolution.value,
            now=now,
            conflict_id=record.id,
            reasoning=resolution.reasoning,
        )
        repositories.audit_log.add(entry)
        uow.commit()
        log.info(
            "Resolved %s conflict %s on %s.%s for %s via %s (%s kept)",
            record.severity,
            record.id,
            update.domain,
            update.field,
            update.entity_id,
            resolution.method,
            resolution.winner,
        )

        if written:
            self._recompute(uow, update.entity_id, now)
        return ApplyResult(
            applied=written,
            conflict_id=record.id,
            log_id=entry.id,
            severity=record.severity,
            resolution_method=resolution.method,
        )

    def _reject(
        self,
        uow: ProfileSyncUnitOfWork,
        update: ProposedUpdate,
        error: UnknownMappingError,
    ) -> ApplyResult:
        entry = _entry_for(
            update,
            action=AuditAction.REJECTED,
            processed_by=_processed_by_actor(update.actor),
            previous_value=None,
            new_value=update.value,
            now=self._clock(),
            reasoning=str(error),
        )
        uow.repositories.audit_log.add(entry)
        uow.commit()
        log.warning(
            "Rejected update for %s from %s: %s", update.entity_id, update.source, error
        )
        return ApplyResult(applied=False, rejected=True, log_id=entry.id)

    # Manual resolution -------------------------------------------------------

    def _resolve_pending_once(
        self,
        conflict_id: UUID,
        selected_value: ProfileValue,
        reason: str | None,
        resolved_by: str,
        method: ResolutionMethod,
    ) -> ConflictRecord:
        with self._unit_of_work_factory() as uow:
            repositories = uow.repositories
            record = repositories.conflicts.get(conflict_id)
            if record is None:
                raise NotFoundError("Conflict", conflict_id)
            schema = lookup_field(record.domain, record.conflict_type)
            if schema is not None:
                schema.validate(selected_value)

            now = self._clock()
            record.resolve(
                value=selected_value,
                method=method,
                reasoning=reason,
                resolved_by=resolved_by,
                now=now,
            )
            actor = ActorRef.human(resolved_by)
            current = repositories.fields.get(
                record.entity_id, record.domain, record.conflict_type
            )
            previous = None if current is None else current.value
            if current is None:
                current = ProfileField(
                    entity_id=record.entity_id,
                    domain=record.domain,
                    field=record.conflict_type,
                    value=selected_value,
                    source=Source.MANUAL_CORRECTION,
                    actor_kind=actor.kind,
                    actor_id=actor.identifier,
                    confidence=MANUAL_CONFIDENCE,
                    reasoning=reason,
                    source_timestamp=now,
                    updated_at=now,
                )
                repositories.fields.add(current)
            else:
                current.assign(
                    selected_value,
                    source=Source.MANUAL_CORRECTION,
                    actor=actor,
                    confidence=MANUAL_CONFIDENCE,
                    reasoning=reason,
                    source_timestamp=now,
                    now=now,
                )
            uow.commit()

            entry = AuditLogEntry(
                entity_id=record.entity_id,
                source=Source.MANUAL_CORRECTION,
                source_id=str(record.id),
                domain=record.domain,
                field=record.conflict_type,
                action=AuditAction.UPDATED,
                processed_by=ProcessedBy.MANUAL,
                validation_score=MANUAL_CONFIDENCE,
                reasoning=reason,
                previous_value=previous,
                new_value=selected_value,
                conflict_id=record.id,
                timestamp=now,
            )
            repositories.audit_log.add(entry)
            uow.commit()
            log.info(
                "Conflict %s resolved %s by %s for %s",
                record.id,
                method,
                resolved_by,
                record.entity_id,
            )

            self._recompute(uow, record.entity_id, now)
            return record

    def _recompute(self, uow: ProfileSyncUnitOfWork, entity_id: str, now: datetime) -> None:
        self._aggregator.recompute(uow.repositories, entity_id, now=now)
        uow.commit()


def _processed_by_actor(actor: ActorRef) -> ProcessedBy:
    return ProcessedBy.AI if actor.kind is ActorKind.AI else ProcessedBy.MANUAL


def _write_resolution(
    current: ProfileField,
    update: ProposedUpdate,
    resolution: Resolution,
    now: datetime,
) -> None:
    if resolution.winner is Winner.SELECTED:
        actor = ActorRef.human(resolution.resolved_by) if resolution.resolved_by else update.actor
        reasoning = resolution.reasoning
    else:
        actor = update.actor
        reasoning = update.reasoning
    current.assign(
        resolution.value,
        source=update.source,
        actor=actor,
        confidence=update.confidence if resolution.confidence is None else resolution.confidence,
        reasoning=reasoning,
        source_timestamp=update.timestamp,
        now=now,
    )


def _entry_for(
    update: ProposedUpdate,
    *,
    action: AuditAction,
    processed_by: ProcessedBy,
    previous_value: ProfileValue | None,
    new_value: ProfileValue | None,
    now: datetime,
    conflict_id: UUID | None = None,
    reasoning: str | None = None,
) -> AuditLogEntry:
    return AuditLogEntry(
        entity_id=update.entity_id,
        source=update.source,
        source_id=update.source_id,
        domain=update.domain,
        field=update.field,
        action=action,
        processed_by=processed_by,
        validation_score=update.confidence,
        reasoning=reasoning or update.reasoning,
        extracted_insights=dict(update.insights),
        previous_value=previous_value,
        new_value=new_value,
        conflict_id=conflict_id,
        timestamp=now,
    )

