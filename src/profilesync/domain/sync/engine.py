"""Profile synchronization engine: the composed, injectable entry point.

``build_engine`` wires every component once at startup. The returned
``ProfileSyncEngine`` is passed to whoever needs it (CLI, application services)
and exposes the inbound and outbound operations of the subsystem.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any, Final

from profilesync.config.engine import EngineConfig
from profilesync.domain.errors import NotFoundError
from profilesync.domain.model import (
    ActorRef,
    ProposedUpdate,
    ResolutionMethod,
    Source,
    utcnow,
)
from profilesync.domain.schema import lookup_field

from .detect import DEFAULT_THRESHOLDS
from .envelope import AsyncExecutionEnvelope, OperationType
from .identity import UnifiedIdentityAggregator
from .locks import EntityLockRegistry
from .policy import MANUAL_CONFIDENCE, PolicyHint, ResolutionPolicyEngine
from .reconcile import Reconciler
from .undo import UndoManager

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence
    from concurrent.futures import Future
    from datetime import datetime
    from uuid import UUID

    from profilesync.domain.model import (
        AuditLogEntry,
        ConflictRecord,
        Domain,
        ProfileValue,
        SyncStatistics,
        UndoRecord,
        UnifiedIdentity,
    )
    from profilesync.domain.ports import Adjudicator, ProfileSyncUnitOfWork

    from .detect import DetectionThresholds
    from .envelope import AsyncStats, OperationRecord
    from .reconcile import ApplyResult

log = logging.getLogger(__name__)

DEFAULT_BULK_REASON: Final[str] = "Bulk resolution"
DEFAULT_PENDING_LIMIT: Final[int] = 50
DEFAULT_AUDIT_LIMIT: Final[int] = 50


@dataclass(frozen=True, slots=True, kw_only=True)
class BulkResolutionItem:
    conflict_id: UUID
    selected_value: ProfileValue
    reason: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class BulkResolutionResult:
    conflict_id: UUID
    success: bool
    error: str | None = None


@dataclass(slots=True, kw_only=True)
class ProfileSyncEngine:
    """Facade over reconciler, undo manager, envelope and the read models."""

    unit_of_work_factory: Callable[[], ProfileSyncUnitOfWork]
    reconciler: Reconciler
    undo_manager: UndoManager
    aggregator: UnifiedIdentityAggregator
    envelope: AsyncExecutionEnvelope
    policy: ResolutionPolicyEngine
    locks: EntityLockRegistry
    clock: Callable[[], datetime] = utcnow

    # Inbound -----------------------------------------------------------------

    def submit_update(
        self,
        update: ProposedUpdate,
        *,
        hint: PolicyHint | None = None,
    ) -> ApplyResult:
        """Apply ``update`` synchronously; errors reach the caller."""

        return self.envelope.track(
            OperationType.for_source(update.source),
            partial(self._validated_apply, update, hint),
            context=_context(update),
        )

    def submit_update_async(self, update: ProposedUpdate) -> Future[ApplyResult | None]:
        """Producer path: schedule ``update`` and return immediately.

        Failures are recorded by the envelope and never raised to the producer.
        """

        return self.envelope.submit(
            OperationType.for_source(update.source),
            partial(self._validated_apply, update, None),
            context=_context(update),
        )

    def submit_batch(self, updates: Iterable[ProposedUpdate]) -> list[ApplyResult | None]:
        """Apply each update independently; failed items come back as ``None``."""

        return [
            self.envelope.execute_safely(
                OperationType.for_source(update.source),
                partial(self._validated_apply, update, None),
                context=_context(update),
            )
            for update in updates
        ]

    def resolve_conflict_manually(
        self,
        conflict_id: UUID,
        selected_value: ProfileValue,
        reason: str | None,
        resolved_by: str,
    ) -> ConflictRecord:
        return self.envelope.track(
            OperationType.CONFLICT_RESOLUTION,
            partial(
                self.reconciler.resolve_pending,
                conflict_id,
                selected_value=selected_value,
                reason=reason,
                resolved_by=resolved_by,
            ),
            context={"conflictId": str(conflict_id), "resolvedBy": resolved_by},
        )

    def bulk_resolve_conflicts(
        self,
        items: Sequence[BulkResolutionItem],
        resolved_by: str,
    ) -> list[BulkResolutionResult]:
        """Resolve every item on its own; one failure never aborts the batch."""

        results: list[BulkResolutionResult] = []
        for item in items:
            try:
                self.envelope.track(
                    OperationType.CONFLICT_RESOLUTION,
                    partial(
                        self.reconciler.resolve_pending,
                        item.conflict_id,
                        selected_value=item.selected_value,
                        reason=item.reason or DEFAULT_BULK_REASON,
                        resolved_by=resolved_by,
                        method=ResolutionMethod.MANUAL_BULK,
                    ),
                    context={"conflictId": str(item.conflict_id), "resolvedBy": resolved_by},
                )
            except Exception as exc:  # noqa: BLE001
                results.append(
                    BulkResolutionResult(
                        conflict_id=item.conflict_id, success=False, error=str(exc)
                    )
                )
            else:
                results.append(BulkResolutionResult(conflict_id=item.conflict_id, success=True))
        succeeded = sum(result.success for result in results)
        log.info("Bulk resolution by %s: %s/%s succeeded", resolved_by, succeeded, len(results))
        return results

    def correct_field(
        self,
        entity_id: str,
        domain: Domain,
        field: str,
        value: ProfileValue,
        reason: str,
        corrected_by: str,
    ) -> ApplyResult:
        """Record a human correction of a field; it wins over any stored value."""

        update = ProposedUpdate(
            entity_id=entity_id,
            source=Source.MANUAL_CORRECTION,
            domain=domain,
            field=field,
            value=value,
            actor=ActorRef.human(corrected_by),
            timestamp=self.clock(),
            confidence=MANUAL_CONFIDENCE,
            reasoning=reason,
        )
        hint = PolicyHint(selected_value=value, reason=reason, resolved_by=corrected_by)
        return self.submit_update(update, hint=hint)

    def undo(self, entity_id: str, log_id: UUID, performed_by: str) -> UndoRecord:
        return self.envelope.track(
            OperationType.UNDO,
            partial(self.undo_manager.undo, entity_id, log_id, performed_by),
            context={"entityId": entity_id, "logId": str(log_id), "performedBy": performed_by},
        )

    def delete_entity(self, entity_id: str) -> None:
        """Remove every stored row of ``entity_id``."""

        with self.locks.hold(entity_id), self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            removed = repositories.undo_records.delete_for_entity(entity_id)
            removed += repositories.audit_log.delete_for_entity(entity_id)
            removed += repositories.conflicts.delete_for_entity(entity_id)
            removed += repositories.fields.delete_for_entity(entity_id)
            removed += repositories.identities.delete_for_entity(entity_id)
            uow.commit()
        log.info("Deleted entity %s (%s rows)", entity_id, removed)

    # Outbound ----------------------------------------------------------------

    def get_pending_conflicts(
        self,
        entity_id: str | None = None,
        *,
        limit: int | None = None,
    ) -> list[ConflictRecord]:
        """Pending conflicts, most severe first and newest first within a severity."""

        with self.unit_of_work_factory() as uow:
            records = uow.repositories.conflicts.pending(entity_id)
        records.sort(key=lambda record: (record.severity.rank, record.timestamp), reverse=True)
        effective_limit = limit
        if effective_limit is None and entity_id is None:
            effective_limit = DEFAULT_PENDING_LIMIT
        return records if effective_limit is None else records[:effective_limit]

    def get_audit_history(
        self, entity_id: str, limit: int = DEFAULT_AUDIT_LIMIT
    ) -> list[AuditLogEntry]:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.audit_log.recent(entity_id, limit=limit)

    def get_correction_history(
        self, entity_id: str, limit: int = DEFAULT_AUDIT_LIMIT
    ) -> list[AuditLogEntry]:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.audit_log.recent(
                entity_id, limit=limit, source=Source.MANUAL_CORRECTION
            )

    def get_sync_statistics(self, entity_id: str | None = None) -> SyncStatistics:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.audit_log.statistics(entity_id)

    def get_unified_identity(self, entity_id: str) -> UnifiedIdentity:
        """Return the cached identity, recomputing it when missing or stale."""

        with self.locks.hold(entity_id), self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            identity = repositories.identities.get(entity_id)
            latest = repositories.fields.latest_update(entity_id)
            if identity is None and latest is None:
                raise NotFoundError("Profile", entity_id)
            if identity is None or (latest is not None and latest > identity.last_updated):
                identity = self.aggregator.recompute(repositories, entity_id)
                uow.commit()
            return identity

    def get_async_stats(self) -> AsyncStats:
        return self.envelope.get_stats()

    def get_failed_operations(self, limit: int = 20) -> list[OperationRecord]:
        return self.envelope.get_failed_operations(limit)

    def close(self) -> None:
        self.envelope.shutdown()
        self.policy.close()

    # Internals ---------------------------------------------------------------

    def _validated_apply(self, update: ProposedUpdate, hint: PolicyHint | None) -> ApplyResult:
        schema = lookup_field(update.domain, update.field)
        if schema is not None:
            schema.validate(update.value)
            if hint is not None and hint.selected_value is not None:
                schema.validate(hint.selected_value)
        return self.reconciler.apply(update, hint=hint)


def build_engine(
    *,
    unit_of_work_factory: Callable[[], ProfileSyncUnitOfWork],
    adjudicator: Adjudicator | None = None,
    config: EngineConfig | None = None,
    thresholds: DetectionThresholds = DEFAULT_THRESHOLDS,
    clock: Callable[[], datetime] = utcnow,
) -> ProfileSyncEngine:
    """Construct a fully wired engine."""

    effective_config = config or EngineConfig()
    locks = EntityLockRegistry()
    policy = ResolutionPolicyEngine(
        adjudicator=adjudicator, timeout=effective_config.adjudication_timeout
    )
    aggregator = UnifiedIdentityAggregator(
        recent_changes=effective_config.recent_changes, clock=clock
    )
    reconciler = Reconciler(
        unit_of_work_factory=unit_of_work_factory,
        policy=policy,
        aggregator=aggregator,
        locks=locks,
        thresholds=thresholds,
        clock=clock,
    )
    undo_manager = UndoManager(
        reconciler=reconciler,
        unit_of_work_factory=unit_of_work_factory,
        locks=locks,
        clock=clock,
    )
    envelope = AsyncExecutionEnvelope(
        history_capacity=effective_config.history_capacity,
        max_workers=effective_config.worker_count,
    )
    return ProfileSyncEngine(
        unit_of_work_factory=unit_of_work_factory,
        reconciler=reconciler,
        undo_manager=undo_manager,
        aggregator=aggregator,
        envelope=envelope,
        policy=policy,
        locks=locks,
        clock=clock,
    )


def _context(update: ProposedUpdate) -> Mapping[str, Any]:
    return {
        "entityId": update.entity_id,
        "source": str(update.source),
        "sourceId": update.source_id,
        "domain": str(update.domain),
        "field": update.field,
        "actor": update.actor.label,
    }
