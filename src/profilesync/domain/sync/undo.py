"""Undo manager: revert one audit entry by reapplying its previous value."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from profilesync.domain.errors import NotFoundError, UndoNotAllowedError, ValidationError
from profilesync.domain.model import (
    ActorRef,
    AuditAction,
    ProcessedBy,
    ProposedUpdate,
    Source,
    UndoRecord,
    utcnow,
)

from .policy import MANUAL_CONFIDENCE, PolicyHint

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from profilesync.domain.model import AuditLogEntry
    from profilesync.domain.ports import ProfileSyncUnitOfWork, UndoRepository

    from .locks import EntityLockRegistry
    from .reconcile import Reconciler

log = logging.getLogger(__name__)


class UndoManager:
    """Revert single audit entries.

    Reverting goes through the reconciler as a manual update tagged
    ``source=undo``, so the revert itself shows up as a new forward entry in the
    audit log. Dependent later writes are not reverted.
    """

    def __init__(
        self,
        *,
        reconciler: Reconciler,
        unit_of_work_factory: Callable[[], ProfileSyncUnitOfWork],
        locks: EntityLockRegistry,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._reconciler = reconciler
        self._unit_of_work_factory = unit_of_work_factory
        self._locks = locks
        self._clock = clock

    def undo(self, entity_id: str, log_id: UUID, performed_by: str) -> UndoRecord:
        if not performed_by or not performed_by.strip():
            raise ValidationError("Undo requires performed_by")

        with self._locks.hold(entity_id):
            with self._unit_of_work_factory() as uow:
                entry = uow.repositories.audit_log.get(log_id)
                if entry is None or entry.entity_id != entity_id:
                    raise NotFoundError("Audit log entry", log_id)
                _ensure_undoable(entry, uow.repositories.undo_records)
                snapshot = entry.snapshot()
                domain, field, previous = entry.domain, entry.field, entry.previous_value

            if previous is None:
                raise UndoNotAllowedError(f"Audit entry {log_id} has no previous value")

            now = self._clock()
            reason = f"Undo of audit entry {log_id}"
            update = ProposedUpdate(
                entity_id=entity_id,
                source=Source.UNDO,
                source_id=str(log_id),
                domain=domain,
                field=field,
                value=previous,
                actor=ActorRef.human(performed_by),
                timestamp=now,
                confidence=MANUAL_CONFIDENCE,
                reasoning=reason,
            )
            result = self._reconciler.apply(
                update,
                hint=PolicyHint(selected_value=previous, reason=reason, resolved_by=performed_by),
                processed_by=ProcessedBy.MANUAL,
            )
            if result.rejected:
                raise UndoNotAllowedError(f"Field {domain}.{field} is no longer tracked")

            record = UndoRecord(
                entity_id=entity_id,
                log_id=log_id,
                previous_state=snapshot,
                performed_by=performed_by,
                revert_log_id=result.log_id,
                timestamp=now,
            )
            with self._unit_of_work_factory() as uow:
                uow.repositories.undo_records.add(record)
                uow.commit()

        log.info("Undid audit entry %s for %s (by %s)", log_id, entity_id, performed_by)
        return record


def _ensure_undoable(entry: AuditLogEntry, undo_records: UndoRepository) -> None:
    if entry.source is Source.UNDO:
        raise UndoNotAllowedError(f"Audit entry {entry.id} is itself an undo")
    if entry.action is AuditAction.REJECTED:
        raise UndoNotAllowedError(f"Audit entry {entry.id} was rejected; nothing to revert")
    if undo_records.get_by_log_id(entry.id) is not None:
        raise UndoNotAllowedError(f"Audit entry {entry.id} has already been undone")
