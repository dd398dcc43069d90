"""Public domain model surface."""

from __future__ import annotations

from profilesync.domain.model.audit import AuditLogEntry, SyncStatistics, UndoRecord
from profilesync.domain.model.conflict import ConflictRecord
from profilesync.domain.model.entity import Entity, new_id, utcnow
from profilesync.domain.model.enums import (
    ActorKind,
    AuditAction,
    Domain,
    InterventionPriority,
    ProcessedBy,
    ResolutionMethod,
    Severity,
    Source,
)
from profilesync.domain.model.identity import NEUTRAL_SCORE, UnifiedIdentity
from profilesync.domain.model.profile import ProfileField
from profilesync.domain.model.update import ActorRef, ProposedUpdate
from profilesync.domain.model.values import (
    ProfileValue,
    is_number,
    is_profile_value,
    values_equal,
)

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    "utcnow",
    # enums
    "ActorKind",
    "AuditAction",
    "Domain",
    "InterventionPriority",
    "ProcessedBy",
    "ResolutionMethod",
    "Severity",
    "Source",
    # values
    "ProfileValue",
    "is_number",
    "is_profile_value",
    "values_equal",
    # records
    "ActorRef",
    "AuditLogEntry",
    "ConflictRecord",
    "NEUTRAL_SCORE",
    "ProfileField",
    "ProposedUpdate",
    "SyncStatistics",
    "UndoRecord",
    "UnifiedIdentity",
]
