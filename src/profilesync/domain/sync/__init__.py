"""Profile synchronization and conflict resolution core."""

from __future__ import annotations

from .detect import (
    DEFAULT_THRESHOLDS,
    Conflict,
    Decision,
    DetectionOutcome,
    DetectionThresholds,
    NoConflict,
    detect_conflict,
)
from .engine import (
    BulkResolutionItem,
    BulkResolutionResult,
    ProfileSyncEngine,
    build_engine,
)
from .envelope import (
    AsyncExecutionEnvelope,
    AsyncStats,
    OperationRecord,
    OperationStatus,
    OperationType,
    TypeStats,
)
from .identity import (
    SCORE_WEIGHTS,
    ScoreDimension,
    UnifiedIdentityAggregator,
    build_unified_identity,
    intervention_priority,
)
from .locks import EntityLockRegistry
from .policy import MANUAL_CONFIDENCE, PolicyHint, Resolution, ResolutionPolicyEngine, Winner
from .reconcile import ApplyResult, Reconciler
from .undo import UndoManager

__all__ = [
    "DEFAULT_THRESHOLDS",
    "MANUAL_CONFIDENCE",
    "SCORE_WEIGHTS",
    "ApplyResult",
    "AsyncExecutionEnvelope",
    "AsyncStats",
    "BulkResolutionItem",
    "BulkResolutionResult",
    "Conflict",
    "Decision",
    "DetectionOutcome",
    "DetectionThresholds",
    "EntityLockRegistry",
    "NoConflict",
    "OperationRecord",
    "OperationStatus",
    "OperationType",
    "PolicyHint",
    "ProfileSyncEngine",
    "Reconciler",
    "Resolution",
    "ResolutionPolicyEngine",
    "ScoreDimension",
    "TypeStats",
    "UndoManager",
    "UnifiedIdentityAggregator",
    "Winner",
    "build_engine",
    "build_unified_identity",
    "detect_conflict",
    "intervention_priority",
]
