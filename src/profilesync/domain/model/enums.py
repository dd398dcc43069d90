"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Source(StrEnum):
    SESSION = "session"
    SURVEY = "survey"
    EXAM_IMPORT = "examImport"
    INCIDENT = "incident"
    MANUAL_CORRECTION = "manualCorrection"
    OTHER = "other"
    # only emitted by the undo manager
    UNDO = "undo"


class Domain(StrEnum):
    ACADEMIC = "academic"
    SOCIAL_EMOTIONAL = "socialEmotional"
    BEHAVIORAL = "behavioral"
    MOTIVATION = "motivation"
    RISK_FACTORS = "riskFactors"
    TALENTS = "talents"
    HEALTH = "health"
    FAMILY = "family"


class ActorKind(StrEnum):
    AI = "ai"
    HUMAN = "human"


class AuditAction(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    VALIDATED = "validated"
    REJECTED = "rejected"


class ProcessedBy(StrEnum):
    AI = "ai"
    MANUAL = "manual"


class ResolutionMethod(StrEnum):
    PENDING = "pending"
    AI_AUTO = "ai_auto"
    TIME_BASED = "time_based"
    CONFIDENCE_BASED = "confidence_based"
    MANUAL = "manual"
    MANUAL_BULK = "manual_bulk"


class Severity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.LOW: 0, Severity.MEDIUM: 1, Severity.HIGH: 2}


class InterventionPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
