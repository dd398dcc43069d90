"""Rolled-up per-entity summary, derived from canonical fields."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entity import utcnow
from .enums import InterventionPriority

if TYPE_CHECKING:
    from datetime import datetime

NEUTRAL_SCORE = 50


@dataclass(eq=False, kw_only=True)
class UnifiedIdentity:
    """Cache row; always recomputable from the profile store and audit log."""

    entity_id: str
    summary: str = ""
    key_characteristics: list[str] = field(default_factory=list[str])
    academic_score: int = NEUTRAL_SCORE
    social_emotional_score: int = NEUTRAL_SCORE
    behavioral_score: int = NEUTRAL_SCORE
    motivation_score: int = NEUTRAL_SCORE
    risk_level: int = NEUTRAL_SCORE
    strengths: list[str] = field(default_factory=list[str])
    challenges: list[str] = field(default_factory=list[str])
    recent_changes: list[str] = field(default_factory=list[str])
    intervention_priority: InterventionPriority = InterventionPriority.MEDIUM
    last_updated: datetime = field(default_factory=utcnow)

    def refresh_from(self, other: UnifiedIdentity) -> None:
        """Copy every derived attribute of ``other`` onto this (possibly persisted) row."""

        self.summary = other.summary
        self.key_characteristics = list(other.key_characteristics)
        self.academic_score = other.academic_score
        self.social_emotional_score = other.social_emotional_score
        self.behavioral_score = other.behavioral_score
        self.motivation_score = other.motivation_score
        self.risk_level = other.risk_level
        self.strengths = list(other.strengths)
        self.challenges = list(other.challenges)
        self.recent_changes = list(other.recent_changes)
        self.intervention_priority = other.intervention_priority
        self.last_updated = other.last_updated
