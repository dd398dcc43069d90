"""Unified identity aggregation.

``build_unified_identity`` is a pure function over the canonical fields of one
entity. Domain scores are weighted composites defined by ``SCORE_WEIGHTS``. A
negative weight means a higher raw value lowers the score.
"""

from __future__ import annotations

import logging
import re
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final, cast

from profilesync.domain.model import (
    NEUTRAL_SCORE,
    AuditAction,
    Domain,
    InterventionPriority,
    Severity,
    UnifiedIdentity,
    is_number,
    utcnow,
)
from profilesync.domain.schema import FieldRole, ValueKind, lookup_field

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence
    from datetime import datetime

    from profilesync.domain.model import AuditLogEntry, ProfileField, ProfileValue
    from profilesync.domain.ports import ProfileSyncRepositories

log = logging.getLogger(__name__)


class ScoreDimension(StrEnum):
    ACADEMIC = "academic"
    SOCIAL_EMOTIONAL = "socialEmotional"
    BEHAVIORAL = "behavioral"
    MOTIVATION = "motivation"
    RISK = "risk"


type FieldKey = tuple[Domain, str]

_A = Domain.ACADEMIC
_SE = Domain.SOCIAL_EMOTIONAL
_B = Domain.BEHAVIORAL
_M = Domain.MOTIVATION
_R = Domain.RISK_FACTORS
_F = Domain.FAMILY

SCORE_WEIGHTS: Final[Mapping[ScoreDimension, Mapping[FieldKey, float]]] = MappingProxyType(
    {
        ScoreDimension.ACADEMIC: MappingProxyType(
            {
                (_A, "homeworkCompletionRate"): 2.0,
                (_A, "studyHoursPerWeek"): 1.0,
                (_A, "overallMotivation"): 1.0,
            }
        ),
        ScoreDimension.SOCIAL_EMOTIONAL: MappingProxyType(
            {
                (_SE, "empathyLevel"): 1.0,
                (_SE, "selfAwarenessLevel"): 1.0,
                (_SE, "emotionRegulationLevel"): 1.5,
                (_SE, "conflictResolutionLevel"): 1.0,
                (_SE, "leadershipLevel"): 0.5,
                (_SE, "teamworkLevel"): 1.0,
                (_SE, "communicationLevel"): 1.0,
            }
        ),
        ScoreDimension.BEHAVIORAL: MappingProxyType(
            {
                (_B, "attentionSpan"): 1.0,
                (_B, "ruleCompliance"): 1.5,
                (_B, "impulsivityLevel"): -1.0,
                (_B, "aggressionLevel"): -1.5,
            }
        ),
        ScoreDimension.MOTIVATION: MappingProxyType(
            {
                (_M, "motivationLevel"): 2.0,
                (_M, "engagementLevel"): 1.0,
                (_M, "persistenceLevel"): 1.0,
                (_A, "overallMotivation"): 0.5,
                (_F, "parentalInvolvement"): 0.5,
            }
        ),
        ScoreDimension.RISK: MappingProxyType(
            {
                (_R, "overallRiskLevel"): 3.0,
                (_R, "selfHarmRisk"): 2.0,
                (_R, "suicidalIdeation"): 3.0,
                (_R, "substanceUseRisk"): 1.0,
                (_R, "violenceRisk"): 1.0,
                (_R, "truancyRisk"): 1.0,
                (_B, "aggressionLevel"): 0.5,
            }
        ),
    }
)

# checked top-down; first threshold reached wins
PRIORITY_THRESHOLDS: Final[tuple[tuple[int, InterventionPriority], ...]] = (
    (80, InterventionPriority.CRITICAL),
    (60, InterventionPriority.HIGH),
    (35, InterventionPriority.MEDIUM),
)
STRENGTH_CUTOFF: Final[float] = 0.7
CHALLENGE_CUTOFF: Final[float] = 0.3
SUMMARY_LIST_LIMIT: Final[int] = 3

_PRIORITY_ORDER: Final = tuple(InterventionPriority)

# polarity of each non-risk scored field, used to label strengths/challenges
_POLARITY: Final[Mapping[FieldKey, int]] = MappingProxyType(
    {
        key: 1 if weight > 0 else -1
        for dimension, weights in SCORE_WEIGHTS.items()
        if dimension is not ScoreDimension.RISK
        for key, weight in weights.items()
    }
)


def intervention_priority(risk_level: int, unresolved_high_conflicts: int) -> InterventionPriority:
    """Map a risk level to a priority; open high-severity conflicts force at least high."""

    priority = InterventionPriority.LOW
    for threshold, candidate in PRIORITY_THRESHOLDS:
        if risk_level >= threshold:
            priority = candidate
            break
    if unresolved_high_conflicts and _PRIORITY_ORDER.index(priority) < _PRIORITY_ORDER.index(
        InterventionPriority.HIGH
    ):
        priority = InterventionPriority.HIGH
    return priority


def build_unified_identity(
    entity_id: str,
    fields: Iterable[ProfileField],
    recent_entries: Sequence[AuditLogEntry],
    unresolved_high_conflicts: int,
    *,
    now: datetime | None = None,
) -> UnifiedIdentity:
    """Derive the unified identity for ``entity_id`` from its canonical fields."""

    ordered = sorted(fields, key=lambda item: (list(Domain).index(item.domain), item.field))
    values: dict[FieldKey, ProfileValue] = {
        (item.domain, item.field): item.value for item in ordered
    }

    scores = {dimension: _score(dimension, values) for dimension in ScoreDimension}
    strengths, challenges = _strengths_and_challenges(ordered)
    priority = intervention_priority(scores[ScoreDimension.RISK], unresolved_high_conflicts)

    identity = UnifiedIdentity(
        entity_id=entity_id,
        key_characteristics=_key_characteristics(ordered),
        academic_score=scores[ScoreDimension.ACADEMIC],
        social_emotional_score=scores[ScoreDimension.SOCIAL_EMOTIONAL],
        behavioral_score=scores[ScoreDimension.BEHAVIORAL],
        motivation_score=scores[ScoreDimension.MOTIVATION],
        risk_level=scores[ScoreDimension.RISK],
        strengths=strengths,
        challenges=challenges,
        recent_changes=_recent_changes(recent_entries),
        intervention_priority=priority,
        last_updated=now or utcnow(),
    )
    identity.summary = _summary(identity, field_count=len(ordered))
    return identity


class UnifiedIdentityAggregator:
    """Recompute and store the unified identity of one entity."""

    def __init__(
        self,
        *,
        recent_changes: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._recent_changes = recent_changes
        self._clock = clock

    def recompute(
        self,
        repositories: ProfileSyncRepositories,
        entity_id: str,
        *,
        now: datetime | None = None,
    ) -> UnifiedIdentity:
        computed = build_unified_identity(
            entity_id,
            repositories.fields.list_for_entity(entity_id),
            repositories.audit_log.recent(entity_id, limit=self._recent_changes),
            repositories.conflicts.count_pending(entity_id, severity=Severity.HIGH),
            now=now or self._clock(),
        )
        existing = repositories.identities.get(entity_id)
        if existing is None:
            repositories.identities.add(computed)
            identity = computed
        else:
            existing.refresh_from(computed)
            identity = existing
        log.debug(
            "Recomputed identity for %s: risk=%s priority=%s",
            entity_id,
            identity.risk_level,
            identity.intervention_priority,
        )
        return identity


def _score(dimension: ScoreDimension, values: Mapping[FieldKey, ProfileValue]) -> int:
    total = 0.0
    weight_sum = 0.0
    for key, weight in SCORE_WEIGHTS[dimension].items():
        if key not in values:
            continue
        normalised = _normalised(key, values[key])
        if normalised is None:
            continue
        adjusted = normalised if weight > 0 else 1.0 - normalised
        total += abs(weight) * adjusted
        weight_sum += abs(weight)
    if not weight_sum:
        return NEUTRAL_SCORE
    return round(100 * total / weight_sum)


def _normalised(key: FieldKey, value: ProfileValue) -> float | None:
    schema = lookup_field(*key)
    if schema is None:
        return None
    if schema.kind is ValueKind.BOOLEAN and isinstance(value, bool):
        return 1.0 if value else 0.0
    if schema.kind is ValueKind.NUMBER and is_number(value):
        return schema.normalise(cast(float, value))
    return None


def _strengths_and_challenges(fields: Sequence[ProfileField]) -> tuple[list[str], list[str]]:
    strengths: list[str] = []
    challenges: list[str] = []
    for item in fields:
        schema = lookup_field(item.domain, item.field)
        if schema is None:
            continue
        if schema.kind is ValueKind.LIST and schema.role is FieldRole.STRENGTH:
            strengths.extend(_items(item.value))
        elif schema.kind is ValueKind.LIST and schema.role is FieldRole.CHALLENGE:
            challenges.extend(_items(item.value))

        polarity = _POLARITY.get((item.domain, item.field))
        normalised = _normalised((item.domain, item.field), item.value)
        if polarity is None or normalised is None:
            continue
        adjusted = normalised if polarity > 0 else 1.0 - normalised
        label = _humanise(item.field)
        if adjusted >= STRENGTH_CUTOFF:
            strengths.append(f"strong {label}" if polarity > 0 else f"low {label}")
        elif adjusted <= CHALLENGE_CUTOFF:
            challenges.append(f"low {label}" if polarity > 0 else f"high {label}")
    return _unique(strengths), _unique(challenges)


def _key_characteristics(fields: Sequence[ProfileField]) -> list[str]:
    characteristics: list[str] = []
    for item in fields:
        schema = lookup_field(item.domain, item.field)
        if schema is None or schema.role is not FieldRole.CHARACTERISTIC:
            continue
        rendered = ", ".join(_items(item.value))
        if rendered:
            characteristics.append(f"{_humanise(item.field)}: {rendered}")
    return characteristics


def _recent_changes(entries: Sequence[AuditLogEntry]) -> list[str]:
    return [
        f"{entry.domain}.{entry.field} {entry.action} via {entry.source} "
        f"({entry.timestamp:%Y-%m-%d %H:%M})"
        for entry in entries
        if entry.action is not AuditAction.REJECTED
    ]


def _summary(identity: UnifiedIdentity, *, field_count: int) -> str:
    parts = [
        f"Academic {identity.academic_score}, social-emotional "
        f"{identity.social_emotional_score}, behavioral {identity.behavioral_score}, "
        f"motivation {identity.motivation_score}, risk {identity.risk_level}; "
        f"priority {identity.intervention_priority}.",
        f"{field_count} tracked field{'s' if field_count != 1 else ''}.",
    ]
    if identity.strengths:
        parts.append(f"Strengths: {', '.join(identity.strengths[:SUMMARY_LIST_LIMIT])}.")
    if identity.challenges:
        parts.append(f"Challenges: {', '.join(identity.challenges[:SUMMARY_LIST_LIMIT])}.")
    return " ".join(parts)


def _items(value: ProfileValue) -> list[str]:
    if isinstance(value, list):
        return [str(item) for item in cast(list[Any], value) if item is not None and item != ""]
    return [str(value)]


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _humanise(name: str) -> str:
    return _CAMEL_BOUNDARY.sub(" ", name).lower()


def _unique(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))
