"""Closed catalogue of canonical profile fields, keyed by domain.

Every tracked field is declared here once, with its value kind, numeric scale
and the producer keys that map onto it. Writes to a field that is not listed
are rejected by the reconciler instead of failing at the storage layer.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Final, cast

from profilesync.domain.errors import UnknownMappingError, ValidationError
from profilesync.domain.model import Domain, ProfileValue, is_number


class ValueKind(StrEnum):
    NUMBER = "number"
    TEXT = "text"
    BOOLEAN = "boolean"
    LIST = "list"
    OBJECT = "object"


class FieldRole(StrEnum):
    """How the identity aggregator reads a field."""

    STRENGTH = "strength"
    CHALLENGE = "challenge"
    CHARACTERISTIC = "characteristic"


@dataclass(frozen=True, slots=True)
class FieldSchema:
    name: str
    kind: ValueKind
    minimum: float | None = None
    maximum: float | None = None
    role: FieldRole | None = None
    aliases: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.kind is ValueKind.NUMBER and (self.minimum is None or self.maximum is None):
            raise ValueError(f"Numeric field {self.name} requires a scale")

    def scale(self) -> tuple[float, float]:
        if self.minimum is None or self.maximum is None:
            raise ValueError(f"Field {self.name} has no numeric scale")
        return self.minimum, self.maximum

    @property
    def span(self) -> float:
        low, high = self.scale()
        return high - low

    def normalise(self, value: float) -> float:
        """Project a numeric value onto ``[0, 1]`` using the field scale."""

        low, high = self.scale()
        if high == low:
            return 0.0
        return min(1.0, max(0.0, (value - low) / (high - low)))

    def validate(self, value: ProfileValue) -> None:
        """Raise ``ValidationError`` unless ``value`` matches this field's kind and scale."""

        if self.kind is ValueKind.NUMBER:
            if not is_number(value):
                raise ValidationError(f"{self.name} expects a number, got {value!r}")
            low, high = self.scale()
            if not low <= cast(float, value) <= high:
                raise ValidationError(f"{self.name} must be within {low:g}-{high:g}, got {value}")
        elif self.kind is ValueKind.TEXT and not isinstance(value, str):
            raise ValidationError(f"{self.name} expects text, got {value!r}")
        elif self.kind is ValueKind.BOOLEAN and not isinstance(value, bool):
            raise ValidationError(f"{self.name} expects a boolean, got {value!r}")
        elif self.kind is ValueKind.LIST and not isinstance(value, list):
            raise ValidationError(f"{self.name} expects a list, got {value!r}")
        elif self.kind is ValueKind.OBJECT and not isinstance(value, dict):
            raise ValidationError(f"{self.name} expects an object, got {value!r}")


def _number(
    name: str, maximum: float, *, minimum: float = 0, aliases: tuple[str, ...] = ()
) -> FieldSchema:
    return FieldSchema(name, ValueKind.NUMBER, minimum=minimum, maximum=maximum, aliases=aliases)


def _level(name: str, *aliases: str) -> FieldSchema:
    return _number(name, 10, aliases=aliases)


def _list(name: str, role: FieldRole | None = None, *aliases: str) -> FieldSchema:
    return FieldSchema(name, ValueKind.LIST, role=role, aliases=aliases)


def _text(name: str, role: FieldRole | None = None, *aliases: str) -> FieldSchema:
    return FieldSchema(name, ValueKind.TEXT, role=role, aliases=aliases)


_S = FieldRole.STRENGTH
_C = FieldRole.CHALLENGE
_K = FieldRole.CHARACTERISTIC

_CATALOGUE: Final[dict[Domain, tuple[FieldSchema, ...]]] = {
    Domain.ACADEMIC: (
        _list("strongSubjects", _S, "strong_subject", "favorite_subject", "best_subjects"),
        _list("weakSubjects", _C, "weak_subject", "struggling_subjects"),
        _list("strongSkills", _S, "academic_strengths"),
        _list("weakSkills", _C, "academic_weaknesses"),
        _number("studyHoursPerWeek", 60, aliases=("study_hours", "weekly_study_hours")),
        _number("homeworkCompletionRate", 100, aliases=("homework_completion",)),
        _level("overallMotivation", "academic_motivation"),
        _text("primaryLearningStyle", _K, "learning_style"),
    ),
    Domain.SOCIAL_EMOTIONAL: (
        _list("strongSocialSkills", _S, "social_strengths"),
        _list("developingSocialSkills", _C, "social_weaknesses"),
        _level("empathyLevel", "empathy"),
        _level("selfAwarenessLevel", "self_awareness"),
        _level("emotionRegulationLevel", "emotion_regulation", "emotional_regulation"),
        _level("conflictResolutionLevel", "conflict_resolution"),
        _level("leadershipLevel", "leadership"),
        _level("teamworkLevel", "teamwork"),
        _level("communicationLevel", "communication"),
        _text("friendCircleSize", None, "friend_count"),
        _text("friendCircleQuality", None, "friendship_quality"),
        _text("socialRole", _K, "social_role"),
        _text("bullyingStatus", None, "bullying"),
    ),
    Domain.BEHAVIORAL: (
        _level("attentionSpan", "attention", "focus"),
        _level("impulsivityLevel", "impulsivity"),
        _level("aggressionLevel", "aggression"),
        _level("ruleCompliance", "rule_following", "compliance"),
        _list("disciplineIssues", _C, "discipline", "incidents"),
    ),
    Domain.MOTIVATION: (
        _level("motivationLevel", "motivation"),
        _list("academicGoals", None, "goals"),
        _list("careerAspirations", _K, "career_goals", "career_interests"),
        _level("engagementLevel", "engagement"),
        _level("persistenceLevel", "persistence", "grit"),
    ),
    Domain.RISK_FACTORS: (
        _number("overallRiskLevel", 100, aliases=("risk_level", "risk_score")),
        _level("substanceUseRisk", "substance_use"),
        _level("selfHarmRisk", "self_harm"),
        FieldSchema("suicidalIdeation", ValueKind.BOOLEAN, aliases=("suicidal_thoughts",)),
        _level("violenceRisk", "violence"),
        _level("truancyRisk", "truancy", "absenteeism"),
    ),
    Domain.TALENTS: (
        _list("creativeTalents", _S, "creative_skills", "artistic_talents"),
        _list("physicalTalents", _S, "sports_talents", "athletic_skills"),
        _list("primaryInterests", _K, "interests", "hobbies"),
        _list("exploratoryInterests", None, "new_interests"),
        _number("weeklyEngagementHours", 40, aliases=("activity_hours",)),
        _list("clubMemberships", None, "clubs"),
        _list("competitionsParticipated", None, "competitions"),
    ),
    Domain.HEALTH: (
        _text("lastHealthCheckup", None, "last_checkup"),
        _list("chronicDiseases", None, "chronic_conditions"),
        _list("currentMedications", None, "medications"),
        _list("allergies", None, "allergy"),
        _text("medicalHistory", None, "history"),
        _text("specialNeeds", _K, "special_needs"),
        _text("physicalLimitations", None, "limitations"),
    ),
    Domain.FAMILY: (
        _text("familyStructure", _K, "family_type"),
        _text("parentsEducationLevel", None, "parent_education"),
        _text("familyIncomeLevel", None, "income_level"),
        _level("parentalInvolvement", "parent_involvement"),
        _text("homeEnvironment", None, "home_situation"),
        _number("numberOfSiblings", 20, aliases=("siblings", "sibling_count")),
        FieldSchema("familyContext", ValueKind.OBJECT, aliases=("family_details",)),
    ),
}

FIELD_SCHEMAS: Final[Mapping[Domain, Mapping[str, FieldSchema]]] = MappingProxyType(
    {
        domain: MappingProxyType({schema.name: schema for schema in schemas})
        for domain, schemas in _CATALOGUE.items()
    }
)

_ALIAS_STRIP = re.compile(r"[\s_\-]+")


def normalise_key(key: str) -> str:
    return _ALIAS_STRIP.sub("", key).lower()


_ALIAS_INDEX: Final[Mapping[Domain, Mapping[str, str]]] = MappingProxyType(
    {
        domain: MappingProxyType(
            {
                normalise_key(alias): schema.name
                for schema in schemas
                for alias in (schema.name, *schema.aliases)
            }
        )
        for domain, schemas in _CATALOGUE.items()
    }
)


def lookup_field(domain: Domain, field: str) -> FieldSchema | None:
    """Return the schema for ``domain.field`` or ``None`` when it is not tracked."""

    return FIELD_SCHEMAS[domain].get(field)


def resolve_field_alias(domain: Domain, key: str) -> str | None:
    """Map a producer key such as ``"Strong Subject"`` to its canonical field name."""

    return _ALIAS_INDEX[domain].get(normalise_key(key))


def require_field(domain: Domain, field: str) -> FieldSchema:
    """Like ``lookup_field`` but raise ``UnknownMappingError`` for untracked fields."""

    schema = lookup_field(domain, field)
    if schema is None:
        raise UnknownMappingError(domain, field)
    return schema


_DOMAIN_ALIASES: Final[Mapping[str, Domain]] = MappingProxyType(
    {
        **{normalise_key(domain.value): domain for domain in Domain},
        "talentsinterests": Domain.TALENTS,
        "risk": Domain.RISK_FACTORS,
        "social": Domain.SOCIAL_EMOTIONAL,
    }
)


def resolve_domain(key: str) -> Domain:
    """Map producer domain keys (``social_emotional``, ``riskFactors``...) to ``Domain``."""

    domain = _DOMAIN_ALIASES.get(normalise_key(key))
    if domain is None:
        raise ValidationError(f"Unknown profile domain: {key!r}")
    return domain
