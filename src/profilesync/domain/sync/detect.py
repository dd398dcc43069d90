"""Conflict detection: compare a proposal against the accepted field value.

Detection is a pure function. All tunable numbers live in
``DetectionThresholds`` so that the policy can be reviewed and adjusted in one
place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, Literal, cast

from profilesync.domain.model import Domain, Severity, is_number, values_equal
from profilesync.domain.schema import ValueKind, lookup_field

if TYPE_CHECKING:
    from collections.abc import Mapping

    from profilesync.domain.model import ProfileField, ProposedUpdate


@dataclass(frozen=True, slots=True)
class DetectionThresholds:
    sensitive_domains: frozenset[Domain] = frozenset({Domain.RISK_FACTORS, Domain.HEALTH})
    # share of the numeric scale a sensitive value may move before it counts as high
    numeric_divergence: Mapping[Domain, float] = field(
        default_factory=lambda: MappingProxyType(
            {Domain.RISK_FACTORS: 0.30, Domain.HEALTH: 0.30}
        )
    )
    default_numeric_divergence: float = 0.30
    confidence_band: int = 15
    neutral_confidence: int = 50

    def divergence_ratio(self, domain: Domain) -> float:
        return self.numeric_divergence.get(domain, self.default_numeric_divergence)


DEFAULT_THRESHOLDS: Final[DetectionThresholds] = DetectionThresholds()


class DetectionOutcome(StrEnum):
    NO_CONFLICT = "no_conflict"
    CONFLICT = "conflict"


@dataclass(slots=True, kw_only=True)
class NoConflict:
    """Proposal can be written directly."""

    current: ProfileField | None
    outcome: Literal[DetectionOutcome.NO_CONFLICT] = DetectionOutcome.NO_CONFLICT


@dataclass(slots=True, kw_only=True)
class Conflict:
    """Proposal contradicts the accepted value."""

    severity: Severity
    current: ProfileField
    proposed: ProposedUpdate
    reason: str
    outcome: Literal[DetectionOutcome.CONFLICT] = DetectionOutcome.CONFLICT


type Decision = NoConflict | Conflict


def detect_conflict(
    current: ProfileField | None,
    proposed: ProposedUpdate,
    *,
    thresholds: DetectionThresholds = DEFAULT_THRESHOLDS,
) -> Decision:
    """Classify ``proposed`` against ``current``."""

    if current is None or values_equal(current.value, proposed.value):
        return NoConflict(current=current)
    severity, reason = _classify(current, proposed, thresholds)
    return Conflict(severity=severity, current=current, proposed=proposed, reason=reason)


def _classify(
    current: ProfileField,
    proposed: ProposedUpdate,
    thresholds: DetectionThresholds,
) -> tuple[Severity, str]:
    if proposed.domain in thresholds.sensitive_domains and _diverges_materially(
        current, proposed, thresholds
    ):
        reason = f"Material change on sensitive field {proposed.domain}.{proposed.field}"
        return Severity.HIGH, reason

    prior = thresholds.neutral_confidence if current.confidence is None else current.confidence
    incoming = (
        thresholds.neutral_confidence if proposed.confidence is None else proposed.confidence
    )
    if abs(prior - incoming) <= thresholds.confidence_band:
        return Severity.MEDIUM, f"Confidence {incoming} is close to prior confidence {prior}"
    if current.written_by(proposed.actor):
        return Severity.MEDIUM, f"{proposed.actor.label} contradicts its own earlier value"
    return Severity.LOW, f"Confidence {incoming} differs from prior confidence {prior}"


def _diverges_materially(
    current: ProfileField,
    proposed: ProposedUpdate,
    thresholds: DetectionThresholds,
) -> bool:
    schema = lookup_field(proposed.domain, proposed.field)
    if (
        schema is not None
        and schema.kind is ValueKind.NUMBER
        and is_number(current.value)
        and is_number(proposed.value)
    ):
        delta = abs(cast(float, current.value) - cast(float, proposed.value))
        return delta > thresholds.divergence_ratio(proposed.domain) * schema.span
    # categorical values: any mismatch counts
    return True
