"""Port for the opaque adjudicator asked to pick between two conflicting values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from profilesync.domain.model import Domain, ProfileValue, Severity


@dataclass(frozen=True, slots=True, kw_only=True)
class AdjudicationRequest:
    entity_id: str
    domain: Domain
    field: str
    severity: Severity
    current_value: ProfileValue
    proposed_value: ProfileValue
    current_confidence: int | None = None
    proposed_confidence: int | None = None
    current_reasoning: str | None = None
    proposed_reasoning: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class AdjudicationVerdict:
    value: ProfileValue
    reasoning: str
    confidence: int | None = None


@runtime_checkable
class Adjudicator(Protocol):
    """Pick one of the two values in ``request``; may be slow or fail."""

    def __call__(self, request: AdjudicationRequest) -> AdjudicationVerdict: ...
