"""Pydantic models describing raw producer payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from profilesync.domain.model import ActorKind, Source


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _fraction_to_percent(value: object) -> object:
    # producers report either 0-1 fractions or 0-100 percentages
    if isinstance(value, float) and 0 < value < 1:
        return round(value * 100)
    return value


class InboundBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ActorPayload(InboundBaseModel):
    kind: ActorKind = ActorKind.AI
    identifier: str | None = Field(default=None, alias="id")

    _normalize_identifier = field_validator("identifier", mode="before")(_blank_to_none)


class _ProducerPayload(InboundBaseModel):
    entity_id: str = Field(alias="entityId", min_length=1)
    source: Source = Source.OTHER
    source_id: str | None = Field(default=None, alias="sourceId")
    domain: str
    confidence: int | None = Field(default=None, ge=0, le=100)
    reasoning: str | None = None
    actor: ActorPayload = Field(default_factory=ActorPayload)
    timestamp: datetime | None = None

    _normalize_source_id = field_validator("source_id", mode="before")(_blank_to_none)
    _normalize_reasoning = field_validator("reasoning", mode="before")(_blank_to_none)
    _normalize_confidence = field_validator("confidence", mode="before")(_fraction_to_percent)


class ProposedUpdatePayload(_ProducerPayload):
    """One field-level proposal, e.g. a line of a JSON-lines submission file."""

    field: str = Field(min_length=1)
    value: Any
    insights: dict[str, Any] = Field(default_factory=dict[str, Any])


class InsightBatchPayload(_ProducerPayload):
    """Free-form extracted insights for one domain, keyed by producer vocabulary."""

    insights: dict[str, Any]


class ManualResolutionPayload(InboundBaseModel):
    conflict_id: UUID = Field(alias="conflictId")
    selected_value: Any = Field(alias="selectedValue")
    reason: str | None = None

    _normalize_reason = field_validator("reason", mode="before")(_blank_to_none)
