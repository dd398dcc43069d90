"""Translate raw producer payloads into domain proposals."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

from pydantic import ValidationError as PydanticValidationError

from profilesync.domain.errors import ValidationError
from profilesync.domain.model import ActorRef, ProposedUpdate, is_number, utcnow
from profilesync.domain.schema import ValueKind, lookup_field, resolve_domain, resolve_field_alias
from profilesync.domain.sync import BulkResolutionItem

from .schema import (
    InsightBatchPayload,
    ManualResolutionPayload,
    ProposedUpdatePayload,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from pydantic import BaseModel

    from profilesync.domain.model import Domain, ProfileValue

    from .schema import ActorPayload

log = getLogger(__name__)


def _validate[TModel: BaseModel](model: type[TModel], raw: object) -> TModel:
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {model.__name__}: {exc}") from exc


def _aware(timestamp: datetime | None, now: datetime | None) -> datetime:
    if timestamp is None:
        return now or utcnow()
    return timestamp if timestamp.tzinfo else timestamp.replace(tzinfo=UTC)


def _actor(payload: ActorPayload) -> ActorRef:
    return ActorRef(kind=payload.kind, identifier=payload.identifier)


def _canonical_field(domain: Domain, key: str) -> str:
    # unknown keys pass through unchanged and are rejected by the reconciler
    field = resolve_field_alias(domain, key)
    if field is None:
        log.warning("No field mapping for %s key %r", domain, key)
        return key
    return field


def parse_update_payload(raw: object, *, now: datetime | None = None) -> ProposedUpdate:
    """Validate one raw update mapping and return the domain proposal."""

    payload = _validate(ProposedUpdatePayload, raw)
    return translate_update(payload, now=now)


def translate_update(
    payload: ProposedUpdatePayload, *, now: datetime | None = None
) -> ProposedUpdate:
    domain = resolve_domain(payload.domain)
    field = _canonical_field(domain, payload.field)
    return ProposedUpdate(
        entity_id=payload.entity_id,
        source=payload.source,
        source_id=payload.source_id,
        domain=domain,
        field=field,
        value=_coerce(domain, field, payload.value),
        actor=_actor(payload.actor),
        timestamp=_aware(payload.timestamp, now),
        confidence=payload.confidence,
        reasoning=payload.reasoning,
        insights=payload.insights,
    )


def proposals_from_insights(raw: object, *, now: datetime | None = None) -> list[ProposedUpdate]:
    """Map a batch of extracted insights onto one proposal per canonical field.

    Keys with no mapping are kept under their raw name so that they reach the
    audit log as rejected proposals. Empty values are skipped.
    """

    payload = _validate(InsightBatchPayload, raw)
    domain = resolve_domain(payload.domain)
    timestamp = _aware(payload.timestamp, now)
    actor = _actor(payload.actor)

    proposals: list[ProposedUpdate] = []
    for key, value in payload.insights.items():
        if value is None or value == "" or value == []:
            continue
        field = _canonical_field(domain, key)
        log.debug("Mapped %s key %r -> %s", domain, key, field)
        proposals.append(
            ProposedUpdate(
                entity_id=payload.entity_id,
                source=payload.source,
                source_id=payload.source_id,
                domain=domain,
                field=field,
                value=_coerce(domain, field, value),
                actor=actor,
                timestamp=timestamp,
                confidence=payload.confidence,
                reasoning=payload.reasoning,
                insights={key: value},
            )
        )
    return proposals


def parse_bulk_items(raw_items: Iterable[object]) -> list[BulkResolutionItem]:
    items: list[BulkResolutionItem] = []
    for raw in raw_items:
        payload = _validate(ManualResolutionPayload, raw)
        items.append(
            BulkResolutionItem(
                conflict_id=payload.conflict_id,
                selected_value=payload.selected_value,
                reason=payload.reason,
            )
        )
    return items


def _coerce(domain: Domain, field: str, value: Any) -> ProfileValue:  # noqa: ANN401
    """Fit producer shorthand onto the field kind; anything else is left for validation."""

    schema = lookup_field(domain, field)
    if schema is None:
        return value
    if schema.kind is ValueKind.LIST and isinstance(value, str):
        return [value]
    if schema.kind is ValueKind.NUMBER and is_number(value):
        low, high = schema.scale()
        return max(low, min(high, cast(float, value)))
    if schema.kind is ValueKind.NUMBER and isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return value
        low, high = schema.scale()
        clamped = max(low, min(high, number))
        return int(clamped) if clamped.is_integer() else clamped
    return value


def mapping_summary(proposals: Iterable[ProposedUpdate]) -> Mapping[str, ProfileValue]:
    """``{"domain.field": value}`` for logging and CLI echo."""

    return {f"{proposal.domain}.{proposal.field}": proposal.value for proposal in proposals}
