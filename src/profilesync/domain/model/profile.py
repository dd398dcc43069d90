"""Canonical profile fields: the accepted current value per entity/domain/field."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entity import Entity, utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from .enums import ActorKind, Domain, Source
    from .update import ActorRef, ProposedUpdate
    from .values import ProfileValue


@dataclass(eq=False, kw_only=True)
class ProfileField(Entity):
    """Accepted value for ``(entity_id, domain, field)``; mutated only by the reconciler."""

    entity_id: str
    domain: Domain
    field: str
    value: ProfileValue
    source: Source
    actor_kind: ActorKind
    source_timestamp: datetime
    actor_id: str | None = None
    confidence: int | None = None
    reasoning: str | None = None
    updated_at: datetime = field(default_factory=utcnow)
    # maintained by the persistence adapter
    version: int | None = field(default=None, init=False)

    @classmethod
    def from_update(
        cls,
        update: ProposedUpdate,
        *,
        value: ProfileValue | None = None,
        now: datetime | None = None,
    ) -> ProfileField:
        return cls(
            entity_id=update.entity_id,
            domain=update.domain,
            field=update.field,
            value=update.value if value is None else value,
            source=update.source,
            actor_kind=update.actor.kind,
            actor_id=update.actor.identifier,
            confidence=update.confidence,
            reasoning=update.reasoning,
            source_timestamp=update.timestamp,
            updated_at=now or utcnow(),
        )

    def assign(
        self,
        value: ProfileValue,
        *,
        source: Source,
        actor: ActorRef,
        confidence: int | None,
        reasoning: str | None,
        source_timestamp: datetime,
        now: datetime | None = None,
    ) -> None:
        self.value = value
        self.source = source
        self.actor_kind = actor.kind
        self.actor_id = actor.identifier
        self.confidence = confidence
        self.reasoning = reasoning
        self.source_timestamp = source_timestamp
        self.updated_at = now or utcnow()

    def written_by(self, actor: ActorRef) -> bool:
        return self.actor_kind == actor.kind and self.actor_id == actor.identifier
