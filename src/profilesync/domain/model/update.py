"""Incoming candidate mutations produced outside the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from profilesync.domain.errors import ValidationError

from .enums import ActorKind
from .values import is_profile_value

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from .enums import Domain, Source
    from .values import ProfileValue


@dataclass(frozen=True, slots=True)
class ActorRef:
    """Origin of a value: an automated extraction or a named human."""

    kind: ActorKind
    identifier: str | None = None

    @classmethod
    def ai(cls, identifier: str | None = None) -> ActorRef:
        return cls(kind=ActorKind.AI, identifier=identifier)

    @classmethod
    def human(cls, identifier: str) -> ActorRef:
        return cls(kind=ActorKind.HUMAN, identifier=identifier)

    @property
    def label(self) -> str:
        return f"{self.kind}:{self.identifier}" if self.identifier else str(self.kind)


@dataclass(frozen=True, slots=True, kw_only=True)
class ProposedUpdate:
    """A field-level proposal, consumed exactly once by the reconciler."""

    entity_id: str
    source: Source
    domain: Domain
    field: str
    value: ProfileValue
    actor: ActorRef
    timestamp: datetime
    source_id: str | None = None
    confidence: int | None = None
    reasoning: str | None = None
    insights: Mapping[str, object] = field(default_factory=dict[str, object])

    def __post_init__(self) -> None:
        if not self.entity_id or not self.entity_id.strip():
            raise ValidationError("ProposedUpdate requires a non-blank entity_id")
        if not self.field or not self.field.strip():
            raise ValidationError("ProposedUpdate requires a non-blank field")
        if self.confidence is not None and not 0 <= self.confidence <= 100:  # noqa: PLR2004
            raise ValidationError(f"Confidence must be within 0-100, got {self.confidence}")
        if not is_profile_value(self.value):
            raise ValidationError(
                f"Unsupported value for {self.domain}.{self.field}: {self.value!r}"
            )
        if self.timestamp.tzinfo is None:
            raise ValidationError("ProposedUpdate timestamp must be timezone-aware")
