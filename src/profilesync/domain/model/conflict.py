"""Conflict ledger records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from profilesync.domain.errors import ConflictAlreadyResolvedError

from .entity import Entity, utcnow
from .enums import ResolutionMethod

if TYPE_CHECKING:
    from datetime import datetime

    from .enums import Domain, Severity
    from .values import ProfileValue


@dataclass(eq=False, kw_only=True)
class ConflictRecord(Entity):
    """A detected contradiction between the stored value and a proposal.

    Created ``pending`` and transitions exactly once to a terminal method.
    """

    entity_id: str
    domain: Domain
    conflict_type: str
    old_value: ProfileValue
    new_value: ProfileValue
    severity: Severity
    resolution_method: ResolutionMethod = ResolutionMethod.PENDING
    resolved_value: ProfileValue | None = None
    reasoning: str | None = None
    resolved_by: str | None = None
    timestamp: datetime = field(default_factory=utcnow)
    resolved_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.resolution_method is ResolutionMethod.PENDING

    def resolve(
        self,
        *,
        value: ProfileValue,
        method: ResolutionMethod,
        reasoning: str | None,
        resolved_by: str | None,
        now: datetime | None = None,
    ) -> None:
        if method is ResolutionMethod.PENDING:
            raise ValueError("A conflict cannot be resolved to the pending state")
        if not self.is_pending:
            raise ConflictAlreadyResolvedError(
                f"Conflict {self.id} already resolved via {self.resolution_method}"
            )
        self.resolved_value = value
        self.resolution_method = method
        self.reasoning = reasoning
        self.resolved_by = resolved_by
        self.resolved_at = now or utcnow()
