"""Builders and fakes shared by the profile sync tests."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from profilesync.domain.model import ActorRef, Domain, ProfileField, ProposedUpdate, Source
from profilesync.domain.ports import AdjudicationRequest, AdjudicationVerdict

if TYPE_CHECKING:
    from collections.abc import Mapping

    from profilesync.domain.model import ProfileValue

BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class TickingClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self._current = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            self._current += timedelta(seconds=1)
            return self._current


def make_update(  # noqa: PLR0913
    value: ProfileValue,
    *,
    entity_id: str = "S1",
    domain: Domain = Domain.ACADEMIC,
    field: str = "strongSubjects",
    confidence: int | None = 80,
    actor: ActorRef | None = None,
    source: Source = Source.SESSION,
    timestamp: datetime | None = None,
    source_id: str | None = None,
    reasoning: str | None = None,
    insights: Mapping[str, object] | None = None,
) -> ProposedUpdate:
    return ProposedUpdate(
        entity_id=entity_id,
        source=source,
        source_id=source_id,
        domain=domain,
        field=field,
        value=value,
        actor=actor or ActorRef.ai(),
        timestamp=timestamp or BASE_TIME,
        confidence=confidence,
        reasoning=reasoning,
        insights=insights or {},
    )


def make_field(
    value: ProfileValue,
    *,
    entity_id: str = "S1",
    domain: Domain = Domain.ACADEMIC,
    field: str = "strongSubjects",
    confidence: int | None = 80,
    actor: ActorRef | None = None,
    source_timestamp: datetime | None = None,
) -> ProfileField:
    return ProfileField.from_update(
        make_update(
            value,
            entity_id=entity_id,
            domain=domain,
            field=field,
            confidence=confidence,
            actor=actor,
            timestamp=source_timestamp,
        )
    )


@dataclass
class FakeAdjudicator:
    """Adjudicator returning a fixed choice, optionally slow or failing."""

    pick: str = "proposed"
    delay: float = 0.0
    error: Exception | None = None
    requests: list[AdjudicationRequest] = field(default_factory=list[AdjudicationRequest])

    def __call__(self, request: AdjudicationRequest) -> AdjudicationVerdict:
        self.requests.append(request)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.pick == "proposed":
            value = request.proposed_value
        elif self.pick == "current":
            value = request.current_value
        else:
            value = ["something", "else"]
        return AdjudicationVerdict(value=value, reasoning=f"picked {self.pick}", confidence=70)
