"""Resolution policy engine.

Strategies are tried in a fixed order: manual, ai_auto, confidence_based and
finally time_based. Every call ends in a terminal method. The adjudicator used by
``ai_auto`` runs on its own executor with a timeout, and any failure falls
through to the next strategy.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from profilesync.config.engine import DEFAULT_ADJUDICATION_TIMEOUT
from profilesync.domain.errors import AdjudicationError, AdjudicationTimeoutError
from profilesync.domain.model import ActorKind, ResolutionMethod, Severity, values_equal
from profilesync.domain.ports.adjudication import AdjudicationRequest

if TYPE_CHECKING:
    from collections.abc import Callable

    from profilesync.domain.model import ProfileValue
    from profilesync.domain.ports.adjudication import AdjudicationVerdict, Adjudicator

    from .detect import Conflict

log = logging.getLogger(__name__)

# confidence recorded for values asserted by a human
MANUAL_CONFIDENCE: Final[int] = 100
AI_RESOLVER: Final[str] = "ai"
SYSTEM_RESOLVER: Final[str] = "system"

_MANUAL_METHODS: Final = frozenset({ResolutionMethod.MANUAL, ResolutionMethod.MANUAL_BULK})


class Winner(StrEnum):
    """Which value a resolution settled on."""

    CURRENT = "current"
    PROPOSED = "proposed"
    SELECTED = "selected"


@dataclass(frozen=True, slots=True, kw_only=True)
class PolicyHint:
    """Caller-supplied guidance for resolving one conflict.

    ``selected_value`` makes the resolution manual. ``method`` pins one automatic
    strategy; when the pinned strategy does not apply, time_based is used.
    """

    selected_value: ProfileValue | None = None
    reason: str | None = None
    resolved_by: str | None = None
    method: ResolutionMethod | None = None

    @property
    def is_manual(self) -> bool:
        return self.selected_value is not None


@dataclass(frozen=True, slots=True, kw_only=True)
class Resolution:
    value: ProfileValue
    method: ResolutionMethod
    reasoning: str
    resolved_by: str | None
    winner: Winner
    confidence: int | None = None

    @property
    def is_manual(self) -> bool:
        return self.method in _MANUAL_METHODS


type Strategy = Callable[[Conflict], Resolution | None]


class ResolutionPolicyEngine:
    """Pick a final value for a detected conflict."""

    def __init__(
        self,
        *,
        adjudicator: Adjudicator | None = None,
        timeout: float = DEFAULT_ADJUDICATION_TIMEOUT,
    ) -> None:
        self._adjudicator = adjudicator
        self._timeout = timeout
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    def resolve(self, conflict: Conflict, hint: PolicyHint | None = None) -> Resolution:
        effective_hint = hint or PolicyHint()
        if effective_hint.selected_value is not None:
            return self._manual(conflict, effective_hint, effective_hint.selected_value)

        pinned = effective_hint.method
        if pinned is not None:
            strategy = self._strategies().get(pinned)
            resolution = strategy(conflict) if strategy is not None else None
            if resolution is None:
                log.info("Pinned method %s not applicable; using time_based", pinned)
                return self._time_based(conflict)
            return resolution

        for strategy in (self._ai_auto, self._confidence_based):
            resolution = strategy(conflict)
            if resolution is not None:
                return resolution
        return self._time_based(conflict)

    def close(self) -> None:
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

    def _strategies(self) -> dict[ResolutionMethod, Strategy]:
        return {
            ResolutionMethod.AI_AUTO: self._ai_auto,
            ResolutionMethod.CONFIDENCE_BASED: self._confidence_based,
            ResolutionMethod.TIME_BASED: self._time_based,
        }

    # Strategies --------------------------------------------------------------

    def _manual(
        self, conflict: Conflict, hint: PolicyHint, selected_value: ProfileValue
    ) -> Resolution:
        method = hint.method if hint.method in _MANUAL_METHODS else ResolutionMethod.MANUAL
        return Resolution(
            value=selected_value,
            method=method,
            reasoning=hint.reason or "Manual selection",
            resolved_by=hint.resolved_by or conflict.proposed.actor.identifier,
            winner=Winner.SELECTED,
            confidence=MANUAL_CONFIDENCE,
        )

    def _ai_auto(self, conflict: Conflict) -> Resolution | None:
        adjudicator = self._adjudicator
        if (
            adjudicator is None
            or conflict.proposed.actor.kind is not ActorKind.AI
            or conflict.severity is Severity.HIGH
        ):
            return None

        request = AdjudicationRequest(
            entity_id=conflict.proposed.entity_id,
            domain=conflict.proposed.domain,
            field=conflict.proposed.field,
            severity=conflict.severity,
            current_value=conflict.current.value,
            proposed_value=conflict.proposed.value,
            current_confidence=conflict.current.confidence,
            proposed_confidence=conflict.proposed.confidence,
            current_reasoning=conflict.current.reasoning,
            proposed_reasoning=conflict.proposed.reasoning,
        )
        try:
            verdict = self._adjudicate(adjudicator, request)
            winner = _winner_for(verdict.value, conflict)
        except Exception as exc:  # noqa: BLE001
            log.warning(
                "Adjudication failed for %s.%s (entity=%s), falling back: %s",
                request.domain,
                request.field,
                request.entity_id,
                exc,
            )
            return None

        return Resolution(
            value=verdict.value,
            method=ResolutionMethod.AI_AUTO,
            reasoning=verdict.reasoning,
            resolved_by=AI_RESOLVER,
            winner=winner,
            confidence=verdict.confidence,
        )

    def _confidence_based(self, conflict: Conflict) -> Resolution | None:
        current = conflict.current.confidence
        proposed = conflict.proposed.confidence
        if current is None or proposed is None or current == proposed:
            return None
        if proposed > current:
            return Resolution(
                value=conflict.proposed.value,
                method=ResolutionMethod.CONFIDENCE_BASED,
                reasoning=f"Proposed confidence {proposed} exceeds current {current}",
                resolved_by=SYSTEM_RESOLVER,
                winner=Winner.PROPOSED,
                confidence=proposed,
            )
        return Resolution(
            value=conflict.current.value,
            method=ResolutionMethod.CONFIDENCE_BASED,
            reasoning=f"Current confidence {current} exceeds proposed {proposed}",
            resolved_by=SYSTEM_RESOLVER,
            winner=Winner.CURRENT,
            confidence=current,
        )

    def _time_based(self, conflict: Conflict) -> Resolution:
        proposed_at = conflict.proposed.timestamp
        current_at = conflict.current.source_timestamp
        if proposed_at >= current_at:
            return Resolution(
                value=conflict.proposed.value,
                method=ResolutionMethod.TIME_BASED,
                reasoning=f"Proposal from {proposed_at.isoformat()} is the most recent",
                resolved_by=SYSTEM_RESOLVER,
                winner=Winner.PROPOSED,
                confidence=conflict.proposed.confidence,
            )
        return Resolution(
            value=conflict.current.value,
            method=ResolutionMethod.TIME_BASED,
            reasoning=f"Current value from {current_at.isoformat()} is more recent",
            resolved_by=SYSTEM_RESOLVER,
            winner=Winner.CURRENT,
            confidence=conflict.current.confidence,
        )

    # Adjudication ------------------------------------------------------------

    def _adjudicate(
        self, adjudicator: Adjudicator, request: AdjudicationRequest
    ) -> AdjudicationVerdict:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=2, thread_name_prefix="adjudicator"
                )
            executor = self._executor
        future = executor.submit(adjudicator, request)
        try:
            return future.result(timeout=self._timeout)
        except TimeoutError as exc:
            future.cancel()
            raise AdjudicationTimeoutError(
                f"Adjudicator gave no answer within {self._timeout:g}s"
            ) from exc


def _winner_for(value: ProfileValue, conflict: Conflict) -> Winner:
    if values_equal(value, conflict.proposed.value):
        return Winner.PROPOSED
    if values_equal(value, conflict.current.value):
        return Winner.CURRENT
    raise AdjudicationError("Adjudicator chose a value that is neither the current nor proposed")
