"""Async execution envelope.

Every producer-triggered reconciler call goes through here. Each operation moves
from started to succeeded or failed. Finished operations are kept in a bounded
history that backs the monitoring queries. ``execute_safely`` never lets an
error reach its caller. ``track`` records the error and re-raises it.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from profilesync.config.engine import DEFAULT_HISTORY_CAPACITY, DEFAULT_WORKER_COUNT
from profilesync.domain.model import Source, new_id, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from datetime import datetime
    from uuid import UUID

log = logging.getLogger(__name__)

DEFAULT_FAILED_LIMIT = 20
DEFAULT_HISTORY_LIMIT = 50


class OperationType(StrEnum):
    COUNSELING_SESSION_SYNC = "counseling-session-sync"
    SURVEY_RESPONSE_SYNC = "survey-response-sync"
    EXAM_RESULT_SYNC = "exam-result-sync"
    BEHAVIOR_INCIDENT_SYNC = "behavior-incident-sync"
    MANUAL_CORRECTION_SYNC = "manual-correction-sync"
    CONFLICT_RESOLUTION = "conflict-resolution"
    UNDO = "undo"
    OTHER = "other"

    @classmethod
    def for_source(cls, source: Source) -> OperationType:
        return _TYPE_BY_SOURCE.get(source, cls.OTHER)


_TYPE_BY_SOURCE = {
    Source.SESSION: OperationType.COUNSELING_SESSION_SYNC,
    Source.SURVEY: OperationType.SURVEY_RESPONSE_SYNC,
    Source.EXAM_IMPORT: OperationType.EXAM_RESULT_SYNC,
    Source.INCIDENT: OperationType.BEHAVIOR_INCIDENT_SYNC,
    Source.MANUAL_CORRECTION: OperationType.MANUAL_CORRECTION_SYNC,
    Source.UNDO: OperationType.UNDO,
}


class OperationStatus(StrEnum):
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True, kw_only=True)
class OperationRecord:
    op_type: str
    id: UUID = field(default_factory=new_id)
    status: OperationStatus = OperationStatus.STARTED
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    duration_ms: float | None = None
    error: str | None = None
    context: Mapping[str, Any] = field(default_factory=dict[str, Any])


@dataclass(frozen=True, slots=True)
class TypeStats:
    count: int
    errors: int


@dataclass(frozen=True, slots=True, kw_only=True)
class AsyncStats:
    active_count: int
    total_history_count: int
    success_count: int
    error_count: int
    average_duration_ms: float
    by_type: Mapping[str, TypeStats]


class AsyncExecutionEnvelope:
    """Run callables with tracking, failure isolation and a bounded history."""

    def __init__(
        self,
        *,
        history_capacity: int = DEFAULT_HISTORY_CAPACITY,
        max_workers: int = DEFAULT_WORKER_COUNT,
    ) -> None:
        if history_capacity <= 0:
            raise ValueError("history_capacity must be positive")
        self._lock = threading.Lock()
        self._active: dict[UUID, OperationRecord] = {}
        self._history: deque[OperationRecord] = deque(maxlen=history_capacity)
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None

    # Execution ---------------------------------------------------------------

    def track[T](
        self,
        op_type: str,
        fn: Callable[[], T],
        *,
        context: Mapping[str, Any] | None = None,
    ) -> T:
        """Run ``fn`` and record the outcome; errors are re-raised."""

        record = self._start(op_type, context)
        started = time.perf_counter()
        try:
            result = fn()
        except Exception as exc:
            self._finish(record, started, error=exc)
            log.exception(
                "Operation %s (%s) failed; context=%s", record.op_type, record.id, record.context
            )
            raise
        self._finish(record, started)
        return result

    def execute_safely[T](
        self,
        op_type: str,
        fn: Callable[[], T],
        *,
        on_error: Callable[[Exception], object] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> T | None:
        """Run ``fn``; on failure call ``on_error`` and return ``None`` instead of raising."""

        try:
            return self.track(op_type, fn, context=context)
        except Exception as exc:  # noqa: BLE001
            if on_error is not None:
                try:
                    on_error(exc)
                except Exception:
                    log.exception("Error callback for %s operation raised", op_type)
            return None

    def submit[T](
        self,
        op_type: str,
        fn: Callable[[], T],
        *,
        on_error: Callable[[Exception], object] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> Future[T | None]:
        """Fire-and-forget: schedule ``execute_safely`` on the worker pool."""

        return self._pool().submit(
            self.execute_safely, op_type, fn, on_error=on_error, context=context
        )

    def shutdown(self, *, wait: bool = True) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    # Monitoring --------------------------------------------------------------

    def get_stats(self) -> AsyncStats:
        with self._lock:
            history = list(self._history)
            active_count = len(self._active)

        by_type: dict[str, TypeStats] = {}
        durations: list[float] = []
        errors = 0
        for record in history:
            failed = record.status is OperationStatus.FAILED
            errors += failed
            previous = by_type.get(record.op_type, TypeStats(count=0, errors=0))
            by_type[record.op_type] = TypeStats(
                count=previous.count + 1, errors=previous.errors + failed
            )
            if record.duration_ms is not None:
                durations.append(record.duration_ms)

        return AsyncStats(
            active_count=active_count,
            total_history_count=len(history),
            success_count=len(history) - errors,
            error_count=errors,
            average_duration_ms=sum(durations) / len(durations) if durations else 0.0,
            by_type=by_type,
        )

    def get_failed_operations(self, limit: int = DEFAULT_FAILED_LIMIT) -> list[OperationRecord]:
        with self._lock:
            failed = [
                record
                for record in reversed(self._history)
                if record.status is OperationStatus.FAILED
            ]
        return failed[:limit]

    def get_active_operations(self) -> list[OperationRecord]:
        with self._lock:
            return list(self._active.values())

    def get_operation_history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[OperationRecord]:
        with self._lock:
            return list(reversed(self._history))[:limit]

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()

    # Internals ---------------------------------------------------------------

    def _pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="profilesync"
                )
            return self._executor

    def _start(self, op_type: str, context: Mapping[str, Any] | None) -> OperationRecord:
        record = OperationRecord(op_type=str(op_type), context=dict(context or {}))
        with self._lock:
            self._active[record.id] = record
        return record

    def _finish(
        self,
        record: OperationRecord,
        started: float,
        *,
        error: Exception | None = None,
    ) -> None:
        record.duration_ms = (time.perf_counter() - started) * 1000
        record.finished_at = utcnow()
        if error is None:
            record.status = OperationStatus.SUCCEEDED
        else:
            record.status = OperationStatus.FAILED
            record.error = f"{type(error).__name__}: {error}"
        with self._lock:
            self._active.pop(record.id, None)
            self._history.append(record)
