from __future__ import annotations

import threading

import pytest

from profilesync.domain.model import Source
from profilesync.domain.sync import AsyncExecutionEnvelope, OperationStatus, OperationType


def _boom() -> None:
    raise RuntimeError("boom")


def test_track_records_success() -> None:
    envelope = AsyncExecutionEnvelope()

    assert envelope.track("demo", lambda: 42, context={"entity_id": "S1"}) == 42

    [record] = envelope.get_operation_history()
    assert record.status is OperationStatus.SUCCEEDED
    assert record.duration_ms is not None
    assert record.context == {"entity_id": "S1"}
    assert envelope.get_active_operations() == []


def test_track_reraises_and_records_failure() -> None:
    envelope = AsyncExecutionEnvelope()

    with pytest.raises(RuntimeError, match="boom"):
        envelope.track("demo", _boom)

    [failed] = envelope.get_failed_operations()
    assert failed.error == "RuntimeError: boom"


def test_execute_safely_swallows_error_once() -> None:
    envelope = AsyncExecutionEnvelope()
    seen: list[Exception] = []

    result = envelope.execute_safely("demo", _boom, on_error=seen.append)

    assert result is None
    assert len(seen) == 1
    assert len(envelope.get_failed_operations()) == 1
    assert envelope.get_stats().total_history_count == 1


def test_execute_safely_survives_failing_callback() -> None:
    envelope = AsyncExecutionEnvelope()

    def explode(_: Exception) -> None:
        raise ValueError("callback broke")

    assert envelope.execute_safely("demo", _boom, on_error=explode) is None


def test_history_is_bounded() -> None:
    envelope = AsyncExecutionEnvelope(history_capacity=3)

    for index in range(5):
        envelope.track("demo", lambda index=index: index)

    history = envelope.get_operation_history()
    assert len(history) == 3
    assert envelope.get_stats().total_history_count == 3


def test_stats_group_by_type() -> None:
    envelope = AsyncExecutionEnvelope()
    envelope.track("a", lambda: None)
    envelope.track("a", lambda: None)
    envelope.execute_safely("b", _boom)

    stats = envelope.get_stats()

    assert stats.success_count == 2
    assert stats.error_count == 1
    assert stats.by_type["a"].count == 2
    assert stats.by_type["b"].errors == 1
    assert stats.average_duration_ms >= 0


def test_clear_history() -> None:
    envelope = AsyncExecutionEnvelope()
    envelope.track("demo", lambda: None)

    envelope.clear_history()

    assert envelope.get_operation_history() == []


def test_submit_runs_on_worker_pool() -> None:
    envelope = AsyncExecutionEnvelope(max_workers=2)
    ran = threading.Event()

    future = envelope.submit("demo", ran.set)
    failing = envelope.submit("demo", _boom)

    assert future.result(timeout=5) is None
    assert failing.result(timeout=5) is None
    assert ran.is_set()
    envelope.shutdown()
    assert envelope.get_stats().error_count == 1


def test_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError, match="history_capacity"):
        AsyncExecutionEnvelope(history_capacity=0)


def test_operation_type_for_source() -> None:
    assert OperationType.for_source(Source.SESSION) is OperationType.COUNSELING_SESSION_SYNC
    assert OperationType.for_source(Source.UNDO) is OperationType.UNDO
    assert OperationType.for_source(Source.OTHER) is OperationType.OTHER
