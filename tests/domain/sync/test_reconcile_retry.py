from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import pytest

from profilesync.adapters.sqlalchemy.unit_of_work import SqlAlchemyProfileSyncUnitOfWork
from profilesync.config import EngineConfig
from profilesync.domain.errors import ConcurrencyViolationError
from profilesync.domain.model import AuditAction, Domain, utcnow
from profilesync.domain.sync import build_engine
from tests.support.updates import make_update

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from datetime import datetime

    from profilesync.domain.sync import ProfileSyncEngine
    from tests.support.updates import TickingClock


@dataclass
class _StaleWrites:
    """Commit budget shared by every unit of work of one engine."""

    remaining: int | None  # None: every commit is stale
    raised: int = 0


class _StaleCommitUnitOfWork(SqlAlchemyProfileSyncUnitOfWork):
    def __init__(self, stale: _StaleWrites) -> None:
        super().__init__()
        self._stale = stale

    def commit(self) -> None:
        if self._stale.remaining is None or self._stale.remaining > 0:
            if self._stale.remaining is not None:
                self._stale.remaining -= 1
            self._stale.raised += 1
            self.rollback()
            raise ConcurrencyViolationError("profile_field version changed underneath")
        super().commit()


def _engine_with(
    stale: _StaleWrites, *, clock: Callable[[], datetime] = utcnow
) -> ProfileSyncEngine:
    return build_engine(
        unit_of_work_factory=lambda: _StaleCommitUnitOfWork(stale),
        config=EngineConfig(worker_count=2, history_capacity=50),
        clock=clock,
    )


@pytest.fixture
def stale_once(
    sqlite_unit_of_work: Callable[[], SqlAlchemyProfileSyncUnitOfWork],  # noqa: ARG001
    clock: TickingClock,
) -> Iterator[tuple[ProfileSyncEngine, _StaleWrites]]:
    stale = _StaleWrites(remaining=1)
    engine = _engine_with(stale, clock=clock)
    try:
        yield engine, stale
    finally:
        engine.close()


@pytest.fixture
def always_stale(
    file_unit_of_work: Callable[[], SqlAlchemyProfileSyncUnitOfWork],  # noqa: ARG001
) -> Iterator[tuple[ProfileSyncEngine, _StaleWrites]]:
    stale = _StaleWrites(remaining=None)
    engine = _engine_with(stale)
    try:
        yield engine, stale
    finally:
        engine.close()


def test_stale_write_is_retried_once_and_applied(
    stale_once: tuple[ProfileSyncEngine, _StaleWrites],
) -> None:
    engine, stale = stale_once

    result = engine.submit_update(make_update(["Math"]))

    assert result.applied
    assert stale.raised == 1
    [entry] = engine.get_audit_history("S1")
    assert entry.id == result.log_id
    assert entry.action is AuditAction.UPDATED
    with engine.unit_of_work_factory() as uow:
        stored = uow.repositories.fields.get("S1", Domain.ACADEMIC, "strongSubjects")
        assert stored is not None
        assert stored.value == ["Math"]
    assert engine.get_async_stats().error_count == 0


def test_second_stale_write_reaches_the_caller(
    always_stale: tuple[ProfileSyncEngine, _StaleWrites],
) -> None:
    engine, stale = always_stale

    with pytest.raises(ConcurrencyViolationError):
        engine.submit_update(make_update(["Math"]))

    assert stale.raised == 2
    assert engine.get_audit_history("S1") == []
    [failed] = engine.get_failed_operations()
    assert failed.error is not None
    assert failed.error.startswith("ConcurrencyViolationError")


def test_second_stale_write_is_recorded_for_async_producers(
    always_stale: tuple[ProfileSyncEngine, _StaleWrites],
) -> None:
    engine, stale = always_stale

    future = engine.submit_update_async(make_update(["Math"]))

    assert future.result(timeout=30) is None
    assert stale.raised == 2
    [failed] = engine.get_failed_operations()
    assert failed.context["entityId"] == "S1"
    assert failed.error is not None
    assert failed.error.startswith("ConcurrencyViolationError")
