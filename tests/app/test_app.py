from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from profilesync.app import open_engine, submit_insights, submit_payload, submit_payloads
from profilesync.config import EngineConfig
from profilesync.domain.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from profilesync.adapters.sqlalchemy import SqlAlchemyProfileSyncUnitOfWork
    from profilesync.domain.sync import ProfileSyncEngine


def _payload(field: str, value: object) -> dict[str, object]:
    return {
        "entityId": "S1",
        "source": "session",
        "domain": "academic",
        "field": field,
        "value": value,
        "confidence": 75,
    }


def test_open_engine_uses_supplied_unit_of_work(
    sqlite_unit_of_work: Callable[[], SqlAlchemyProfileSyncUnitOfWork],
) -> None:
    engine = open_engine(
        unit_of_work_factory=sqlite_unit_of_work,
        config=EngineConfig(worker_count=1, history_capacity=10),
    )
    try:
        result = submit_payload(engine, _payload("strongSubjects", ["Math"]))
    finally:
        engine.close()

    assert result.applied


def test_submit_payload_rejects_malformed_input(sync_engine: ProfileSyncEngine) -> None:
    with pytest.raises(ValidationError):
        submit_payload(sync_engine, {"entityId": "S1"})


def test_submit_payloads_keeps_going_after_invalid_items(sync_engine: ProfileSyncEngine) -> None:
    results = submit_payloads(
        sync_engine,
        [
            _payload("strongSubjects", ["Math"]),
            {"domain": "academic"},
            _payload("studyHoursPerWeek", "many"),
            _payload("weakSubjects", "Art"),
        ],
    )

    assert [result is not None for result in results] == [True, False, False, True]
    assert len(sync_engine.get_failed_operations()) == 1


def test_submit_insights_fans_out(sync_engine: ProfileSyncEngine) -> None:
    results = submit_insights(
        sync_engine,
        {
            "entityId": "S1",
            "domain": "talents",
            "insights": {"hobbies": ["chess", "drawing"], "clubs": "robotics"},
        },
    )

    assert all(result is not None and result.applied for result in results)
    identity = sync_engine.get_unified_identity("S1")
    assert identity.key_characteristics == ["primary interests: chess, drawing"]
