from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from profilesync.domain.errors import NotFoundError
from profilesync.domain.model import (
    ActorRef,
    Domain,
    ProcessedBy,
    ResolutionMethod,
    Severity,
    Source,
)
from profilesync.domain.sync import BulkResolutionItem
from tests.support.updates import BASE_TIME, make_update

if TYPE_CHECKING:
    from uuid import UUID

    from profilesync.domain.sync import ProfileSyncEngine


def _park(engine: ProfileSyncEngine, entity_id: str, value: int) -> UUID:
    engine.submit_update(
        make_update(10, entity_id=entity_id, domain=Domain.RISK_FACTORS, field="overallRiskLevel")
    )
    result = engine.submit_update(
        make_update(
            value, entity_id=entity_id, domain=Domain.RISK_FACTORS, field="overallRiskLevel"
        )
    )
    assert result.conflict_id is not None
    return result.conflict_id


def test_correct_field_wins_and_is_listed_as_correction(sync_engine: ProfileSyncEngine) -> None:
    sync_engine.submit_update(make_update(["Math"], confidence=95))

    result = sync_engine.correct_field(
        "S1", Domain.ACADEMIC, "strongSubjects", ["Biology"], "Parent meeting", "counselor-1"
    )

    assert result.applied
    assert result.resolution_method is ResolutionMethod.MANUAL
    [correction] = sync_engine.get_correction_history("S1")
    assert correction.source is Source.MANUAL_CORRECTION
    assert correction.processed_by is ProcessedBy.MANUAL
    assert correction.new_value == ["Biology"]
    assert correction.previous_value == ["Math"]
    assert len(sync_engine.get_audit_history("S1")) == 2


def test_correct_field_without_prior_value(sync_engine: ProfileSyncEngine) -> None:
    result = sync_engine.correct_field(
        "S1", Domain.MOTIVATION, "motivationLevel", 7, "Observed in class", "teacher-3"
    )

    assert result.applied
    assert result.conflict_id is None
    assert sync_engine.get_unified_identity("S1").motivation_score == 70


def test_bulk_resolution_reports_each_item(sync_engine: ProfileSyncEngine) -> None:
    first = _park(sync_engine, "S1", 90)
    second = _park(sync_engine, "S2", 95)
    missing = uuid4()

    results = sync_engine.bulk_resolve_conflicts(
        [
            BulkResolutionItem(conflict_id=first, selected_value=40),
            BulkResolutionItem(conflict_id=missing, selected_value=40),
            BulkResolutionItem(conflict_id=second, selected_value=500, reason="typo"),
        ],
        "counselor-1",
    )

    assert [result.success for result in results] == [True, False, False]
    assert results[1].error is not None
    assert str(missing) in results[1].error
    [still_pending] = sync_engine.get_pending_conflicts()
    assert still_pending.id == second
    assert sync_engine.get_failed_operations()[0].op_type == "conflict-resolution"


def test_bulk_resolution_uses_bulk_method(sync_engine: ProfileSyncEngine) -> None:
    conflict_id = _park(sync_engine, "S1", 90)

    [result] = sync_engine.bulk_resolve_conflicts(
        [BulkResolutionItem(conflict_id=conflict_id, selected_value=45)], "counselor-1"
    )

    assert result.success
    with sync_engine.unit_of_work_factory() as uow:
        record = uow.repositories.conflicts.get(conflict_id)
        assert record is not None
        assert record.resolution_method is ResolutionMethod.MANUAL_BULK
        assert record.reasoning == "Bulk resolution"


def test_pending_conflicts_order_and_limit(sync_engine: ProfileSyncEngine) -> None:
    parked_old = _park(sync_engine, "S1", 90)
    parked_new = _park(sync_engine, "S2", 90)

    pending = sync_engine.get_pending_conflicts()

    assert [record.id for record in pending] == [parked_new, parked_old]
    assert all(record.severity is Severity.HIGH for record in pending)
    assert len(sync_engine.get_pending_conflicts(limit=1)) == 1


def test_sync_statistics(sync_engine: ProfileSyncEngine) -> None:
    sync_engine.submit_update(make_update(["Math"], confidence=60))
    sync_engine.submit_update(
        make_update(
            8,
            domain=Domain.BEHAVIORAL,
            field="attentionSpan",
            confidence=80,
            source=Source.SURVEY,
        )
    )
    sync_engine.submit_update(make_update(["Art"], entity_id="S2", confidence=None))

    stats = sync_engine.get_sync_statistics("S1")
    overall = sync_engine.get_sync_statistics()

    assert stats.total_updates == 2
    assert stats.average_validation_score == pytest.approx(70.0)
    assert stats.unique_sources == 2
    assert stats.affected_domains == 2
    assert overall.total_updates == 3


def test_identity_is_recomputed_when_stale(sync_engine: ProfileSyncEngine) -> None:
    sync_engine.submit_update(
        make_update(20, domain=Domain.RISK_FACTORS, field="overallRiskLevel", confidence=90)
    )
    with sync_engine.unit_of_work_factory() as uow:
        identity = uow.repositories.identities.get("S1")
        assert identity is not None
        identity.last_updated = BASE_TIME - timedelta(days=30)
        identity.risk_level = 99
        uow.commit()

    refreshed = sync_engine.get_unified_identity("S1")

    assert refreshed.risk_level == 20
    assert refreshed.last_updated > BASE_TIME


def test_identity_for_unknown_entity_raises(sync_engine: ProfileSyncEngine) -> None:
    with pytest.raises(NotFoundError):
        sync_engine.get_unified_identity("nobody")


def test_delete_entity_removes_everything(sync_engine: ProfileSyncEngine) -> None:
    sync_engine.submit_update(make_update(["Math"]))
    second = sync_engine.submit_update(make_update(["Art"]))
    assert second.log_id is not None
    sync_engine.undo("S1", second.log_id, "counselor-1")
    _park(sync_engine, "S1", 90)
    sync_engine.submit_update(make_update(["Math"], entity_id="S2"))

    sync_engine.delete_entity("S1")

    assert sync_engine.get_audit_history("S1") == []
    assert sync_engine.get_pending_conflicts("S1") == []
    with pytest.raises(NotFoundError):
        sync_engine.get_unified_identity("S1")
    assert sync_engine.get_unified_identity("S2").strengths == ["Math"]


def test_submit_batch_isolates_failures(sync_engine: ProfileSyncEngine) -> None:
    results = sync_engine.submit_batch(
        [
            make_update(["Math"]),
            make_update("not a number", field="studyHoursPerWeek"),
            make_update(12, field="studyHoursPerWeek", actor=ActorRef.human("teacher-1")),
        ]
    )

    assert results[0] is not None
    assert results[1] is None
    assert results[2] is not None
    stats = sync_engine.get_async_stats()
    assert stats.error_count == 1
    assert stats.by_type["counseling-session-sync"].count == 3
    [failed] = sync_engine.get_failed_operations()
    assert failed.context["field"] == "studyHoursPerWeek"
