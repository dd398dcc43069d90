from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from profilesync.domain.errors import NotFoundError, UndoNotAllowedError, ValidationError
from profilesync.domain.model import ActorRef, AuditAction, Domain, Source
from tests.support.updates import make_update

if TYPE_CHECKING:
    from profilesync.domain.sync import ProfileSyncEngine


def _current(engine: ProfileSyncEngine) -> object:
    with engine.unit_of_work_factory() as uow:
        stored = uow.repositories.fields.get("S1", Domain.ACADEMIC, "strongSubjects")
        assert stored is not None
        return stored.value


def test_undo_restores_previous_value(sync_engine: ProfileSyncEngine) -> None:
    sync_engine.submit_update(make_update(["Math"], confidence=50))
    overwrite = sync_engine.submit_update(
        make_update(["Art"], confidence=90, actor=ActorRef.ai("other-model"))
    )
    assert overwrite.log_id is not None

    record = sync_engine.undo("S1", overwrite.log_id, "counselor-1")

    assert _current(sync_engine) == ["Math"]
    assert record.log_id == overwrite.log_id
    assert record.performed_by == "counselor-1"
    assert record.previous_state["newValue"] == ["Art"]
    revert = sync_engine.get_audit_history("S1")[0]
    assert revert.id == record.revert_log_id
    assert revert.source is Source.UNDO
    assert revert.action is AuditAction.UPDATED
    assert revert.new_value == ["Math"]


def test_undo_twice_is_refused(sync_engine: ProfileSyncEngine) -> None:
    sync_engine.submit_update(make_update(["Math"]))
    second = sync_engine.submit_update(make_update(["Math", "Art"]))
    assert second.log_id is not None
    sync_engine.undo("S1", second.log_id, "counselor-1")

    with pytest.raises(UndoNotAllowedError, match="already been undone"):
        sync_engine.undo("S1", second.log_id, "counselor-1")


def test_undo_of_undo_is_refused(sync_engine: ProfileSyncEngine) -> None:
    sync_engine.submit_update(make_update(["Math"]))
    second = sync_engine.submit_update(make_update(["Math", "Art"]))
    assert second.log_id is not None
    record = sync_engine.undo("S1", second.log_id, "counselor-1")
    assert record.revert_log_id is not None

    with pytest.raises(UndoNotAllowedError, match="itself an undo"):
        sync_engine.undo("S1", record.revert_log_id, "counselor-1")


def test_undo_of_creation_has_nothing_to_restore(sync_engine: ProfileSyncEngine) -> None:
    created = sync_engine.submit_update(make_update(["Math"]))
    assert created.log_id is not None

    with pytest.raises(UndoNotAllowedError, match="no previous value"):
        sync_engine.undo("S1", created.log_id, "counselor-1")


def test_undo_of_rejected_entry_is_refused(sync_engine: ProfileSyncEngine) -> None:
    rejected = sync_engine.submit_update(make_update("x", field="favouriteColour"))
    assert rejected.log_id is not None

    with pytest.raises(UndoNotAllowedError, match="rejected"):
        sync_engine.undo("S1", rejected.log_id, "counselor-1")


def test_undo_checks_entity_and_actor(sync_engine: ProfileSyncEngine) -> None:
    sync_engine.submit_update(make_update(["Math"]))
    second = sync_engine.submit_update(make_update(["Art"]))
    assert second.log_id is not None

    with pytest.raises(NotFoundError):
        sync_engine.undo("S2", second.log_id, "counselor-1")
    with pytest.raises(NotFoundError):
        sync_engine.undo("S1", uuid4(), "counselor-1")
    with pytest.raises(ValidationError):
        sync_engine.undo("S1", second.log_id, "")
