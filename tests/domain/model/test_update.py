from __future__ import annotations

from datetime import datetime

import pytest

from profilesync.domain.errors import ValidationError
from profilesync.domain.model import ActorKind, ActorRef, ProfileField
from tests.support.updates import BASE_TIME, make_update


def test_actor_ref_labels() -> None:
    assert ActorRef.ai().label == "ai"
    assert ActorRef.ai("extractor-v2").label == "ai:extractor-v2"
    assert ActorRef.human("counselor").kind is ActorKind.HUMAN


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"entity_id": "  "}, "entity_id"),
        ({"field": ""}, "field"),
        ({"confidence": 101}, "Confidence"),
        ({"confidence": -1}, "Confidence"),
        ({"timestamp": datetime(2026, 1, 1, 12, 0)}, "timezone-aware"),  # noqa: DTZ001
    ],
)
def test_proposed_update_rejects_malformed_input(
    overrides: dict[str, object], message: str
) -> None:
    with pytest.raises(ValidationError, match=message):
        make_update(["Math"], **overrides)  # type: ignore[arg-type]


@pytest.mark.parametrize("value", [None, {1: "x"}, [object()], b"bytes"])
def test_proposed_update_rejects_values_outside_the_union(value: object) -> None:
    with pytest.raises(ValidationError, match="Unsupported value"):
        make_update(value)  # type: ignore[arg-type]


def test_validation_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):  # noqa: PT011
        make_update(["Math"], confidence=500)


def test_profile_field_from_update_and_assign() -> None:
    update = make_update(["Math"], confidence=70, actor=ActorRef.ai("extractor"))
    field = ProfileField.from_update(update, now=BASE_TIME)

    assert field.value == ["Math"]
    assert field.actor_kind is ActorKind.AI
    assert field.actor_id == "extractor"
    assert field.written_by(ActorRef.ai("extractor"))
    assert not field.written_by(ActorRef.ai())

    field.assign(
        ["Physics"],
        source=update.source,
        actor=ActorRef.human("counselor"),
        confidence=100,
        reasoning="override",
        source_timestamp=BASE_TIME,
        now=BASE_TIME,
    )

    assert field.value == ["Physics"]
    assert field.written_by(ActorRef.human("counselor"))
    assert field.confidence == 100
