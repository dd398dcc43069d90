from __future__ import annotations

import pytest

from profilesync.domain.model import is_profile_value, values_equal


@pytest.mark.parametrize(
    ("left", "right", "expected"),
    [
        (1, 1.0, True),
        (True, 1, False),
        (False, 0, False),
        (True, True, True),
        (["Math", "Physics"], ["Math", "Physics"], True),
        (["Math", "Physics"], ["Physics", "Math"], False),
        ([1, [True]], [1.0, [True]], True),
        ({"a": [1, 2]}, {"a": [1, 2]}, True),
        ({"a": 1}, {"a": 1, "b": 2}, False),
        ("1", 1, False),
    ],
)
def test_values_equal_is_typed_and_deep(left: object, right: object, expected: bool) -> None:
    assert values_equal(left, right) is expected


def test_is_profile_value() -> None:
    assert is_profile_value("text")
    assert is_profile_value({"nested": [1, None, {"ok": True}]})
    assert not is_profile_value(None)
    assert not is_profile_value({"key": {1, 2}})
