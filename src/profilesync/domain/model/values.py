"""Typed profile values and their equality semantics."""

from __future__ import annotations

from typing import Any, cast

type ProfileValue = str | int | float | bool | list[Any] | dict[str, Any]


def is_profile_value(value: object) -> bool:
    """Return whether ``value`` is a top-level profile value (``None`` is not)."""

    if value is None:
        return False
    return _is_json_like(value)


def _is_json_like(value: object) -> bool:
    if value is None or isinstance(value, (str, bool, int, float)):
        return True
    if isinstance(value, list):
        return all(_is_json_like(item) for item in cast(list[object], value))
    if isinstance(value, dict):
        mapping = cast(dict[object, object], value)
        return all(isinstance(key, str) and _is_json_like(item) for key, item in mapping.items())
    return False


def is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def values_equal(left: object, right: object) -> bool:
    """Deep equality that keeps booleans apart from numbers.

    ``1 == 1.0`` holds, ``True == 1`` does not, lists compare element-wise in order
    and dicts compare key-wise.
    """

    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if isinstance(left, list) and isinstance(right, list):
        left_items = cast(list[object], left)
        right_items = cast(list[object], right)
        return len(left_items) == len(right_items) and all(
            values_equal(a, b) for a, b in zip(left_items, right_items, strict=True)
        )
    if isinstance(left, dict) and isinstance(right, dict):
        left_map = cast(dict[str, object], left)
        right_map = cast(dict[str, object], right)
        return left_map.keys() == right_map.keys() and all(
            values_equal(left_map[key], right_map[key]) for key in left_map
        )
    return left is None and right is None
