"""Per-entity mutual exclusion for read-compare-write sequences."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(slots=True)
class _Slot:
    lock: threading.RLock = field(default_factory=threading.RLock)
    holders: int = 0


class EntityLockRegistry:
    """Hands out one re-entrant lock per entity id.

    Different entities never share a lock. Slots are dropped once nobody holds
    or waits for them, so the registry does not grow with the number of
    entities ever seen.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._slots: dict[str, _Slot] = {}

    @contextmanager
    def hold(self, entity_id: str) -> Iterator[None]:
        with self._guard:
            slot = self._slots.get(entity_id)
            if slot is None:
                slot = self._slots[entity_id] = _Slot()
            slot.holders += 1
        slot.lock.acquire()
        try:
            yield
        finally:
            slot.lock.release()
            with self._guard:
                slot.holders -= 1
                if slot.holders == 0:
                    del self._slots[entity_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)
