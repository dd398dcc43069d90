from __future__ import annotations

import threading
import time

from profilesync.domain.sync import EntityLockRegistry


def test_lock_is_reentrant_and_released() -> None:
    registry = EntityLockRegistry()

    with registry.hold("S1"), registry.hold("S1"):
        assert len(registry) == 1

    assert len(registry) == 0


def test_same_entity_is_serialised() -> None:
    registry = EntityLockRegistry()
    order: list[str] = []
    entered = threading.Event()

    def holder() -> None:
        with registry.hold("S1"):
            entered.set()
            time.sleep(0.1)
            order.append("first")

    def contender() -> None:
        entered.wait(timeout=5)
        with registry.hold("S1"):
            order.append("second")

    threads = [threading.Thread(target=holder), threading.Thread(target=contender)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert order == ["first", "second"]


def test_different_entities_do_not_block() -> None:
    registry = EntityLockRegistry()
    acquired = threading.Event()

    def other() -> None:
        with registry.hold("S2"):
            acquired.set()

    with registry.hold("S1"):
        thread = threading.Thread(target=other)
        thread.start()
        assert acquired.wait(timeout=5)
        thread.join(timeout=5)
