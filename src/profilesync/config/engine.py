"""Tunables for the synchronization engine."""

from __future__ import annotations

from dataclasses import dataclass

from .env import positive_float_env, positive_int_env

DEFAULT_ADJUDICATION_TIMEOUT = 5.0
DEFAULT_HISTORY_CAPACITY = 500
DEFAULT_WORKER_COUNT = 4
DEFAULT_RECENT_CHANGES = 5


@dataclass(frozen=True, slots=True)
class EngineConfig:
    adjudication_timeout: float = DEFAULT_ADJUDICATION_TIMEOUT
    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    worker_count: int = DEFAULT_WORKER_COUNT
    recent_changes: int = DEFAULT_RECENT_CHANGES


def get_engine_config() -> EngineConfig:
    return EngineConfig(
        adjudication_timeout=positive_float_env(
            "PROFILESYNC_ADJUDICATION_TIMEOUT", DEFAULT_ADJUDICATION_TIMEOUT
        ),
        history_capacity=positive_int_env("PROFILESYNC_HISTORY_CAPACITY", DEFAULT_HISTORY_CAPACITY),
        worker_count=positive_int_env("PROFILESYNC_WORKERS", DEFAULT_WORKER_COUNT),
        recent_changes=positive_int_env("PROFILESYNC_RECENT_CHANGES", DEFAULT_RECENT_CHANGES),
    )
