from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from profilesync.adapters.sqlalchemy import start_mappers
from profilesync.adapters.sqlalchemy.migrations import upgrade_head
from profilesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyProfileSyncUnitOfWork,
    shutdown,
    startup,
)
from profilesync.config import EngineConfig
from profilesync.domain.sync import ProfileSyncEngine, build_engine
from tests.support.updates import TickingClock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyProfileSyncUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyProfileSyncUnitOfWork:
        return SqlAlchemyProfileSyncUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def file_unit_of_work(
    tmp_path: Path,
) -> Iterator[Callable[[], SqlAlchemyProfileSyncUnitOfWork]]:
    """Unit of work on a SQLite file, shared by every thread (``:memory:`` is per thread)."""

    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'profilesync.db'}",
        future=True,
        connect_args={"timeout": 30},
    )
    startup(engine=engine, force=True)

    def factory() -> SqlAlchemyProfileSyncUnitOfWork:
        return SqlAlchemyProfileSyncUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def sync_engine(
    sqlite_unit_of_work: Callable[[], SqlAlchemyProfileSyncUnitOfWork],
    clock: TickingClock,
) -> Iterator[ProfileSyncEngine]:
    engine = build_engine(
        unit_of_work_factory=sqlite_unit_of_work,
        config=EngineConfig(worker_count=2, history_capacity=50),
        clock=clock,
    )
    try:
        yield engine
    finally:
        engine.close()


@pytest.fixture
def threaded_engine(
    file_unit_of_work: Callable[[], SqlAlchemyProfileSyncUnitOfWork],
) -> Iterator[ProfileSyncEngine]:
    engine = build_engine(
        unit_of_work_factory=file_unit_of_work,
        config=EngineConfig(worker_count=4, history_capacity=200),
    )
    try:
        yield engine
    finally:
        engine.close()
