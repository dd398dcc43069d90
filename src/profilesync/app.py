"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from profilesync.adapters.inbound import parse_update_payload, proposals_from_insights
from profilesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyProfileSyncUnitOfWork,
    is_started,
    startup,
)
from profilesync.config import get_engine_config
from profilesync.domain.errors import ValidationError
from profilesync.domain.sync import build_engine

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from profilesync.config import EngineConfig
    from profilesync.domain.ports import Adjudicator, ProfileSyncUnitOfWork
    from profilesync.domain.sync import ApplyResult, ProfileSyncEngine

type UnitOfWorkFactory = Callable[[], ProfileSyncUnitOfWork]


log = getLogger(__name__)


def open_engine(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    adjudicator: Adjudicator | None = None,
    config: EngineConfig | None = None,
) -> ProfileSyncEngine:
    """Return an engine wired to the configured SQLAlchemy adapter."""

    if unit_of_work_factory is None and not is_started():
        startup()
    effective_config = config or get_engine_config()
    log.info(
        "Opening profile sync engine: workers=%s, history=%s, adjudicator=%s",
        effective_config.worker_count,
        effective_config.history_capacity,
        adjudicator is not None,
    )
    return build_engine(
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyProfileSyncUnitOfWork,
        adjudicator=adjudicator,
        config=effective_config,
    )


def submit_payload(engine: ProfileSyncEngine, raw: object) -> ApplyResult:
    """Validate one raw update payload and apply it synchronously."""

    return engine.submit_update(parse_update_payload(raw))


def submit_payloads(
    engine: ProfileSyncEngine, raws: Iterable[object]
) -> list[ApplyResult | None]:
    """Apply raw update payloads one by one; invalid payloads come back as ``None``."""

    results: list[ApplyResult | None] = []
    for index, raw in enumerate(raws):
        try:
            update = parse_update_payload(raw)
        except ValidationError as exc:
            log.warning("Skipping invalid payload #%s: %s", index, exc)
            results.append(None)
            continue
        results.extend(engine.submit_batch([update]))
    return results


def submit_insights(engine: ProfileSyncEngine, raw: object) -> list[ApplyResult | None]:
    """Fan a batch of extracted insights out to one proposal per mapped field."""

    proposals = proposals_from_insights(raw)
    log.info("Submitting %s insight proposals", len(proposals))
    return engine.submit_batch(proposals)
