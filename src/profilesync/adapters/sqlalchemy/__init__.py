"""SQLAlchemy adapter package for profile sync persistence."""

from __future__ import annotations

from .mappings import (
    JSONValue,
    UTCDateTime,
    create_all_tables,
    mapper_registry,
    start_mappers,
)
from .repositories import (
    SqlAlchemyAuditLogRepository,
    SqlAlchemyConflictRepository,
    SqlAlchemyIdentityRepository,
    SqlAlchemyProfileFieldRepository,
    SqlAlchemyUndoRepository,
)
from .unit_of_work import (
    SqlAlchemyProfileSyncUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "JSONValue",
    "SqlAlchemyAuditLogRepository",
    "SqlAlchemyConflictRepository",
    "SqlAlchemyIdentityRepository",
    "SqlAlchemyProfileFieldRepository",
    "SqlAlchemyProfileSyncUnitOfWork",
    "SqlAlchemyUndoRepository",
    "StartupError",
    "UTCDateTime",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
