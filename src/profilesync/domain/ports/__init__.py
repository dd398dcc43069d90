"""Ports the synchronization domain depends on."""

from __future__ import annotations

from .adjudication import AdjudicationRequest, AdjudicationVerdict, Adjudicator
from .persistence import (
    AuditLogRepository,
    ConflictRepository,
    IdentityRepository,
    ProfileFieldRepository,
    Repository,
    UndoRepository,
)
from .unit_of_work import (
    ProfileSyncRepositories,
    ProfileSyncUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AdjudicationRequest",
    "AdjudicationVerdict",
    "Adjudicator",
    "AuditLogRepository",
    "ConflictRepository",
    "IdentityRepository",
    "ProfileFieldRepository",
    "ProfileSyncRepositories",
    "ProfileSyncUnitOfWork",
    "Repository",
    "RepositoryCollection",
    "UndoRepository",
    "UnitOfWork",
]
