"""Typed errors raised by the profile synchronization domain."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from profilesync.domain.model.enums import Domain


class ProfileSyncError(Exception):
    """Base class for all engine errors."""


class ValidationError(ProfileSyncError, ValueError):
    """Raised when a proposed update is malformed."""


class UnknownMappingError(ProfileSyncError):
    """Raised when a domain/field pair has no canonical field schema."""

    def __init__(self, domain: Domain, field: str) -> None:
        super().__init__(f"No canonical field '{field}' in domain '{domain}'")
        self.domain = domain
        self.field = field


class AdjudicationTimeoutError(ProfileSyncError):
    """Raised when the adjudicator did not answer within its time budget."""


class AdjudicationError(ProfileSyncError):
    """Raised when the adjudicator returned an unusable verdict."""


class NotFoundError(ProfileSyncError):
    """Raised when a conflict or audit log entry does not exist."""

    def __init__(self, kind: str, identifier: UUID | str) -> None:
        super().__init__(f"{kind} {identifier} not found")
        self.kind = kind
        self.identifier = identifier


class ConcurrencyViolationError(ProfileSyncError):
    """Raised when a write lost a race against another writer of the same entity."""


class ConflictAlreadyResolvedError(ProfileSyncError):
    """Raised when a terminal conflict record is asked to transition again."""


class UndoNotAllowedError(ProfileSyncError):
    """Raised when an audit entry cannot be reverted."""
