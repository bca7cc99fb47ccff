"""Error taxonomy for mailbox synchronisation.

Errors local to one message or one mailbox are contained by the
orchestrator; only exceptions outside this hierarchy reach the scheduler.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import TokenUpdate


class SyncError(RuntimeError):
    """Base class for expected synchronisation failures."""


class ConnectorError(SyncError):
    """Raised when a mailbox session cannot be opened or a batch fetched.

    ``token_updates`` carries any refreshed OAuth tokens observed before the
    failure so they can still be persisted.
    """

    def __init__(
        self, message: str, *, token_updates: Sequence[TokenUpdate] = ()
    ) -> None:
        super().__init__(message)
        self.token_updates: tuple[TokenUpdate, ...] = tuple(token_updates)


class MissingCredentialsError(ConnectorError):
    """Raised when no OAuth connection is stored for a mailbox owner."""


class ParseError(SyncError):
    """Raised when a single fetched message cannot be normalised."""


class ClassificationError(SyncError):
    """Raised when the AI classification path fails; never leaves the engine."""


class DraftGenerationError(SyncError):
    """Raised when a reply draft cannot be produced."""


class TokenPersistError(SyncError):
    """Raised when refreshed OAuth tokens could not be stored."""


class MailboxSyncError(SyncError):
    """Aggregate per-mailbox failure surfaced to on-demand callers."""

    def __init__(self, message: str, *, mailbox_id: int | None = None) -> None:
        super().__init__(message)
        self.mailbox_id = mailbox_id


__all__ = [
    "ClassificationError",
    "ConnectorError",
    "DraftGenerationError",
    "MailboxSyncError",
    "MissingCredentialsError",
    "ParseError",
    "SyncError",
    "TokenPersistError",
]
