"""Protocol interfaces for decoupling components."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from .models import (
    AiBackend,
    Classification,
    DetectedTask,
    EmailDraft,
    EmailMessage,
    FetchBatch,
    Mailbox,
    OAuthConnection,
    OrgAiSettings,
    TokenUpdate,
    User,
    UserAutoDraftSetting,
    UserSyncSetting,
    VoiceProfile,
)


class MailboxConnector(Protocol):
    """Capability shared by every mail source."""

    def fetch_recent_messages(self, mailbox: Mailbox) -> FetchBatch:
        """Return the most recent bounded batch of messages for ``mailbox``."""
        raise NotImplementedError


class SecretUnwrapper(Protocol):
    """Turns an at-rest credential into the secret used on the wire."""

    def unwrap(self, stored: str) -> str:
        """Return the plain secret for ``stored``."""
        raise NotImplementedError


class OAuthTokenStore(Protocol):
    """Read/merge access to stored OAuth connections."""

    def get_oauth_connection(
        self, org_id: int, user_id: int, provider: str
    ) -> OAuthConnection | None:
        """Return the stored connection if present."""
        raise NotImplementedError

    def merge_oauth_tokens(
        self, org_id: int, user_id: int, update: TokenUpdate
    ) -> bool:
        """Merge ``update`` into the stored row; ``None`` fields keep old values."""
        raise NotImplementedError


class ActivitySink(Protocol):
    """Destination for user activity log entries."""

    def record_activity(
        self, org_id: int, user_id: int, activity_type: str, description: str
    ) -> None:
        """Append an activity entry."""
        raise NotImplementedError


class SyncRepository(OAuthTokenStore, ActivitySink, Protocol):
    """Persistence used by the sync pipeline and scheduler."""

    def insert_if_absent(self, message: EmailMessage) -> int | None:
        """Insert ``message`` unless its provider identity exists; return new id."""
        raise NotImplementedError

    def fetch_message(self, message_id: int) -> EmailMessage | None:
        """Return a stored message by row id."""
        raise NotImplementedError

    def update_classification(self, message_id: int, category: str) -> None:
        """Set the classification label of a stored message."""
        raise NotImplementedError

    def insert_detected_tasks(self, tasks: Sequence[DetectedTask]) -> None:
        """Store tasks extracted from a message."""
        raise NotImplementedError

    def has_draft(self, message_id: int, user_id: int) -> bool:
        """Return ``True`` when a draft already replies to ``message_id``."""
        raise NotImplementedError

    def insert_draft(self, draft: EmailDraft) -> EmailDraft:
        """Persist a draft and return it with its id populated."""
        raise NotImplementedError

    def get_user(self, user_id: int) -> User | None:
        """Return the user row if present."""
        raise NotImplementedError

    def get_mailbox(self, mailbox_id: int) -> Mailbox | None:
        """Return a mailbox by id."""
        raise NotImplementedError

    def list_active_mailboxes(self, org_id: int, user_id: int) -> list[Mailbox]:
        """Return the user's active mailboxes."""
        raise NotImplementedError

    def mark_mailbox_active(self, mailbox_id: int) -> None:
        """Flag a mailbox as healthy after a completed pass."""
        raise NotImplementedError

    def list_enabled_sync_settings(self) -> list[UserSyncSetting]:
        """Return every enabled per-user sync setting."""
        raise NotImplementedError

    def mark_sync_run(self, user_id: int, org_id: int, ran_at: datetime) -> None:
        """Record the time of the last scheduled pass for a user."""
        raise NotImplementedError

    def get_auto_draft_setting(
        self, org_id: int, user_id: int
    ) -> UserAutoDraftSetting | None:
        """Return the user's auto-draft opt-in if configured."""
        raise NotImplementedError

    def get_trained_voice_profile(self, user_id: int) -> VoiceProfile | None:
        """Return the user's voice profile only when it is trained."""
        raise NotImplementedError

    def get_org_ai_settings(self, org_id: int) -> OrgAiSettings | None:
        """Return the organisation's AI override if present."""
        raise NotImplementedError


class AiBackendResolver(Protocol):
    """Resolves which AI backend an organisation uses."""

    def resolve(self, org_id: int | None) -> AiBackend | None:
        """Return provider/model/key, or ``None`` when no key is available."""
        raise NotImplementedError


class Classifier(Protocol):
    """Turns message content into a category and tasks."""

    def classify(self, content: str, org_id: int | None) -> Classification:
        """Return a well-formed classification; never raises."""
        raise NotImplementedError


class DraftPolicy(Protocol):
    """Decides whether to produce a reply draft for a classified message."""

    def maybe_generate_draft(
        self, message: EmailMessage, classification: Classification, user: User
    ) -> EmailDraft | None:
        """Return a persisted draft or ``None``."""
        raise NotImplementedError


__all__ = [
    "ActivitySink",
    "AiBackendResolver",
    "Classifier",
    "DraftPolicy",
    "MailboxConnector",
    "OAuthTokenStore",
    "SecretUnwrapper",
    "SyncRepository",
]
