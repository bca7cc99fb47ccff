"""Core domain models used across the application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

CONNECTION_IMAP = "imap"
CONNECTION_GMAIL = "gmail"

CATEGORIES: tuple[str, ...] = ("task", "fyi", "question", "approval", "meeting")
TASK_PRIORITIES: tuple[str, ...] = ("high", "medium", "low")


@dataclass(slots=True, frozen=True)
class User:
    """Owner of mailboxes and settings; managed outside this package."""

    id: int
    org_id: int
    email: str


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class Mailbox:
    """One connected account."""

    id: int
    org_id: int
    user_id: int
    connection_type: str
    email_address: str
    imap_host: str | None = None
    imap_port: int | None = None
    password_encrypted: str | None = None
    is_active: bool = True


@dataclass(slots=True)
class OAuthConnection:
    """Stored provider tokens for an (organisation, user, provider) triple."""

    org_id: int
    user_id: int
    provider: str
    access_token: str | None
    refresh_token: str | None
    token_expires_at: datetime | None
    scopes: tuple[str, ...] = ()
    updated_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class TokenUpdate:
    """Tokens observed by a connector mid-session; ``None`` fields are unchanged."""

    provider: str
    access_token: str | None
    refresh_token: str | None = None
    expires_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class RawMessage:
    """Connector output before persistence."""

    provider_message_id: str
    sender: str
    subject: str
    body_text: str
    body_html: str | None
    received_at: datetime


@dataclass(slots=True, frozen=True)
class FetchBatch:
    """Messages returned by one connector call plus any token rotations."""

    messages: tuple[RawMessage, ...]
    token_updates: tuple[TokenUpdate, ...] = ()


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class EmailMessage:
    """Canonical stored message."""

    id: int | None
    org_id: int
    mailbox_id: int
    provider_message_id: str
    sender: str
    subject: str
    body_text: str
    body_html: str | None
    received_at: datetime
    is_read: bool = False
    classification: str | None = None


@dataclass(slots=True, frozen=True)
class ExtractedTask:
    """Task candidate produced by classification."""

    title: str
    description: str | None
    priority: str = "medium"
    due_date: datetime | None = None


@dataclass(slots=True, frozen=True)
class Classification:
    """Category plus candidate tasks; always well formed."""

    category: str
    tasks: tuple[ExtractedTask, ...] = ()
    provider: str = "heuristic"
    used_fallback: bool = False


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class DetectedTask:
    """Stored task extracted from a message."""

    id: int | None
    org_id: int
    user_id: int
    email_message_id: int
    title: str
    description: str | None
    priority: str
    due_date: datetime | None
    status: str = "pending"


@dataclass(slots=True)
class EmailDraft:
    """Reply draft awaiting the send operation."""

    id: int | None
    org_id: int
    user_id: int
    reply_to_message_id: int
    subject: str
    body: str
    created_at: datetime | None = None


@dataclass(slots=True)
class UserSyncSetting:
    """Per-user cadence for scheduled syncs."""

    user_id: int
    org_id: int
    enabled: bool
    interval_minutes: int
    last_run_at: datetime | None


@dataclass(slots=True, frozen=True)
class UserAutoDraftSetting:
    """Per-user opt-in for automatic reply drafts."""

    user_id: int
    org_id: int
    enabled: bool
    categories: frozenset[str] = frozenset()


@dataclass(slots=True, frozen=True)
class WritingStyle:
    """Attributes describing how a user writes."""

    greeting: str | None = None
    closing: str | None = None
    sentence_length: str | None = None
    emoji_usage: str | None = None
    exclamation_usage: str | None = None
    common_phrases: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class VoiceProfile:
    """Trained description of a user's writing voice."""

    user_id: int
    is_trained: bool
    tone: str | None = None
    formality_level: int | None = None
    writing_style: WritingStyle = field(default_factory=WritingStyle)
    sample_texts: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class OrgAiSettings:
    """Organisation override for the AI backend."""

    org_id: int
    provider: str | None = None
    model: str | None = None
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    google_api_key: str | None = None


@dataclass(slots=True, frozen=True)
class AiBackend:
    """Resolved provider, model, and key for one organisation."""

    provider: str
    model: str
    api_key: str


@dataclass(slots=True)
class ActivityRecord:
    """Entry in the user activity log."""

    id: int | None
    org_id: int
    user_id: int
    activity_type: str
    description: str
    created_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class SyncedEmailSummary:
    """Short description of a newly ingested message."""

    sender: str
    subject: str
    received_at: datetime


@dataclass(slots=True)
class MailboxSyncResult:
    """Outcome of one mailbox pass."""

    mailbox_id: int
    email_address: str
    email_count: int = 0
    emails: list[SyncedEmailSummary] = field(default_factory=list)
    error: str | None = None


@dataclass(slots=True)
class TickReport:
    """Summary of one scheduler tick."""

    users_checked: int = 0
    users_synced: int = 0
    users_failed: int = 0
    skipped: bool = False


__all__ = [
    "CATEGORIES",
    "CONNECTION_GMAIL",
    "CONNECTION_IMAP",
    "TASK_PRIORITIES",
    "ActivityRecord",
    "AiBackend",
    "Classification",
    "DetectedTask",
    "EmailDraft",
    "EmailMessage",
    "ExtractedTask",
    "FetchBatch",
    "Mailbox",
    "MailboxSyncResult",
    "OAuthConnection",
    "OrgAiSettings",
    "RawMessage",
    "SyncedEmailSummary",
    "TickReport",
    "TokenUpdate",
    "User",
    "UserAutoDraftSetting",
    "UserSyncSetting",
    "VoiceProfile",
    "WritingStyle",
]
