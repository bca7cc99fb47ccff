"""SQLite-backed repository for the mailbox sync pipeline."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import Any, cast

from ..core.config import StorageSettings
from ..core.datetime_utils import parse_datetime, serialize_datetime, utc_now
from ..core.errors import TokenPersistError
from ..core.interfaces import SyncRepository
from ..core.models import (
    ActivityRecord,
    DetectedTask,
    EmailDraft,
    EmailMessage,
    Mailbox,
    OAuthConnection,
    OrgAiSettings,
    TokenUpdate,
    User,
    UserAutoDraftSetting,
    UserSyncSetting,
    VoiceProfile,
    WritingStyle,
)

LOGGER = logging.getLogger(__name__)

MIN_SYNC_INTERVAL_MINUTES = 5
MAX_SYNC_INTERVAL_MINUTES = 1440


class SqliteSyncRepository(SyncRepository):
    """Persist mailboxes, messages, and per-user settings using SQLite."""

    def __init__(self, settings: StorageSettings) -> None:
        """Initialise the repository and apply migrations."""
        self._settings = settings
        db_path = Path(settings.db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._connection = sqlite3.connect(
            db_path,
            detect_types=sqlite3.PARSE_DECLTYPES,
            check_same_thread=False,
        )
        self._connection.row_factory = sqlite3.Row
        self._enable_foreign_keys()
        self._apply_migrations()

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> SqliteSyncRepository:
        """Enter context manager scope."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Ensure the connection is closed when exiting context manager."""
        self.close()

    # Messages ----------------------------------------------------------------
    def insert_if_absent(self, message: EmailMessage) -> int | None:
        """Insert ``message`` keyed on its provider identity.

        Returns the new row id, or ``None`` when the identity is already stored.
        """
        if not message.provider_message_id:
            raise ValueError("Provider message identity is required")

        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO email_messages (
                    org_id,
                    mailbox_id,
                    message_id,
                    from_address,
                    subject,
                    body_text,
                    body_html,
                    received_at,
                    is_read,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, ?)
                ON CONFLICT(message_id) DO NOTHING
                """,
                (
                    message.org_id,
                    message.mailbox_id,
                    message.provider_message_id,
                    message.sender,
                    message.subject,
                    message.body_text,
                    message.body_html,
                    serialize_datetime(message.received_at),
                    serialize_datetime(utc_now()),
                ),
            )
            if cursor.rowcount != 1:
                LOGGER.debug(
                    "Message %s already stored; skipping",
                    message.provider_message_id,
                )
                return None
            return cursor.lastrowid

    def fetch_message(self, message_id: int) -> EmailMessage | None:
        """Retrieve a stored message by row id."""
        row = self._fetchone(
            """
            SELECT id, org_id, mailbox_id, message_id, from_address, subject,
                   body_text, body_html, received_at, is_read, classification
            FROM email_messages
            WHERE id = ?
            """,
            (message_id,),
        )
        if row is None:
            return None
        return EmailMessage(
            id=row["id"],
            org_id=row["org_id"],
            mailbox_id=row["mailbox_id"],
            provider_message_id=row["message_id"],
            sender=row["from_address"],
            subject=row["subject"],
            body_text=row["body_text"],
            body_html=row["body_html"],
            received_at=cast(datetime, parse_datetime(row["received_at"])),
            is_read=bool(row["is_read"]),
            classification=row["classification"],
        )

    def count_messages(self, mailbox_id: int | None = None) -> int:
        """Return the number of stored messages, optionally per mailbox."""
        if mailbox_id is None:
            row = self._fetchone("SELECT COUNT(*) FROM email_messages", ())
        else:
            row = self._fetchone(
                "SELECT COUNT(*) FROM email_messages WHERE mailbox_id = ?",
                (mailbox_id,),
            )
        return int(row[0]) if row else 0

    def update_classification(self, message_id: int, category: str) -> None:
        """Set the classification label of a stored message."""
        with self._transaction() as conn:
            conn.execute(
                "UPDATE email_messages SET classification = ? WHERE id = ?",
                (category, message_id),
            )

    # Tasks and drafts --------------------------------------------------------
    def insert_detected_tasks(self, tasks: Sequence[DetectedTask]) -> None:
        """Store tasks extracted from a message."""
        if not tasks:
            return
        created_at = serialize_datetime(utc_now())
        with self._transaction() as conn:
            conn.executemany(
                """
                INSERT INTO detected_tasks (
                    org_id,
                    user_id,
                    email_message_id,
                    title,
                    description,
                    priority,
                    due_date,
                    status,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        task.org_id,
                        task.user_id,
                        task.email_message_id,
                        task.title,
                        task.description,
                        task.priority,
                        serialize_datetime(task.due_date),
                        task.status,
                        created_at,
                    )
                    for task in tasks
                ],
            )

    def list_detected_tasks(self, email_message_id: int) -> list[DetectedTask]:
        """Return tasks stored for a message in insertion order."""
        rows = self._fetchall(
            """
            SELECT id, org_id, user_id, email_message_id, title, description,
                   priority, due_date, status
            FROM detected_tasks
            WHERE email_message_id = ?
            ORDER BY id
            """,
            (email_message_id,),
        )
        return [
            DetectedTask(
                id=row["id"],
                org_id=row["org_id"],
                user_id=row["user_id"],
                email_message_id=row["email_message_id"],
                title=row["title"],
                description=row["description"],
                priority=row["priority"],
                due_date=parse_datetime(row["due_date"]),
                status=row["status"],
            )
            for row in rows
        ]

    def has_draft(self, message_id: int, user_id: int) -> bool:
        """Return ``True`` when a draft already replies to ``message_id``."""
        row = self._fetchone(
            """
            SELECT 1 FROM email_drafts
            WHERE reply_to_message_id = ? AND user_id = ?
            LIMIT 1
            """,
            (message_id, user_id),
        )
        return row is not None

    def insert_draft(self, draft: EmailDraft) -> EmailDraft:
        """Persist a generated draft."""
        created_at = draft.created_at or utc_now()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO email_drafts (
                    org_id, user_id, reply_to_message_id, subject, body, created_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    draft.org_id,
                    draft.user_id,
                    draft.reply_to_message_id,
                    draft.subject,
                    draft.body,
                    serialize_datetime(created_at),
                ),
            )
        return EmailDraft(
            id=cursor.lastrowid,
            org_id=draft.org_id,
            user_id=draft.user_id,
            reply_to_message_id=draft.reply_to_message_id,
            subject=draft.subject,
            body=draft.body,
            created_at=created_at,
        )

    def list_drafts(self, user_id: int) -> list[EmailDraft]:
        """Return drafts owned by ``user_id`` oldest first."""
        rows = self._fetchall(
            """
            SELECT id, org_id, user_id, reply_to_message_id, subject, body, created_at
            FROM email_drafts
            WHERE user_id = ?
            ORDER BY id
            """,
            (user_id,),
        )
        return [
            EmailDraft(
                id=row["id"],
                org_id=row["org_id"],
                user_id=row["user_id"],
                reply_to_message_id=row["reply_to_message_id"],
                subject=row["subject"],
                body=row["body"],
                created_at=parse_datetime(row["created_at"]),
            )
            for row in rows
        ]

    # Users and mailboxes -----------------------------------------------------
    def upsert_user(self, user: User) -> User:
        """Insert or update a user row."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO users (id, org_id, email) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    org_id=excluded.org_id,
                    email=excluded.email
                """,
                (user.id, user.org_id, user.email),
            )
        return user

    def get_user(self, user_id: int) -> User | None:
        """Return the user row if present."""
        row = self._fetchone(
            "SELECT id, org_id, email FROM users WHERE id = ?", (user_id,)
        )
        if row is None:
            return None
        return User(id=row["id"], org_id=row["org_id"], email=row["email"])

    # pylint: disable=too-many-arguments
    def upsert_mailbox(
        self,
        *,
        org_id: int,
        user_id: int,
        connection_type: str,
        email_address: str,
        imap_host: str | None = None,
        imap_port: int | None = None,
        password_encrypted: str | None = None,
        is_active: bool = True,
    ) -> Mailbox:
        """Insert or update a mailbox keyed by owner and address."""
        now = serialize_datetime(utc_now())
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO mailboxes (
                    org_id, user_id, connection_type, email_address, imap_host,
                    imap_port, password_encrypted, is_active, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(org_id, user_id, email_address) DO UPDATE SET
                    connection_type=excluded.connection_type,
                    imap_host=excluded.imap_host,
                    imap_port=excluded.imap_port,
                    password_encrypted=excluded.password_encrypted,
                    is_active=excluded.is_active,
                    updated_at=excluded.updated_at
                """,
                (
                    org_id,
                    user_id,
                    connection_type,
                    email_address,
                    imap_host,
                    imap_port,
                    password_encrypted,
                    1 if is_active else 0,
                    now,
                    now,
                ),
            )
            row = conn.execute(
                """
                SELECT * FROM mailboxes
                WHERE org_id = ? AND user_id = ? AND email_address = ?
                """,
                (org_id, user_id, email_address),
            ).fetchone()
        return _mailbox_from_row(row)

    def get_mailbox(self, mailbox_id: int) -> Mailbox | None:
        """Return a mailbox by id."""
        row = self._fetchone("SELECT * FROM mailboxes WHERE id = ?", (mailbox_id,))
        return _mailbox_from_row(row) if row is not None else None

    def list_active_mailboxes(self, org_id: int, user_id: int) -> list[Mailbox]:
        """Return the user's active mailboxes in creation order."""
        rows = self._fetchall(
            """
            SELECT * FROM mailboxes
            WHERE org_id = ? AND user_id = ? AND is_active = 1
            ORDER BY id
            """,
            (org_id, user_id),
        )
        return [_mailbox_from_row(row) for row in rows]

    def mark_mailbox_active(self, mailbox_id: int) -> None:
        """Flag a mailbox as healthy after a completed pass."""
        with self._transaction() as conn:
            conn.execute(
                "UPDATE mailboxes SET is_active = 1, updated_at = ? WHERE id = ?",
                (serialize_datetime(utc_now()), mailbox_id),
            )

    # OAuth connections -------------------------------------------------------
    def upsert_oauth_connection(self, connection: OAuthConnection) -> None:
        """Store tokens received from a provider authorisation."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO oauth_connections (
                    org_id, user_id, provider, access_token, refresh_token,
                    token_expires_at, scopes, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(org_id, user_id, provider) DO UPDATE SET
                    access_token=excluded.access_token,
                    refresh_token=excluded.refresh_token,
                    token_expires_at=excluded.token_expires_at,
                    scopes=excluded.scopes,
                    updated_at=excluded.updated_at
                """,
                (
                    connection.org_id,
                    connection.user_id,
                    connection.provider,
                    connection.access_token,
                    connection.refresh_token,
                    serialize_datetime(connection.token_expires_at),
                    json.dumps(list(connection.scopes)),
                    serialize_datetime(utc_now()),
                ),
            )

    def get_oauth_connection(
        self, org_id: int, user_id: int, provider: str
    ) -> OAuthConnection | None:
        """Return the stored connection if present."""
        row = self._fetchone(
            """
            SELECT org_id, user_id, provider, access_token, refresh_token,
                   token_expires_at, scopes, updated_at
            FROM oauth_connections
            WHERE org_id = ? AND user_id = ? AND provider = ?
            """,
            (org_id, user_id, provider),
        )
        if row is None:
            return None
        return OAuthConnection(
            org_id=row["org_id"],
            user_id=row["user_id"],
            provider=row["provider"],
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
            token_expires_at=parse_datetime(row["token_expires_at"]),
            scopes=tuple(_load_json_list(row["scopes"])),
            updated_at=parse_datetime(row["updated_at"]),
        )

    def merge_oauth_tokens(
        self, org_id: int, user_id: int, update: TokenUpdate
    ) -> bool:
        """Merge refreshed tokens; ``None`` fields keep the stored values."""
        try:
            with self._transaction() as conn:
                cursor = conn.execute(
                    """
                    UPDATE oauth_connections
                    SET access_token = COALESCE(?, access_token),
                        refresh_token = COALESCE(?, refresh_token),
                        token_expires_at = COALESCE(?, token_expires_at),
                        updated_at = ?
                    WHERE org_id = ? AND user_id = ? AND provider = ?
                    """,
                    (
                        update.access_token,
                        update.refresh_token,
                        serialize_datetime(update.expires_at),
                        serialize_datetime(utc_now()),
                        org_id,
                        user_id,
                        update.provider,
                    ),
                )
        except sqlite3.Error as exc:
            raise TokenPersistError(
                f"Failed to persist refreshed {update.provider} tokens"
            ) from exc
        return cursor.rowcount > 0

    # Settings ----------------------------------------------------------------
    def upsert_sync_setting(
        self,
        *,
        user_id: int,
        org_id: int,
        enabled: bool,
        interval_minutes: int = 15,
        last_run_at: datetime | None = None,
    ) -> UserSyncSetting:
        """Insert or update a user's sync cadence, clamping the interval."""
        interval = min(
            max(int(interval_minutes), MIN_SYNC_INTERVAL_MINUTES),
            MAX_SYNC_INTERVAL_MINUTES,
        )
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO user_email_sync_settings (
                    user_id, org_id, enabled, interval_minutes, last_run_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    org_id=excluded.org_id,
                    enabled=excluded.enabled,
                    interval_minutes=excluded.interval_minutes,
                    last_run_at=excluded.last_run_at,
                    updated_at=excluded.updated_at
                """,
                (
                    user_id,
                    org_id,
                    1 if enabled else 0,
                    interval,
                    serialize_datetime(last_run_at),
                    serialize_datetime(utc_now()),
                ),
            )
        return UserSyncSetting(
            user_id=user_id,
            org_id=org_id,
            enabled=enabled,
            interval_minutes=interval,
            last_run_at=last_run_at,
        )

    def get_sync_setting(self, user_id: int) -> UserSyncSetting | None:
        """Return the sync setting for ``user_id``."""
        row = self._fetchone(
            """
            SELECT user_id, org_id, enabled, interval_minutes, last_run_at
            FROM user_email_sync_settings
            WHERE user_id = ?
            """,
            (user_id,),
        )
        return _sync_setting_from_row(row) if row is not None else None

    def list_enabled_sync_settings(self) -> list[UserSyncSetting]:
        """Return every enabled per-user sync setting."""
        rows = self._fetchall(
            """
            SELECT user_id, org_id, enabled, interval_minutes, last_run_at
            FROM user_email_sync_settings
            WHERE enabled = 1
            ORDER BY user_id
            """,
            (),
        )
        return [_sync_setting_from_row(row) for row in rows]

    def mark_sync_run(self, user_id: int, org_id: int, ran_at: datetime) -> None:
        """Record the time of the last scheduled pass for a user."""
        with self._transaction() as conn:
            conn.execute(
                """
                UPDATE user_email_sync_settings
                SET last_run_at = ?, updated_at = ?
                WHERE user_id = ? AND org_id = ?
                """,
                (
                    serialize_datetime(ran_at),
                    serialize_datetime(utc_now()),
                    user_id,
                    org_id,
                ),
            )

    def upsert_auto_draft_setting(self, setting: UserAutoDraftSetting) -> None:
        """Insert or update a user's auto-draft opt-in."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO user_auto_draft_settings (
                    user_id, org_id, enabled, categories, updated_at
                ) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    org_id=excluded.org_id,
                    enabled=excluded.enabled,
                    categories=excluded.categories,
                    updated_at=excluded.updated_at
                """,
                (
                    setting.user_id,
                    setting.org_id,
                    1 if setting.enabled else 0,
                    json.dumps(sorted(setting.categories)),
                    serialize_datetime(utc_now()),
                ),
            )

    def get_auto_draft_setting(
        self, org_id: int, user_id: int
    ) -> UserAutoDraftSetting | None:
        """Return the user's auto-draft opt-in if configured."""
        row = self._fetchone(
            """
            SELECT user_id, org_id, enabled, categories
            FROM user_auto_draft_settings
            WHERE user_id = ? AND org_id = ?
            """,
            (user_id, org_id),
        )
        if row is None:
            return None
        return UserAutoDraftSetting(
            user_id=row["user_id"],
            org_id=row["org_id"],
            enabled=bool(row["enabled"]),
            categories=frozenset(
                str(item) for item in _load_json_list(row["categories"])
            ),
        )

    def upsert_voice_profile(self, profile: VoiceProfile) -> None:
        """Insert or update a user's voice profile."""
        style = profile.writing_style
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO voice_profiles (
                    user_id, is_trained, tone, formality_level, writing_style,
                    sample_emails, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    is_trained=excluded.is_trained,
                    tone=excluded.tone,
                    formality_level=excluded.formality_level,
                    writing_style=excluded.writing_style,
                    sample_emails=excluded.sample_emails,
                    updated_at=excluded.updated_at
                """,
                (
                    profile.user_id,
                    1 if profile.is_trained else 0,
                    profile.tone,
                    profile.formality_level,
                    json.dumps(
                        {
                            "greeting": style.greeting,
                            "closing": style.closing,
                            "sentence_length": style.sentence_length,
                            "emoji_usage": style.emoji_usage,
                            "exclamation_usage": style.exclamation_usage,
                            "common_phrases": list(style.common_phrases),
                        }
                    ),
                    json.dumps(list(profile.sample_texts)),
                    serialize_datetime(utc_now()),
                ),
            )

    def get_trained_voice_profile(self, user_id: int) -> VoiceProfile | None:
        """Return the user's voice profile only when it is trained."""
        row = self._fetchone(
            """
            SELECT user_id, is_trained, tone, formality_level, writing_style,
                   sample_emails
            FROM voice_profiles
            WHERE user_id = ? AND is_trained = 1
            """,
            (user_id,),
        )
        if row is None:
            return None
        style = _load_json_dict(row["writing_style"])
        return VoiceProfile(
            user_id=row["user_id"],
            is_trained=True,
            tone=row["tone"],
            formality_level=row["formality_level"],
            writing_style=WritingStyle(
                greeting=style.get("greeting"),
                closing=style.get("closing"),
                sentence_length=style.get("sentence_length"),
                emoji_usage=style.get("emoji_usage"),
                exclamation_usage=style.get("exclamation_usage"),
                common_phrases=tuple(
                    str(item) for item in style.get("common_phrases") or ()
                ),
            ),
            sample_texts=tuple(
                str(item) for item in _load_json_list(row["sample_emails"])
            ),
        )

    def upsert_org_ai_settings(self, settings: OrgAiSettings) -> None:
        """Insert or update an organisation's AI override."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO org_ai_settings (
                    org_id, provider, model, openai_api_key, anthropic_api_key,
                    google_api_key, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(org_id) DO UPDATE SET
                    provider=excluded.provider,
                    model=excluded.model,
                    openai_api_key=excluded.openai_api_key,
                    anthropic_api_key=excluded.anthropic_api_key,
                    google_api_key=excluded.google_api_key,
                    updated_at=excluded.updated_at
                """,
                (
                    settings.org_id,
                    settings.provider,
                    settings.model,
                    settings.openai_api_key,
                    settings.anthropic_api_key,
                    settings.google_api_key,
                    serialize_datetime(utc_now()),
                ),
            )

    def get_org_ai_settings(self, org_id: int) -> OrgAiSettings | None:
        """Return the organisation's AI override if present."""
        row = self._fetchone(
            """
            SELECT org_id, provider, model, openai_api_key, anthropic_api_key,
                   google_api_key
            FROM org_ai_settings
            WHERE org_id = ?
            """,
            (org_id,),
        )
        if row is None:
            return None
        return OrgAiSettings(
            org_id=row["org_id"],
            provider=row["provider"],
            model=row["model"],
            openai_api_key=row["openai_api_key"],
            anthropic_api_key=row["anthropic_api_key"],
            google_api_key=row["google_api_key"],
        )

    # Activity ----------------------------------------------------------------
    def record_activity(
        self, org_id: int, user_id: int, activity_type: str, description: str
    ) -> None:
        """Append an activity entry."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO user_activity (
                    org_id, user_id, activity_type, description, created_at
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    org_id,
                    user_id,
                    activity_type,
                    description,
                    serialize_datetime(utc_now()),
                ),
            )

    def list_activity(self, user_id: int) -> list[ActivityRecord]:
        """Return activity for ``user_id`` oldest first."""
        rows = self._fetchall(
            """
            SELECT id, org_id, user_id, activity_type, description, created_at
            FROM user_activity
            WHERE user_id = ?
            ORDER BY id
            """,
            (user_id,),
        )
        return [
            ActivityRecord(
                id=row["id"],
                org_id=row["org_id"],
                user_id=row["user_id"],
                activity_type=row["activity_type"],
                description=row["description"],
                created_at=parse_datetime(row["created_at"]),
            )
            for row in rows
        ]

    def close(self) -> None:
        """Close the underlying SQLite connection."""
        with self._lock:
            self._connection.close()

    # Internal helpers --------------------------------------------------------
    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock, self._connection:
            yield self._connection

    def _fetchone(self, query: str, params: Sequence[Any]) -> sqlite3.Row | None:
        with self._lock:
            return self._connection.execute(query, tuple(params)).fetchone()

    def _fetchall(self, query: str, params: Sequence[Any]) -> list[sqlite3.Row]:
        with self._lock:
            return self._connection.execute(query, tuple(params)).fetchall()

    def _enable_foreign_keys(self) -> None:
        with self._connection:
            self._connection.execute("PRAGMA foreign_keys = ON")

    def _apply_migrations(self) -> None:
        schema_dir = Path(__file__).resolve().parent / "schema"
        for migration in sorted(schema_dir.glob("*.sql")):
            LOGGER.debug("Applying migration %s", migration.name)
            script = migration.read_text(encoding="utf-8")
            with self._connection:
                self._connection.executescript(script)


def _mailbox_from_row(row: sqlite3.Row) -> Mailbox:
    return Mailbox(
        id=row["id"],
        org_id=row["org_id"],
        user_id=row["user_id"],
        connection_type=row["connection_type"],
        email_address=row["email_address"],
        imap_host=row["imap_host"],
        imap_port=row["imap_port"],
        password_encrypted=row["password_encrypted"],
        is_active=bool(row["is_active"]),
    )


def _sync_setting_from_row(row: sqlite3.Row) -> UserSyncSetting:
    return UserSyncSetting(
        user_id=row["user_id"],
        org_id=row["org_id"],
        enabled=bool(row["enabled"]),
        interval_minutes=row["interval_minutes"],
        last_run_at=parse_datetime(row["last_run_at"]),
    )


def _load_json_list(value: str | None) -> list[Any]:
    if not value:
        return []
    try:
        loaded = json.loads(value)
    except json.JSONDecodeError:
        return []
    return loaded if isinstance(loaded, list) else []


def _load_json_dict(value: str | None) -> dict[str, Any]:
    if not value:
        return {}
    try:
        loaded = json.loads(value)
    except json.JSONDecodeError:
        return {}
    return loaded if isinstance(loaded, dict) else {}


__all__ = ["SqliteSyncRepository"]
