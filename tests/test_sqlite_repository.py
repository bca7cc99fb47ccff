"""Tests for the SQLite-backed sync repository."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest

from inbox_sync.core.models import (
    CONNECTION_GMAIL,
    CONNECTION_IMAP,
    EmailMessage,
    OAuthConnection,
    TokenUpdate,
    User,
)
from inbox_sync.storage import SqliteSyncRepository

RECEIVED = datetime(2025, 10, 24, 15, 0, tzinfo=UTC)


def _message(mailbox_id: int, identity: str = "<1@example.com>") -> EmailMessage:
    return EmailMessage(
        id=None,
        org_id=3,
        mailbox_id=mailbox_id,
        provider_message_id=identity,
        sender="sender@example.com",
        subject="Demo",
        body_text="Hello",
        body_html=None,
        received_at=RECEIVED,
    )


def _mailbox_id(repository: SqliteSyncRepository, user: User) -> int:
    mailbox = repository.upsert_mailbox(
        org_id=user.org_id,
        user_id=user.id,
        connection_type=CONNECTION_IMAP,
        email_address="owner@example.com",
        imap_host="imap.example.com",
        imap_port=993,
    )
    return mailbox.id


def test_insert_if_absent_is_idempotent(
    repository: SqliteSyncRepository, user: User
) -> None:
    mailbox_id = _mailbox_id(repository, user)

    first = repository.insert_if_absent(_message(mailbox_id))
    second = repository.insert_if_absent(_message(mailbox_id))

    assert first is not None
    assert second is None
    assert repository.count_messages() == 1
    stored = repository.fetch_message(first)
    assert stored is not None
    assert stored.is_read is False
    assert stored.classification is None
    assert stored.received_at == RECEIVED


def test_concurrent_inserts_store_one_row(
    repository: SqliteSyncRepository, user: User
) -> None:
    mailbox_id = _mailbox_id(repository, user)
    results: list[int | None] = []

    def insert() -> None:
        results.append(repository.insert_if_absent(_message(mailbox_id)))

    threads = [threading.Thread(target=insert) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len([value for value in results if value is not None]) == 1
    assert repository.count_messages(mailbox_id) == 1


def test_insert_requires_identity(
    repository: SqliteSyncRepository, user: User
) -> None:
    mailbox_id = _mailbox_id(repository, user)
    with pytest.raises(ValueError):
        repository.insert_if_absent(_message(mailbox_id, identity=""))


def test_token_merge_preserves_refresh_token(
    repository: SqliteSyncRepository, user: User
) -> None:
    expires = datetime(2025, 10, 24, 16, 0, tzinfo=UTC)
    repository.upsert_oauth_connection(
        OAuthConnection(
            org_id=user.org_id,
            user_id=user.id,
            provider=CONNECTION_GMAIL,
            access_token="A",
            refresh_token="R",
            token_expires_at=expires,
            scopes=("gmail.readonly",),
        )
    )

    merged = repository.merge_oauth_tokens(
        user.org_id,
        user.id,
        TokenUpdate(provider=CONNECTION_GMAIL, access_token="A2", refresh_token=None),
    )

    stored = repository.get_oauth_connection(user.org_id, user.id, CONNECTION_GMAIL)
    assert merged is True
    assert stored is not None
    assert stored.access_token == "A2"
    assert stored.refresh_token == "R"
    assert stored.token_expires_at == expires
    assert stored.scopes == ("gmail.readonly",)


def test_token_merge_without_connection_reports_nothing_updated(
    repository: SqliteSyncRepository, user: User
) -> None:
    merged = repository.merge_oauth_tokens(
        user.org_id,
        user.id,
        TokenUpdate(provider=CONNECTION_GMAIL, access_token="A2"),
    )
    assert merged is False


def test_sync_setting_interval_is_clamped(
    repository: SqliteSyncRepository, user: User
) -> None:
    low = repository.upsert_sync_setting(
        user_id=user.id, org_id=user.org_id, enabled=True, interval_minutes=1
    )
    assert low.interval_minutes == 5

    repository.upsert_sync_setting(
        user_id=user.id, org_id=user.org_id, enabled=True, interval_minutes=10_000
    )
    stored = repository.get_sync_setting(user.id)
    assert stored is not None
    assert stored.interval_minutes == 1440


def test_mark_sync_run_and_enabled_listing(
    repository: SqliteSyncRepository, user: User
) -> None:
    repository.upsert_sync_setting(user_id=user.id, org_id=user.org_id, enabled=True)
    ran_at = RECEIVED + timedelta(minutes=30)

    repository.mark_sync_run(user.id, user.org_id, ran_at)

    settings = repository.list_enabled_sync_settings()
    assert [setting.user_id for setting in settings] == [user.id]
    assert settings[0].last_run_at == ran_at
    assert settings[0].interval_minutes == 15


def test_inactive_mailboxes_are_not_listed(
    repository: SqliteSyncRepository, user: User
) -> None:
    mailbox = repository.upsert_mailbox(
        org_id=user.org_id,
        user_id=user.id,
        connection_type=CONNECTION_IMAP,
        email_address="paused@example.com",
        is_active=False,
    )
    assert repository.list_active_mailboxes(user.org_id, user.id) == []

    repository.mark_mailbox_active(mailbox.id)

    listed = repository.list_active_mailboxes(user.org_id, user.id)
    assert [item.email_address for item in listed] == ["paused@example.com"]
