"""Tests for the FastAPI sync endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi.testclient import TestClient

from inbox_sync.core.config import AppSettings, SchedulerSettings
from inbox_sync.core.container import ServiceContainer
from inbox_sync.core.errors import MailboxSyncError
from inbox_sync.core.models import (
    CONNECTION_IMAP,
    Mailbox,
    MailboxSyncResult,
    SyncedEmailSummary,
    User,
)
from inbox_sync.storage import SqliteSyncRepository
from inbox_sync.web.app import create_app


class StubSynchronizer:
    """Synchronizer stub returning canned results."""

    def __init__(self, error: MailboxSyncError | None = None) -> None:
        self.error = error

    def sync_mailbox(self, mailbox: Mailbox, user: User) -> MailboxSyncResult:
        del user
        if self.error is not None:
            raise self.error
        return MailboxSyncResult(
            mailbox_id=mailbox.id,
            email_address=mailbox.email_address,
            email_count=1,
            emails=[
                SyncedEmailSummary(
                    sender="client@example.com",
                    subject="Proposal",
                    received_at=datetime(2025, 10, 27, 9, 0, tzinfo=UTC),
                ),
            ],
        )

    def sync_mailboxes_for_user(self, user: User) -> list[MailboxSyncResult]:
        return [
            MailboxSyncResult(
                mailbox_id=1, email_address=user.email, error="imap connection failed"
            )
        ]


def _client(
    repository: SqliteSyncRepository, synchronizer: StubSynchronizer
) -> TestClient:
    settings = AppSettings(scheduler=SchedulerSettings(enabled=False))
    container = ServiceContainer()
    container.register_instance("settings", settings)
    container.register_instance("repository", repository)
    container.register_instance("synchronizer", synchronizer)
    return TestClient(create_app(settings, container))


def _mailbox(repository: SqliteSyncRepository, user: User) -> Mailbox:
    return repository.upsert_mailbox(
        org_id=user.org_id,
        user_id=user.id,
        connection_type=CONNECTION_IMAP,
        email_address="owner@example.com",
        imap_host="imap.example.com",
    )


def test_health(repository: SqliteSyncRepository) -> None:
    response = _client(repository, StubSynchronizer()).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_mailbox_sync_returns_result_payload(
    repository: SqliteSyncRepository, user: User
) -> None:
    mailbox = _mailbox(repository, user)

    response = _client(repository, StubSynchronizer()).post(
        f"/api/mailboxes/{mailbox.id}/sync"
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["email_count"] == 1
    assert payload["email_address"] == "owner@example.com"
    assert payload["emails"][0]["subject"] == "Proposal"
    assert payload["emails"][0]["received_at"].startswith("2025-10-27T09:00:00")
    assert payload["error"] is None


def test_mailbox_sync_failure_maps_to_bad_gateway(
    repository: SqliteSyncRepository, user: User
) -> None:
    mailbox = _mailbox(repository, user)
    error = MailboxSyncError("imap connection failed: auth rejected", mailbox_id=mailbox.id)

    response = _client(repository, StubSynchronizer(error)).post(
        f"/api/mailboxes/{mailbox.id}/sync"
    )

    assert response.status_code == 502
    assert response.json()["detail"] == "imap connection failed: auth rejected"


def test_unknown_mailbox_and_user_return_not_found(
    repository: SqliteSyncRepository,
) -> None:
    client = _client(repository, StubSynchronizer())

    mailbox_response = client.post("/api/mailboxes/999/sync")
    assert mailbox_response.status_code == 404
    assert mailbox_response.json()["detail"] == "Mailbox not found"

    user_response = client.post("/api/users/999/sync")
    assert user_response.status_code == 404
    assert user_response.json()["detail"] == "User not found"


def test_user_sync_lists_per_mailbox_results(
    repository: SqliteSyncRepository, user: User
) -> None:
    response = _client(repository, StubSynchronizer()).post(
        f"/api/users/{user.id}/sync"
    )

    assert response.status_code == 200
    assert response.json() == [
        {
            "mailbox_id": 1,
            "email_address": "owner@example.com",
            "email_count": 0,
            "emails": [],
            "error": "imap connection failed",
        }
    ]
