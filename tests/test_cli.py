"""Tests for the command-line entry point."""

from __future__ import annotations

import pytest

from inbox_sync.cli import build_parser, execute
from inbox_sync.core.config import AppSettings
from inbox_sync.core.container import ServiceContainer
from inbox_sync.core.models import MailboxSyncResult, TickReport, User
from inbox_sync.storage import SqliteSyncRepository


class StubSynchronizer:
    """Synchronizer stub returning a failed mailbox result."""

    def sync_mailboxes_for_user(self, user: User) -> list[MailboxSyncResult]:
        return [
            MailboxSyncResult(
                mailbox_id=1, email_address=user.email, error="imap connection failed"
            )
        ]


class StubScheduler:
    """Scheduler stub with a fixed tick report."""

    def tick(self) -> TickReport:
        return TickReport(users_checked=2, users_synced=1, users_failed=1)


def test_parser_defaults_to_info() -> None:
    args = build_parser().parse_args([])
    assert args.command == "info"
    assert args.user_id is None


def test_info_prints_configuration(capsys: pytest.CaptureFixture[str]) -> None:
    execute(build_parser().parse_args(["info"]), AppSettings())
    output = capsys.readouterr().out
    assert "Inbox Sync is ready." in output
    assert "AI provider: openai" in output


def test_sync_prints_per_mailbox_outcome(
    repository: SqliteSyncRepository,
    user: User,
    capsys: pytest.CaptureFixture[str],
) -> None:
    container = ServiceContainer()
    container.register_instance("repository", repository)
    container.register_instance("synchronizer", StubSynchronizer())

    args = build_parser().parse_args(["sync", "--user-id", str(user.id)])
    execute(args, AppSettings(), container)

    output = capsys.readouterr().out
    assert "owner@example.com: sync failed: imap connection failed" in output


def test_sync_reports_unknown_user(
    repository: SqliteSyncRepository, capsys: pytest.CaptureFixture[str]
) -> None:
    container = ServiceContainer()
    container.register_instance("repository", repository)
    container.register_instance("synchronizer", StubSynchronizer())

    execute(build_parser().parse_args(["sync", "--user-id", "99"]), AppSettings(), container)

    assert "User 99 not found." in capsys.readouterr().out


def test_tick_prints_report(capsys: pytest.CaptureFixture[str]) -> None:
    container = ServiceContainer()
    container.register_instance("scheduler", StubScheduler())

    execute(build_parser().parse_args(["tick"]), AppSettings(), container)

    assert "Checked 2 user(s): 1 synced, 1 failed." in capsys.readouterr().out
