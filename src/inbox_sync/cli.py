"""Command-line entry point for Inbox Sync."""

from __future__ import annotations

import argparse
import threading
from pathlib import Path

from inbox_sync.core import (
    AppSettings,
    ServiceContainer,
    build_container,
    configure_logging,
    load_app_settings,
)
from inbox_sync.core.errors import MailboxSyncError
from inbox_sync.core.models import MailboxSyncResult


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Inbox Sync mailbox ingestion")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="info",
        choices=["info", "sync", "tick", "scheduler"],
        help="Operation to execute.",
    )
    parser.add_argument(
        "--user-id",
        dest="user_id",
        type=int,
        default=None,
        help="User whose mailboxes the sync command processes.",
    )
    parser.add_argument(
        "--mailbox-id",
        dest="mailbox_id",
        type=int,
        default=None,
        help="Restrict the sync command to a single mailbox.",
    )
    return parser


def execute(
    args: argparse.Namespace,
    settings: AppSettings,
    container: ServiceContainer | None = None,
) -> None:
    """Execute the requested CLI command."""
    command = args.command
    if command == "info":
        print("Inbox Sync is ready.")
        print(f"AI provider: {settings.ai.provider}")
        print(f"Database path: {settings.storage.db_path}")
        print(f"Scheduler tick: every {settings.scheduler.tick_seconds}s")
        return

    services = container or build_container(settings)
    if command == "sync":
        _run_sync(services, args.user_id, args.mailbox_id)
    elif command == "tick":
        report = services.resolve("scheduler").tick()
        print(
            f"Checked {report.users_checked} user(s): "
            f"{report.users_synced} synced, {report.users_failed} failed."
        )
    elif command == "scheduler":
        _run_scheduler(services)


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()
    if args.command == "sync" and args.user_id is None:
        parser.error("sync requires --user-id")

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    execute(args, settings)


def _run_sync(
    container: ServiceContainer, user_id: int, mailbox_id: int | None
) -> None:
    """Run an on-demand sync and report the outcome."""
    repository = container.resolve("repository")
    synchronizer = container.resolve("synchronizer")
    user = repository.get_user(user_id)
    if user is None:
        print(f"User {user_id} not found.")
        return

    if mailbox_id is None:
        results = synchronizer.sync_mailboxes_for_user(user)
        if not results:
            print("No active mailboxes.")
        for result in results:
            _print_result(result)
        return

    mailbox = repository.get_mailbox(mailbox_id)
    if mailbox is None or mailbox.user_id != user.id:
        print(f"Mailbox {mailbox_id} not found for user {user_id}.")
        return
    try:
        result = synchronizer.sync_mailbox(mailbox, user)
    except MailboxSyncError as exc:
        print(f"Sync failed: {exc}")
        return
    _print_result(result)


def _print_result(result: MailboxSyncResult) -> None:
    if result.error:
        print(f"{result.email_address}: sync failed: {result.error}")
        return
    print(f"{result.email_address}: {result.email_count} new message(s)")
    for email in result.emails:
        print(f"  {email.received_at.isoformat()}  {email.sender}  {email.subject}")


def _run_scheduler(container: ServiceContainer) -> None:
    scheduler = container.resolve("scheduler")
    scheduler.start()
    print("Scheduler running; press Ctrl+C to stop.")
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        print("Stopping scheduler.")
    finally:
        scheduler.shutdown()


if __name__ == "__main__":
    main()
