"""FastAPI application exposing on-demand sync and the scheduler lifecycle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi import status as http_status

from ..core import AppSettings, ServiceContainer, build_container, load_app_settings
from ..core.datetime_utils import serialize_datetime
from ..core.errors import MailboxSyncError
from ..core.models import MailboxSyncResult
from ..scheduler import init_scheduler, shutdown_scheduler

LOGGER = logging.getLogger(__name__)


def create_app(
    settings: AppSettings | None = None,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = settings or load_app_settings()
    services = container or build_container(app_settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if app_settings.scheduler.enabled:
            init_scheduler(services)
        try:
            yield
        finally:
            shutdown_scheduler()

    app = FastAPI(title="Inbox Sync", lifespan=lifespan)
    app.state.container = services

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/users/{user_id}/sync")
    async def sync_user(user_id: int) -> list[dict[str, Any]]:
        repository = services.resolve("repository")
        user = repository.get_user(user_id)
        if user is None:
            raise HTTPException(
                status_code=http_status.HTTP_404_NOT_FOUND, detail="User not found"
            )
        synchronizer = services.resolve("synchronizer")
        results = await asyncio.to_thread(synchronizer.sync_mailboxes_for_user, user)
        return [_result_payload(result) for result in results]

    @app.post("/api/mailboxes/{mailbox_id}/sync")
    async def sync_mailbox(mailbox_id: int) -> dict[str, Any]:
        repository = services.resolve("repository")
        mailbox = repository.get_mailbox(mailbox_id)
        if mailbox is None:
            raise HTTPException(
                status_code=http_status.HTTP_404_NOT_FOUND, detail="Mailbox not found"
            )
        user = repository.get_user(mailbox.user_id)
        if user is None:
            raise HTTPException(
                status_code=http_status.HTTP_404_NOT_FOUND, detail="User not found"
            )
        synchronizer = services.resolve("synchronizer")
        try:
            result = await asyncio.to_thread(synchronizer.sync_mailbox, mailbox, user)
        except MailboxSyncError as exc:
            LOGGER.warning("On-demand sync failed for mailbox %s: %s", mailbox_id, exc)
            raise HTTPException(
                status_code=http_status.HTTP_502_BAD_GATEWAY, detail=str(exc)
            ) from exc
        return _result_payload(result)

    return app


def _result_payload(result: MailboxSyncResult) -> dict[str, Any]:
    return {
        "mailbox_id": result.mailbox_id,
        "email_address": result.email_address,
        "email_count": result.email_count,
        "emails": [
            {
                "sender": email.sender,
                "subject": email.subject,
                "received_at": serialize_datetime(email.received_at),
            }
            for email in result.emails
        ],
        "error": result.error,
    }


__all__ = ["create_app"]
