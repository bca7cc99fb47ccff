"""Gmail REST connector authenticated with stored OAuth tokens."""

from __future__ import annotations

import base64
import binascii
import logging
from contextlib import nullcontext
from datetime import datetime, timedelta
from email.utils import parseaddr, parsedate_to_datetime
from typing import Any

import httpx

from ..core.config import GmailSettings
from ..core.datetime_utils import ensure_utc, from_epoch_millis, utc_now
from ..core.errors import ConnectorError, MissingCredentialsError, ParseError
from ..core.interfaces import MailboxConnector, OAuthTokenStore
from ..core.models import (
    CONNECTION_GMAIL,
    FetchBatch,
    Mailbox,
    OAuthConnection,
    RawMessage,
    TokenUpdate,
)

LOGGER = logging.getLogger(__name__)

# Refresh slightly before the recorded expiry to avoid a guaranteed 401.
_EXPIRY_SKEW = timedelta(seconds=60)


class GmailConnector(MailboxConnector):
    """List and fetch the newest inbox messages of a Gmail account.

    Token rotations observed while talking to Google are not written here;
    they are returned on :attr:`FetchBatch.token_updates` (or on the raised
    :class:`ConnectorError`) for the caller to merge into storage.
    """

    def __init__(
        self,
        settings: GmailSettings,
        token_store: OAuthTokenStore,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialise with settings, token storage, and an optional HTTP client."""
        self._settings = settings
        self._token_store = token_store
        self._http_client = http_client

    def fetch_recent_messages(self, mailbox: Mailbox) -> FetchBatch:
        """Return up to ``max_results`` recent inbox messages."""
        connection = self._token_store.get_oauth_connection(
            mailbox.org_id, mailbox.user_id, CONNECTION_GMAIL
        )
        if connection is None:
            raise MissingCredentialsError(
                "No Gmail OAuth credentials found for this mailbox"
            )

        client_scope: Any = (
            nullcontext(self._http_client)
            if self._http_client is not None
            else httpx.Client(timeout=self._settings.timeout_seconds)
        )
        with client_scope as client:
            session = _GmailSession(client, self._settings, connection)
            try:
                messages = self._fetch(session, mailbox)
            except (httpx.HTTPError, ValueError) as exc:
                raise ConnectorError(
                    f"Gmail request failed: {exc}",
                    token_updates=session.token_updates,
                ) from exc
            except ConnectorError as exc:
                exc.token_updates = exc.token_updates + tuple(session.token_updates)
                raise
        return FetchBatch(
            messages=tuple(messages), token_updates=tuple(session.token_updates)
        )

    def _fetch(self, session: _GmailSession, mailbox: Mailbox) -> list[RawMessage]:
        listing = session.get(
            "users/me/messages",
            params={"labelIds": "INBOX", "maxResults": self._settings.max_results},
        )
        identifiers = [
            item["id"]
            for item in listing.get("messages") or []
            if isinstance(item, dict) and item.get("id")
        ]
        LOGGER.debug(
            "Listed %s Gmail message(s) for %s", len(identifiers), mailbox.email_address
        )

        messages: list[RawMessage] = []
        for message_id in identifiers:
            try:
                full = session.get(
                    f"users/me/messages/{message_id}", params={"format": "full"}
                )
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code == 404:
                    LOGGER.warning("Gmail message %s disappeared; skipping", message_id)
                    continue
                raise
            try:
                messages.append(parse_gmail_message(full))
            except ParseError as exc:
                LOGGER.warning("Skipping Gmail message %s: %s", message_id, exc)
        LOGGER.info(
            "Fetched %s message(s) from %s", len(messages), mailbox.email_address
        )
        return messages


class _GmailSession:
    """Authenticated request helper that refreshes tokens when needed."""

    def __init__(
        self,
        client: httpx.Client,
        settings: GmailSettings,
        connection: OAuthConnection,
    ) -> None:
        self._client = client
        self._settings = settings
        self._access_token = connection.access_token
        self._refresh_token = connection.refresh_token
        self._expires_at = ensure_utc(connection.token_expires_at)
        self.token_updates: list[TokenUpdate] = []

    def get(self, path: str, *, params: dict[str, Any]) -> dict[str, Any]:
        if self._access_token is None or self._is_expired():
            self._refresh()
        response = self._request(path, params)
        if response.status_code == 401 and self._refresh_token:
            LOGGER.info("Gmail rejected access token; refreshing")
            self._refresh()
            response = self._request(path, params)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ConnectorError("Gmail returned an unexpected payload")
        return payload

    def _request(self, path: str, params: dict[str, Any]) -> httpx.Response:
        url = f"{self._settings.api_base_url.rstrip('/')}/{path}"
        return self._client.get(
            url,
            params=params,
            headers={"Authorization": f"Bearer {self._access_token}"},
        )

    def _is_expired(self) -> bool:
        if self._expires_at is None:
            return False
        return self._expires_at - _EXPIRY_SKEW <= utc_now()

    def _refresh(self) -> None:
        if not self._refresh_token:
            raise ConnectorError("Gmail access token expired and no refresh token")
        response = self._client.post(
            self._settings.token_url,
            data={
                "client_id": self._settings.client_id or "",
                "client_secret": self._settings.client_secret or "",
                "refresh_token": self._refresh_token,
                "grant_type": "refresh_token",
            },
        )
        if response.status_code != 200:
            LOGGER.error("Gmail token refresh failed: %s", response.status_code)
        response.raise_for_status()
        tokens = response.json()
        if not isinstance(tokens, dict):
            raise ConnectorError("Gmail token refresh returned an unexpected payload")
        access_token = tokens.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ConnectorError("Gmail token refresh returned no access token")

        refresh_token = tokens.get("refresh_token") or None
        expires_at: datetime | None = None
        expires_in = tokens.get("expires_in")
        if isinstance(expires_in, (int, float)):
            expires_at = utc_now() + timedelta(seconds=expires_in)

        self._access_token = access_token
        if refresh_token:
            self._refresh_token = refresh_token
        self._expires_at = expires_at
        self.token_updates.append(
            TokenUpdate(
                provider=CONNECTION_GMAIL,
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=expires_at,
            )
        )
        LOGGER.info("Refreshed Gmail access token")


def parse_gmail_message(message: dict[str, Any]) -> RawMessage:
    """Convert a ``format=full`` Gmail message resource into a :class:`RawMessage`."""
    message_id = message.get("id")
    payload = message.get("payload")
    if not message_id or not isinstance(payload, dict):
        raise ParseError("Gmail message is missing its id or payload")

    headers = {
        str(header.get("name", "")).lower(): str(header.get("value", ""))
        for header in payload.get("headers") or []
        if isinstance(header, dict)
    }
    received_at = _parse_date_header(headers.get("date")) or from_epoch_millis(
        message.get("internalDate")
    )
    body_html = extract_gmail_body(payload, "text/html")
    return RawMessage(
        provider_message_id=str(message_id),
        sender=parseaddr(headers.get("from", ""))[1] or headers.get("from", ""),
        subject=headers.get("subject") or "(No Subject)",
        body_text=extract_gmail_body(payload, "text/plain"),
        body_html=body_html or None,
        received_at=received_at or utc_now(),
    )


def extract_gmail_body(part: dict[str, Any], mime_type: str) -> str:
    """Return the first body of ``mime_type`` found walking nested parts."""
    body = part.get("body") or {}
    if part.get("mimeType") == mime_type and body.get("data"):
        return _decode_body(body["data"])
    for child in part.get("parts") or []:
        if not isinstance(child, dict):
            continue
        content = extract_gmail_body(child, mime_type)
        if content:
            return content
    return ""


def _decode_body(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode(
            "utf-8", errors="replace"
        )
    except (binascii.Error, ValueError) as exc:
        raise ParseError("Gmail body is not valid base64url") from exc


def _parse_date_header(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return ensure_utc(parsedate_to_datetime(value))
    except (TypeError, ValueError):
        return None


__all__ = ["GmailConnector", "extract_gmail_body", "parse_gmail_message"]
