"""Tests for the Gmail REST connector."""

from __future__ import annotations

import base64
import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from inbox_sync.core.config import GmailSettings
from inbox_sync.core.errors import ConnectorError, MissingCredentialsError
from inbox_sync.core.models import (
    CONNECTION_GMAIL,
    Mailbox,
    OAuthConnection,
    TokenUpdate,
)
from inbox_sync.transport import GmailConnector
from inbox_sync.transport.gmail_client import extract_gmail_body

API = "https://gmail.googleapis.com/gmail/v1"
TOKEN_URL = "https://oauth2.googleapis.com/token"


def _encode(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def _full_message(message_id: str) -> dict[str, object]:
    return {
        "id": message_id,
        "internalDate": "1761553800000",
        "payload": {
            "mimeType": "multipart/mixed",
            "headers": [
                {"name": "From", "value": "Alice <alice@example.com>"},
                {"name": "Subject", "value": f"Subject {message_id}"},
            ],
            "parts": [
                {
                    "mimeType": "multipart/alternative",
                    "parts": [
                        {
                            "mimeType": "text/plain",
                            "body": {"data": _encode(f"plain {message_id}")},
                        },
                        {
                            "mimeType": "text/html",
                            "body": {"data": _encode(f"<p>html {message_id}</p>")},
                        },
                    ],
                }
            ],
        },
    }


class StubTokenStore:
    """Token store stub returning a fixed connection."""

    def __init__(self, connection: OAuthConnection | None) -> None:
        self.connection = connection
        self.merged: list[TokenUpdate] = []

    def get_oauth_connection(
        self, org_id: int, user_id: int, provider: str
    ) -> OAuthConnection | None:
        del org_id, user_id
        assert provider == CONNECTION_GMAIL
        return self.connection

    def merge_oauth_tokens(
        self, org_id: int, user_id: int, update: TokenUpdate
    ) -> bool:
        del org_id, user_id
        self.merged.append(update)
        return True


def _mailbox() -> Mailbox:
    return Mailbox(
        id=2,
        org_id=3,
        user_id=7,
        connection_type=CONNECTION_GMAIL,
        email_address="owner@gmail.com",
    )


def _connection(expires_at: datetime | None = None) -> OAuthConnection:
    return OAuthConnection(
        org_id=3,
        user_id=7,
        provider=CONNECTION_GMAIL,
        access_token="A",
        refresh_token="R",
        token_expires_at=expires_at,
    )


def _connector(
    handler: httpx.MockTransport, connection: OAuthConnection | None
) -> GmailConnector:
    settings = GmailSettings(client_id="cid", client_secret="secret", max_results=2)
    return GmailConnector(
        settings,
        StubTokenStore(connection),
        http_client=httpx.Client(transport=handler),
    )


def test_lists_then_fetches_each_message() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        assert request.headers["Authorization"] == "Bearer A"
        if request.url.path.endswith("/users/me/messages"):
            assert request.url.params["labelIds"] == "INBOX"
            assert request.url.params["maxResults"] == "2"
            return httpx.Response(200, json={"messages": [{"id": "m1"}, {"id": "m2"}]})
        message_id = request.url.path.rsplit("/", 1)[-1]
        assert request.url.params["format"] == "full"
        return httpx.Response(200, json=_full_message(message_id))

    batch = _connector(httpx.MockTransport(handler), _connection()).fetch_recent_messages(
        _mailbox()
    )

    assert len(seen) == 3
    assert [message.provider_message_id for message in batch.messages] == ["m1", "m2"]
    first = batch.messages[0]
    assert first.sender == "alice@example.com"
    assert first.subject == "Subject m1"
    assert first.body_text == "plain m1"
    assert first.body_html == "<p>html m1</p>"
    assert first.received_at == datetime.fromtimestamp(1761553800, tz=UTC)
    assert batch.token_updates == ()


def test_unauthorized_response_refreshes_and_reports_tokens() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url == httpx.URL(TOKEN_URL):
            form = dict(
                pair.split("=", 1) for pair in request.content.decode().split("&")
            )
            assert form["grant_type"] == "refresh_token"
            assert form["refresh_token"] == "R"
            return httpx.Response(
                200, json={"access_token": "A2", "expires_in": 3600}
            )
        if request.headers["Authorization"] == "Bearer A":
            return httpx.Response(401, json={"error": "invalid_token"})
        return httpx.Response(200, json={"messages": []})

    batch = _connector(httpx.MockTransport(handler), _connection()).fetch_recent_messages(
        _mailbox()
    )

    assert batch.messages == ()
    assert len(batch.token_updates) == 1
    update = batch.token_updates[0]
    assert update.access_token == "A2"
    assert update.refresh_token is None
    assert update.expires_at is not None


def test_expired_token_refreshed_before_first_request() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url.copy_with(query=None)))
        if request.url == httpx.URL(TOKEN_URL):
            return httpx.Response(
                200,
                json={"access_token": "A2", "refresh_token": "R2", "expires_in": 60},
            )
        assert request.headers["Authorization"] == "Bearer A2"
        return httpx.Response(200, json={})

    expired = datetime.now(tz=UTC) - timedelta(minutes=5)
    batch = _connector(
        httpx.MockTransport(handler), _connection(expires_at=expired)
    ).fetch_recent_messages(_mailbox())

    assert calls[0] == TOKEN_URL
    assert batch.token_updates[0].refresh_token == "R2"


def test_http_failure_after_refresh_carries_token_updates() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url == httpx.URL(TOKEN_URL):
            return httpx.Response(200, json={"access_token": "A2"})
        if request.headers["Authorization"] == "Bearer A":
            return httpx.Response(401)
        return httpx.Response(500, content=json.dumps({"error": "boom"}))

    with pytest.raises(ConnectorError) as excinfo:
        _connector(httpx.MockTransport(handler), _connection()).fetch_recent_messages(
            _mailbox()
        )

    assert [update.access_token for update in excinfo.value.token_updates] == ["A2"]


def test_missing_connection_raises_missing_credentials() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request {request.url}")

    with pytest.raises(MissingCredentialsError):
        _connector(httpx.MockTransport(handler), None).fetch_recent_messages(
            _mailbox()
        )


def test_extract_body_recurses_into_nested_parts() -> None:
    payload = _full_message("m9")["payload"]
    assert isinstance(payload, dict)

    assert extract_gmail_body(payload, "text/plain") == "plain m9"
    assert extract_gmail_body(payload, "text/calendar") == ""


def test_missing_or_malformed_messages_are_skipped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/users/me/messages"):
            return httpx.Response(
                200, json={"messages": [{"id": "gone"}, {"id": "bad"}, {"id": "m3"}]}
            )
        message_id = request.url.path.rsplit("/", 1)[-1]
        if message_id == "gone":
            return httpx.Response(404, json={"error": "not found"})
        if message_id == "bad":
            return httpx.Response(200, json={"id": "bad"})
        return httpx.Response(200, json=_full_message(message_id))

    batch = _connector(httpx.MockTransport(handler), _connection()).fetch_recent_messages(
        _mailbox()
    )

    assert [message.provider_message_id for message in batch.messages] == ["m3"]


def test_non_json_response_after_refresh_carries_token_updates() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url == httpx.URL(TOKEN_URL):
            return httpx.Response(200, json={"access_token": "A2"})
        if request.headers["Authorization"] == "Bearer A":
            return httpx.Response(401)
        return httpx.Response(200, content=b"<html>proxy error</html>")

    with pytest.raises(ConnectorError) as excinfo:
        _connector(httpx.MockTransport(handler), _connection()).fetch_recent_messages(
            _mailbox()
        )

    assert [update.access_token for update in excinfo.value.token_updates] == ["A2"]


@pytest.mark.parametrize("content", [b"not json", b'["A2"]'])
def test_malformed_token_response_is_a_connector_error(content: bytes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url == httpx.URL(TOKEN_URL):
            return httpx.Response(200, content=content)
        return httpx.Response(401)

    with pytest.raises(ConnectorError) as excinfo:
        _connector(httpx.MockTransport(handler), _connection()).fetch_recent_messages(
            _mailbox()
        )

    assert excinfo.value.token_updates == ()
