"""Tests for the IMAP transport adapter."""

from __future__ import annotations

import imaplib
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from inbox_sync.core.config import ImapSettings
from inbox_sync.core.errors import ConnectorError
from inbox_sync.core.models import CONNECTION_IMAP, Mailbox
from inbox_sync.ingestion import EmailParser
from inbox_sync.transport import ImapConnector, wrap_secret

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _mailbox(**overrides: object) -> Mailbox:
    values: dict[str, object] = {
        "id": 1,
        "org_id": 3,
        "user_id": 7,
        "connection_type": CONNECTION_IMAP,
        "email_address": "owner@example.com",
        "imap_host": "imap.test",
        "imap_port": 1143,
        "password_encrypted": wrap_secret("s3cret"),
    }
    values.update(overrides)
    return Mailbox(**values)  # type: ignore[arg-type]


def _connector(connection: MagicMock, calls: list[tuple[str, int]]) -> ImapConnector:
    def factory(host: str, port: int) -> MagicMock:
        calls.append((host, port))
        return connection

    return ImapConnector(
        ImapSettings(fetch_limit=2), EmailParser(), connection_factory=factory
    )


def test_fetch_recent_messages_reads_latest_sequence_range() -> None:
    payload = (FIXTURES_DIR / "sample_email.eml").read_bytes()
    connection = MagicMock()
    connection.select.return_value = ("OK", [b"5"])
    connection.fetch.return_value = (
        "OK",
        [
            (b"4 (RFC822 {100}", payload),
            b")",
            (b"5 (RFC822 {0}", b""),
            b")",
        ],
    )
    calls: list[tuple[str, int]] = []

    batch = _connector(connection, calls).fetch_recent_messages(_mailbox())

    assert calls == [("imap.test", 1143)]
    connection.login.assert_called_once_with("owner@example.com", "s3cret")
    connection.select.assert_called_once_with("INBOX")
    connection.fetch.assert_called_once_with("4:5", "(RFC822)")
    assert [message.subject for message in batch.messages] == ["Quarterly proposal"]
    assert batch.token_updates == ()
    connection.logout.assert_called_once()


def test_empty_mailbox_returns_empty_batch() -> None:
    connection = MagicMock()
    connection.select.return_value = ("OK", [b"0"])

    batch = _connector(connection, []).fetch_recent_messages(_mailbox())

    assert batch.messages == ()
    connection.fetch.assert_not_called()


def test_authentication_failure_raises_connector_error() -> None:
    connection = MagicMock()
    connection.login.side_effect = imaplib.IMAP4.error("AUTHENTICATIONFAILED")

    with pytest.raises(ConnectorError, match="IMAP connection failed"):
        _connector(connection, []).fetch_recent_messages(_mailbox())
    connection.logout.assert_called_once()


def test_default_port_used_when_mailbox_has_none() -> None:
    connection = MagicMock()
    connection.select.return_value = ("OK", [b"0"])
    calls: list[tuple[str, int]] = []

    _connector(connection, calls).fetch_recent_messages(_mailbox(imap_port=None))

    assert calls == [("imap.test", 993)]


def test_missing_host_raises_connector_error() -> None:
    with pytest.raises(ConnectorError):
        _connector(MagicMock(), []).fetch_recent_messages(_mailbox(imap_host=None))
