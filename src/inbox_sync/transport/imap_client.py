"""IMAP transport adapter providing the generic protocol connector."""

from __future__ import annotations

import imaplib
import logging
from collections.abc import Callable, Iterator
from types import TracebackType
from typing import Protocol

from ..core.config import ImapSettings
from ..core.errors import ConnectorError, ParseError
from ..core.interfaces import MailboxConnector, SecretUnwrapper
from ..core.models import FetchBatch, Mailbox, RawMessage
from .credentials import Base64SecretUnwrapper

LOGGER = logging.getLogger(__name__)

ImapConnection = imaplib.IMAP4 | imaplib.IMAP4_SSL
ConnectionFactory = Callable[[str, int], ImapConnection]


class MessageParser(Protocol):
    """Minimal protocol implemented by RFC822 parsers."""

    def parse(self, payload: bytes) -> RawMessage:
        """Convert raw RFC822 payload into a message."""
        raise NotImplementedError


class ImapSession:
    """One authenticated IMAP session against a single folder."""

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        folder: str,
    ) -> None:
        # pylint: disable=too-many-arguments
        """Store connection parameters; nothing is opened until ``connect``."""
        self._factory = connection_factory
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._folder = folder
        self._connection: ImapConnection | None = None
        self.message_count = 0

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> ImapSession:
        """Connect on entering a context manager scope."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Ensure resources are released on context exit."""
        self.close()

    # Public API ---------------------------------------------------------------
    def connect(self) -> None:
        """Open the session, authenticate, and select the folder."""
        if self._connection is not None:
            return
        LOGGER.debug("Connecting to IMAP host %s:%s", self._host, self._port)
        try:
            connection = self._factory(self._host, self._port)
        except (imaplib.IMAP4.error, OSError) as exc:
            raise ConnectorError(f"IMAP connection failed: {exc}") from exc

        try:
            LOGGER.debug("Authenticating as %s", self._username)
            connection.login(self._username, self._password)
            status, data = connection.select(self._folder)
        except (imaplib.IMAP4.error, OSError) as exc:
            _safe_logout(connection)
            raise ConnectorError(f"IMAP connection failed: {exc}") from exc
        if status != "OK":
            _safe_logout(connection)
            raise ConnectorError(f"Failed to open mailbox folder '{self._folder}'")

        self._connection = connection
        self.message_count = _parse_count(data)

    def fetch_latest(self, limit: int) -> Iterator[bytes]:
        """Yield RFC822 payloads of the newest ``limit`` messages, oldest first."""
        connection = self._require_connection()
        count = min(limit, self.message_count)
        if count <= 0:
            return iter(())
        start = self.message_count - count + 1
        sequence_range = f"{start}:{self.message_count}"
        LOGGER.debug("Fetching RFC822 payloads for sequence %s", sequence_range)
        try:
            status, fetch_data = connection.fetch(sequence_range, "(RFC822)")
        except (imaplib.IMAP4.error, OSError) as exc:
            raise ConnectorError(f"IMAP fetch failed: {exc}") from exc
        if status != "OK":
            raise ConnectorError(f"Failed to fetch messages {sequence_range}")
        return _iter_rfc822(fetch_data)

    def close(self) -> None:
        """Terminate the IMAP session cleanly."""
        if self._connection is None:
            return
        try:
            self._connection.close()
        except (imaplib.IMAP4.error, OSError):  # pragma: no cover - server state
            LOGGER.debug("IMAP close raised; continuing with logout")
        finally:
            _safe_logout(self._connection)
            self._connection = None

    # Internal helpers ---------------------------------------------------------
    def _require_connection(self) -> ImapConnection:
        if self._connection is None:
            raise ConnectorError("IMAP connection has not been established")
        return self._connection


class ImapConnector(MailboxConnector):
    """Fetch the newest messages of a password-authenticated mailbox."""

    def __init__(
        self,
        settings: ImapSettings,
        parser: MessageParser,
        *,
        unwrapper: SecretUnwrapper | None = None,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        """Initialise the connector with configuration and collaborators."""
        self._settings = settings
        self._parser = parser
        self._unwrapper = unwrapper or Base64SecretUnwrapper()
        self._connection_factory = connection_factory or self._default_factory

    def fetch_recent_messages(self, mailbox: Mailbox) -> FetchBatch:
        """Return up to ``fetch_limit`` recent messages; skip unparsable ones."""
        if not mailbox.imap_host:
            raise ConnectorError(
                f"Mailbox {mailbox.email_address} has no IMAP host configured"
            )
        password = (
            self._unwrapper.unwrap(mailbox.password_encrypted)
            if mailbox.password_encrypted
            else ""
        )
        session = ImapSession(
            self._connection_factory,
            host=mailbox.imap_host,
            port=mailbox.imap_port or self._settings.default_port,
            username=mailbox.email_address,
            password=password,
            folder=self._settings.mailbox,
        )

        messages: list[RawMessage] = []
        with session:
            if session.message_count == 0:
                LOGGER.debug("Mailbox %s is empty", mailbox.email_address)
                return FetchBatch(messages=())
            for index, payload in enumerate(
                session.fetch_latest(self._settings.fetch_limit)
            ):
                try:
                    messages.append(self._parser.parse(payload))
                except ParseError as exc:
                    LOGGER.warning(
                        "Skipping unparsable message %s in %s: %s",
                        index,
                        mailbox.email_address,
                        exc,
                    )
        LOGGER.info(
            "Fetched %s message(s) from %s", len(messages), mailbox.email_address
        )
        return FetchBatch(messages=tuple(messages))

    def _default_factory(self, host: str, port: int) -> ImapConnection:
        timeout = self._settings.timeout_seconds
        if self._settings.use_ssl:
            return imaplib.IMAP4_SSL(host, port, timeout=timeout)
        return imaplib.IMAP4(host, port, timeout=timeout)


def _parse_count(select_data: list[bytes | None] | None) -> int:
    if not select_data or select_data[0] is None:
        return 0
    try:
        return int(select_data[0])
    except (TypeError, ValueError):
        return 0


def _iter_rfc822(fetch_data: list[tuple[bytes, bytes] | bytes]) -> Iterator[bytes]:
    """Extract RFC822 payloads from ``imaplib`` response chunks."""
    for entry in fetch_data:
        if isinstance(entry, tuple) and len(entry) == 2:
            yield entry[1]


def _safe_logout(connection: ImapConnection) -> None:
    try:
        connection.logout()
    except (imaplib.IMAP4.error, OSError):  # pragma: no cover
        LOGGER.debug("IMAP logout raised; suppressing during shutdown")


__all__ = ["ImapConnector", "ImapSession", "MessageParser"]
