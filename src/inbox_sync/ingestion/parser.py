"""Utilities for parsing raw RFC822 messages into connector output."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from datetime import datetime
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import getaddresses, parsedate_to_datetime

from ..core.datetime_utils import ensure_utc, utc_now
from ..core.errors import ParseError
from ..core.models import RawMessage

NO_SUBJECT = "(No Subject)"


class EmailParser:
    """Convert raw email payloads into :class:`RawMessage` instances."""

    def __init__(self) -> None:
        """Prepare internal parser instance."""
        self._parser = BytesParser(policy=policy.default)

    def parse(self, payload: bytes) -> RawMessage:
        """Parse raw RFC822 bytes; raise :class:`ParseError` when malformed."""
        if not payload:
            raise ParseError("Empty RFC822 payload")
        try:
            message = self._parser.parsebytes(payload)
            subject = _header_text(message.get("Subject")) or NO_SUBJECT
            sender = _take_first_address(message.get("From")) or ""
            received_at = _try_parse_datetime(message.get("Date")) or utc_now()
            body_text, body_html = _extract_bodies(message)
            message_id = _header_text(message.get("Message-ID"))
        except (LookupError, TypeError, ValueError, IndexError) as exc:
            raise ParseError(f"Unable to parse message: {exc}") from exc

        return RawMessage(
            provider_message_id=message_id or _synthetic_identity(payload),
            sender=sender,
            subject=subject,
            body_text=body_text or "",
            body_html=body_html,
            received_at=received_at,
        )


def _synthetic_identity(payload: bytes) -> str:
    """Stable identity for messages lacking a Message-ID header."""
    return "sha256:" + hashlib.sha256(payload).hexdigest()


def _header_text(value: object | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _extract_addresses(headers: Iterable[str]) -> Iterable[str]:
    for _, email_address in getaddresses(headers):
        if email_address:
            yield email_address


def _take_first_address(header_value: object | None) -> str | None:
    text = _header_text(header_value)
    if text is None:
        return None
    addresses = list(_extract_addresses([text]))
    return addresses[0] if addresses else None


def _collapse_chunks(chunks: Iterable[str], separator: str) -> str | None:
    filtered_chunks = [chunk for chunk in chunks if chunk]
    if not filtered_chunks:
        return None
    return separator.join(filtered_chunks)


def _extract_bodies(message: EmailMessage) -> tuple[str | None, str | None]:
    plain_chunks: list[str] = []
    html_chunks: list[str] = []

    for part in message.walk():
        if part.is_multipart():
            continue
        if part.get_content_disposition() == "attachment":
            continue
        content_type = part.get_content_type()
        if content_type not in ("text/plain", "text/html"):
            continue
        try:
            content_obj = part.get_content()
        except LookupError:
            continue
        if not isinstance(content_obj, str):
            continue
        content = content_obj.strip()
        if content_type == "text/plain":
            plain_chunks.append(content)
        else:
            html_chunks.append(content)

    return (
        _collapse_chunks(plain_chunks, "\n\n"),
        _collapse_chunks(html_chunks, "\n"),
    )


def _try_parse_datetime(header_value: object | None) -> datetime | None:
    text = _header_text(header_value)
    if text is None:
        return None
    try:
        return ensure_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError):
        return None


__all__ = ["EmailParser", "NO_SUBJECT"]
