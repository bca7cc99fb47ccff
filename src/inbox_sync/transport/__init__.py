"""Mailbox connectors."""

from .credentials import Base64SecretUnwrapper, wrap_secret
from .gmail_client import GmailConnector
from .imap_client import ImapConnector, ImapSession

__all__ = [
    "Base64SecretUnwrapper",
    "GmailConnector",
    "ImapConnector",
    "ImapSession",
    "wrap_secret",
]
