"""Message ingestion pipeline."""

from .parser import EmailParser
from .synchronizer import MailboxSynchronizer

__all__ = ["EmailParser", "MailboxSynchronizer"]
