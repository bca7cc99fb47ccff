"""Scheduled mailbox ingestion with classification and voice-matched drafts."""

__version__ = "0.1.0"
