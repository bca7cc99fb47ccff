"""Per-mailbox sync pipeline: fetch, persist, classify, draft, finalize."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from ..core.config import DraftSettings
from ..core.errors import ConnectorError, MailboxSyncError, TokenPersistError
from ..core.interfaces import (
    Classifier,
    DraftPolicy,
    MailboxConnector,
    SyncRepository,
)
from ..core.models import (
    DetectedTask,
    EmailMessage,
    Mailbox,
    MailboxSyncResult,
    RawMessage,
    SyncedEmailSummary,
    TokenUpdate,
    User,
)
from ..intelligence.prompts import build_message_content

LOGGER = logging.getLogger(__name__)

ACTIVITY_EMAIL_SYNCED = "email_synced"


class MailboxSynchronizer:
    """Run sync passes for mailboxes through protocol-agnostic connectors."""

    def __init__(
        self,
        repository: SyncRepository,
        connectors: Mapping[str, MailboxConnector],
        classifier: Classifier,
        draft_policy: DraftPolicy,
        draft_settings: DraftSettings,
    ) -> None:
        # pylint: disable=too-many-arguments
        """Initialise the synchronizer with storage and pipeline collaborators."""
        self._repository = repository
        self._connectors = dict(connectors)
        self._classifier = classifier
        self._draft_policy = draft_policy
        self._draft_settings = draft_settings

    def sync_mailbox(self, mailbox: Mailbox, user: User) -> MailboxSyncResult:
        """Ingest new messages for ``mailbox``; raise :class:`MailboxSyncError`."""
        kind = mailbox.connection_type
        LOGGER.info("Starting sync for mailbox %s (%s)", mailbox.email_address, kind)
        connector = self._connectors.get(kind)
        try:
            if connector is None:
                raise ConnectorError(f"unsupported connection kind {kind!r}")
            batch = connector.fetch_recent_messages(mailbox)
        except ConnectorError as exc:
            self._persist_tokens(mailbox, exc.token_updates)
            LOGGER.warning(
                "Sync failed for mailbox %s: %s", mailbox.email_address, exc
            )
            raise MailboxSyncError(
                f"{kind} connection failed: {exc}", mailbox_id=mailbox.id
            ) from exc

        self._persist_tokens(mailbox, batch.token_updates)

        result = MailboxSyncResult(
            mailbox_id=mailbox.id, email_address=mailbox.email_address
        )
        for raw in batch.messages:
            summary = self._process_message(raw, mailbox, user)
            if summary is not None:
                result.emails.append(summary)
        result.email_count = len(result.emails)

        self._repository.mark_mailbox_active(mailbox.id)
        self._repository.record_activity(
            mailbox.org_id,
            mailbox.user_id,
            ACTIVITY_EMAIL_SYNCED,
            f"Synced {result.email_count} emails from {mailbox.email_address}",
        )
        LOGGER.info(
            "Synced %s new message(s) from %s",
            result.email_count,
            mailbox.email_address,
        )
        return result

    def sync_mailboxes_for_user(self, user: User) -> list[MailboxSyncResult]:
        """Sync every active mailbox of ``user``; failures stay per mailbox."""
        results: list[MailboxSyncResult] = []
        for mailbox in self._repository.list_active_mailboxes(user.org_id, user.id):
            try:
                results.append(self.sync_mailbox(mailbox, user))
            except MailboxSyncError as exc:
                results.append(
                    MailboxSyncResult(
                        mailbox_id=mailbox.id,
                        email_address=mailbox.email_address,
                        error=str(exc),
                    )
                )
            except Exception as exc:  # noqa: BLE001  # pylint: disable=broad-exception-caught
                LOGGER.error(
                    "Unexpected failure syncing mailbox %s: %s",
                    mailbox.email_address,
                    exc,
                    exc_info=True,
                )
                results.append(
                    MailboxSyncResult(
                        mailbox_id=mailbox.id,
                        email_address=mailbox.email_address,
                        error=f"{mailbox.connection_type} sync failed: {exc}",
                    )
                )
        return results

    def _process_message(
        self, raw: RawMessage, mailbox: Mailbox, user: User
    ) -> SyncedEmailSummary | None:
        message = EmailMessage(
            id=None,
            org_id=mailbox.org_id,
            mailbox_id=mailbox.id,
            provider_message_id=raw.provider_message_id,
            sender=raw.sender,
            subject=raw.subject,
            body_text=raw.body_text,
            body_html=raw.body_html,
            received_at=raw.received_at,
        )
        try:
            message.id = self._repository.insert_if_absent(message)
        except Exception as exc:  # noqa: BLE001  # pylint: disable=broad-exception-caught
            LOGGER.error(
                "Failed to persist message %s: %s",
                raw.provider_message_id,
                exc,
                exc_info=True,
            )
            return None
        if message.id is None:
            return None

        try:
            self._classify(message, message.id, user)
        except Exception as exc:  # noqa: BLE001  # pylint: disable=broad-exception-caught
            LOGGER.error(
                "Post-processing failed for message %s: %s",
                message.id,
                exc,
                exc_info=True,
            )

        return SyncedEmailSummary(
            sender=message.sender,
            subject=message.subject,
            received_at=message.received_at,
        )

    def _classify(self, message: EmailMessage, message_id: int, user: User) -> None:
        content = build_message_content(
            message.sender,
            message.subject,
            message.body_text,
            message.body_html,
            limit=self._draft_settings.content_chars,
        )
        classification = self._classifier.classify(content, message.org_id)
        self._repository.update_classification(message_id, classification.category)
        message.classification = classification.category
        if classification.used_fallback:
            LOGGER.debug("Message %s classified by heuristic", message_id)

        if classification.tasks:
            self._repository.insert_detected_tasks(
                [
                    DetectedTask(
                        id=None,
                        org_id=message.org_id,
                        user_id=user.id,
                        email_message_id=message_id,
                        title=task.title,
                        description=task.description,
                        priority=task.priority,
                        due_date=task.due_date,
                    )
                    for task in classification.tasks
                ]
            )

        self._draft_policy.maybe_generate_draft(message, classification, user)

    def _persist_tokens(self, mailbox: Mailbox, updates: Iterable[TokenUpdate]) -> None:
        for update in updates:
            try:
                self._repository.merge_oauth_tokens(
                    mailbox.org_id, mailbox.user_id, update
                )
            except TokenPersistError as exc:
                LOGGER.error(
                    "Refreshed %s tokens for %s were not saved: %s",
                    update.provider,
                    mailbox.email_address,
                    exc,
                )


__all__ = ["ACTIVITY_EMAIL_SYNCED", "MailboxSynchronizer"]
