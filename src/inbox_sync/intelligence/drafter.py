"""Auto-draft policy that writes replies in the user's trained voice."""

from __future__ import annotations

import logging

from ..core.config import AiSettings, DraftSettings
from ..core.errors import DraftGenerationError
from ..core.interfaces import AiBackendResolver, DraftPolicy, SyncRepository
from ..core.models import (
    Classification,
    EmailDraft,
    EmailMessage,
    User,
    VoiceProfile,
)
from .llm import LLMClientFactory, LLMError, build_llm_client, extract_json
from .prompts import (
    build_draft_system_prompt,
    build_draft_user_prompt,
    build_message_content,
)

LOGGER = logging.getLogger(__name__)


class AutoDraftPolicy(DraftPolicy):
    """Generate at most one reply draft per message and user when opted in."""

    def __init__(
        self,
        repository: SyncRepository,
        resolver: AiBackendResolver,
        ai_settings: AiSettings,
        draft_settings: DraftSettings,
        *,
        client_factory: LLMClientFactory | None = None,
    ) -> None:
        # pylint: disable=too-many-arguments
        """Initialise with storage, backend resolution, and prompt bounds."""
        self._repository = repository
        self._resolver = resolver
        self._ai_settings = ai_settings
        self._draft_settings = draft_settings
        self._client_factory = client_factory or (
            lambda backend: build_llm_client(backend, ai_settings)
        )

    def maybe_generate_draft(
        self, message: EmailMessage, classification: Classification, user: User
    ) -> EmailDraft | None:
        """Return the stored draft, or ``None`` when a precondition fails."""
        if message.id is None:
            return None
        setting = self._repository.get_auto_draft_setting(user.org_id, user.id)
        if setting is None or not setting.enabled:
            return None
        if classification.category not in setting.categories:
            return None
        if self._repository.has_draft(message.id, user.id):
            LOGGER.debug("Draft already exists for message %s", message.id)
            return None
        profile = self._repository.get_trained_voice_profile(user.id)
        if profile is None:
            LOGGER.debug("User %s has no trained voice profile", user.id)
            return None

        try:
            subject, body = self._generate(message, profile, user.org_id)
        except DraftGenerationError as exc:
            LOGGER.warning("Draft skipped for message %s: %s", message.id, exc)
            return None

        draft = self._repository.insert_draft(
            EmailDraft(
                id=None,
                org_id=user.org_id,
                user_id=user.id,
                reply_to_message_id=message.id,
                subject=subject,
                body=body,
            )
        )
        LOGGER.info("Generated reply draft %s for message %s", draft.id, message.id)
        return draft

    def _generate(
        self, message: EmailMessage, profile: VoiceProfile, org_id: int
    ) -> tuple[str, str]:
        backend = self._resolver.resolve(org_id)
        if backend is None:
            raise DraftGenerationError(f"no AI key configured for org {org_id}")
        content = build_message_content(
            message.sender,
            message.subject,
            message.body_text,
            message.body_html,
            limit=self._draft_settings.content_chars,
        )
        system_prompt = build_draft_system_prompt(
            profile,
            max_samples=self._draft_settings.max_samples,
            sample_chars=self._draft_settings.sample_chars,
        )
        try:
            raw_output = self._client_factory(backend).generate(
                system_prompt,
                build_draft_user_prompt(message, content),
                max_tokens=self._ai_settings.draft_max_tokens,
            )
            payload = extract_json(raw_output)
        except LLMError as exc:
            raise DraftGenerationError(str(exc)) from exc

        body = payload.get("body")
        if not isinstance(body, str) or not body.strip():
            raise DraftGenerationError("draft response had an empty body")
        subject = payload.get("subject")
        if not isinstance(subject, str) or not subject.strip():
            subject = f"Re: {message.subject}"
        return subject.strip(), body.strip()


__all__ = ["AutoDraftPolicy"]
