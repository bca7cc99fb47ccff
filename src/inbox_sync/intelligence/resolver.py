"""Per-organisation AI backend resolution."""

from __future__ import annotations

import logging
from typing import Protocol

from ..core.config import AiSettings
from ..core.interfaces import AiBackendResolver
from ..core.models import AiBackend, OrgAiSettings
from .llm import DEFAULT_MODELS, PROVIDER_OPENAI

LOGGER = logging.getLogger(__name__)


class OrgAiSettingsSource(Protocol):
    """Read access to organisation AI overrides."""

    def get_org_ai_settings(self, org_id: int) -> OrgAiSettings | None:
        """Return the override row for ``org_id`` if present."""
        raise NotImplementedError


def normalize_provider(provider: str | None) -> str:
    """Return a supported provider name; unknown values become ``openai``."""
    candidate = (provider or "").strip().lower()
    return candidate if candidate in DEFAULT_MODELS else PROVIDER_OPENAI


class SettingsAiResolver(AiBackendResolver):
    """Resolve provider, model and key from org overrides over global settings."""

    def __init__(self, source: OrgAiSettingsSource, settings: AiSettings) -> None:
        """Initialise with the organisation override source and global settings."""
        self._source = source
        self._settings = settings

    def resolve(self, org_id: int | None) -> AiBackend | None:
        """Return the backend for ``org_id`` or ``None`` when no key is known."""
        override = (
            self._source.get_org_ai_settings(org_id) if org_id is not None else None
        )
        provider = normalize_provider(
            (override.provider if override else None) or self._settings.provider
        )
        api_key = self._key_for(provider, override)
        if not api_key:
            LOGGER.debug("No %s API key configured for org %s", provider, org_id)
            return None
        model = (
            (override.model if override else None)
            or (self._settings.model if provider == self._global_provider else None)
            or DEFAULT_MODELS[provider]
        )
        return AiBackend(provider=provider, model=model, api_key=api_key)

    @property
    def _global_provider(self) -> str:
        return normalize_provider(self._settings.provider)

    def _key_for(self, provider: str, override: OrgAiSettings | None) -> str | None:
        org_key = getattr(override, f"{provider}_api_key", None) if override else None
        return org_key or getattr(self._settings, f"{provider}_api_key", None)


__all__ = ["OrgAiSettingsSource", "SettingsAiResolver", "normalize_provider"]
