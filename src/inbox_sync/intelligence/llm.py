"""LLM client abstractions used by classification and drafting."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from ..core.config import AiSettings
from ..core.models import AiBackend

LOGGER = logging.getLogger(__name__)

PROVIDER_OPENAI = "openai"
PROVIDER_ANTHROPIC = "anthropic"
PROVIDER_GOOGLE = "google"

DEFAULT_MODELS: dict[str, str] = {
    PROVIDER_OPENAI: "gpt-4o-mini",
    PROVIDER_ANTHROPIC: "claude-3-5-sonnet-20240620",
    PROVIDER_GOOGLE: "gemini-1.5-pro",
}

_ANTHROPIC_VERSION = "2023-06-01"


class LLMError(RuntimeError):
    """Raised when the LLM provider fails to respond as expected."""


class LLMClient(Protocol):
    """Protocol describing the minimal LLM client behaviour."""

    @property
    def provider_id(self) -> str:
        """Identifier describing the backing model/provider."""
        raise NotImplementedError

    def generate(self, system_prompt: str, user_prompt: str, *, max_tokens: int) -> str:
        """Return the raw text completion."""
        raise NotImplementedError


class LLMClientFactory(Protocol):
    """Builds a client for a resolved backend."""

    def __call__(self, backend: AiBackend) -> LLMClient:
        """Return a client bound to ``backend``."""
        raise NotImplementedError


@dataclass(slots=True)
class _HttpClientBase:
    backend: AiBackend
    settings: AiSettings
    transport: httpx.BaseTransport | None = None

    @property
    def provider_id(self) -> str:
        """Return a human readable identifier for the configured model."""
        return f"{self.backend.provider}:{self.backend.model}"

    def _post(
        self, url: str, *, headers: dict[str, str], payload: dict[str, Any]
    ) -> dict[str, Any]:
        # Single attempt; callers degrade on failure instead of retrying.
        try:
            with httpx.Client(
                timeout=self.settings.timeout_seconds, transport=self.transport
            ) as client:
                response = client.post(url, headers=headers, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise LLMError(f"{self.backend.provider} request failed: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise LLMError("LLM returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise LLMError("LLM response was not a JSON object")
        return data


@dataclass(slots=True)
class OpenAIClient(_HttpClientBase):
    """Chat completions client for OpenAI."""

    base_url: str = "https://api.openai.com/v1"

    def generate(self, system_prompt: str, user_prompt: str, *, max_tokens: int) -> str:
        """Request a JSON-mode chat completion."""
        data = self._post(
            f"{self.base_url}/chat/completions",
            headers={"Authorization": f"Bearer {self.backend.api_key}"},
            payload={
                "model": self.backend.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "temperature": self.settings.temperature,
                "max_tokens": max_tokens,
                "response_format": {"type": "json_object"},
            },
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError("OpenAI response missing message content") from exc
        if not isinstance(content, str):
            raise LLMError("OpenAI response content was not text")
        return content


@dataclass(slots=True)
class AnthropicClient(_HttpClientBase):
    """Messages API client for Anthropic."""

    base_url: str = "https://api.anthropic.com/v1"

    def generate(self, system_prompt: str, user_prompt: str, *, max_tokens: int) -> str:
        """Request a completion and join its text blocks."""
        data = self._post(
            f"{self.base_url}/messages",
            headers={
                "x-api-key": self.backend.api_key,
                "anthropic-version": _ANTHROPIC_VERSION,
            },
            payload={
                "model": self.backend.model,
                "system": system_prompt,
                "messages": [{"role": "user", "content": user_prompt}],
                "temperature": self.settings.temperature,
                "max_tokens": max_tokens,
            },
        )
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise LLMError("Anthropic response missing content blocks")
        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        if not text:
            raise LLMError("Anthropic response contained no text")
        return text


@dataclass(slots=True)
class GeminiClient(_HttpClientBase):
    """generateContent client for Google Gemini."""

    base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    def generate(self, system_prompt: str, user_prompt: str, *, max_tokens: int) -> str:
        """Request a JSON response from Gemini."""
        data = self._post(
            f"{self.base_url}/models/{self.backend.model}:generateContent",
            headers={"x-goog-api-key": self.backend.api_key},
            payload={
                "systemInstruction": {"parts": [{"text": system_prompt}]},
                "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
                "generationConfig": {
                    "temperature": self.settings.temperature,
                    "maxOutputTokens": max_tokens,
                    "responseMimeType": "application/json",
                },
            },
        )
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError("Gemini response missing candidate parts") from exc
        text = "".join(
            part.get("text", "") for part in parts if isinstance(part, dict)
        )
        if not text:
            raise LLMError("Gemini response contained no text")
        return text


def build_llm_client(
    backend: AiBackend,
    settings: AiSettings,
    *,
    transport: httpx.BaseTransport | None = None,
) -> LLMClient:
    """Return the client implementation for ``backend.provider``."""
    if backend.provider == PROVIDER_ANTHROPIC:
        return AnthropicClient(backend, settings, transport)
    if backend.provider == PROVIDER_GOOGLE:
        return GeminiClient(backend, settings, transport)
    return OpenAIClient(backend, settings, transport)


def extract_json(text: str) -> dict[str, Any]:
    """Parse ``text`` as a JSON object, tolerating prose around it."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            raise LLMError("LLM output contained no JSON object") from None
        try:
            payload = json.loads(text[start : end + 1])
        except json.JSONDecodeError as exc:
            raise LLMError("LLM output was not valid JSON") from exc
    if not isinstance(payload, dict):
        raise LLMError("LLM output was not a JSON object")
    return payload


__all__ = [
    "DEFAULT_MODELS",
    "PROVIDER_ANTHROPIC",
    "PROVIDER_GOOGLE",
    "PROVIDER_OPENAI",
    "AnthropicClient",
    "GeminiClient",
    "LLMClient",
    "LLMClientFactory",
    "LLMError",
    "OpenAIClient",
    "build_llm_client",
    "extract_json",
]
