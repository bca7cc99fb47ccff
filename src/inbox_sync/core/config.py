"""Application configuration models and loader utilities."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field


class ImapSettings(BaseModel):
    """Settings controlling generic IMAP mailbox connectivity."""

    default_port: int = Field(
        default=993, description="Port used when a mailbox has none stored"
    )
    use_ssl: bool = Field(default=True, description="Whether to enforce SSL")
    mailbox: str = Field(default="INBOX", description="Folder fetched each pass")
    fetch_limit: int = Field(
        default=50, ge=1, description="Most recent messages fetched per pass"
    )
    timeout_seconds: int = Field(
        default=30, ge=1, description="Socket timeout for IMAP sessions"
    )


class GmailSettings(BaseModel):
    """Settings for the Gmail OAuth provider connector."""

    client_id: str | None = Field(default=None, description="OAuth client id")
    client_secret: str | None = Field(
        default=None, description="OAuth client secret"
    )
    token_url: str = Field(
        default="https://oauth2.googleapis.com/token",
        description="Token endpoint used for refresh grants",
    )
    api_base_url: str = Field(
        default="https://gmail.googleapis.com/gmail/v1",
        description="Gmail REST API base URL",
    )
    max_results: int = Field(
        default=50, ge=1, description="Most recent inbox messages listed per pass"
    )
    timeout_seconds: int = Field(
        default=30, ge=1, description="Request timeout for Gmail calls"
    )


class AiSettings(BaseModel):
    """Global default AI backend; organisations may override it."""

    provider: str = Field(default="openai", description="openai|anthropic|google")
    model: str | None = Field(
        default=None, description="Model override; provider default when unset"
    )
    openai_api_key: str | None = Field(default=None, description="OpenAI key")
    anthropic_api_key: str | None = Field(default=None, description="Anthropic key")
    google_api_key: str | None = Field(default=None, description="Gemini key")
    timeout_seconds: int = Field(
        default=30, ge=1, description="Request timeout for AI calls"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Sampling temperature for completions",
    )
    classification_max_tokens: int = Field(
        default=700, ge=32, description="Token budget for classification"
    )
    draft_max_tokens: int = Field(
        default=900, ge=32, description="Token budget for reply drafts"
    )


class DraftSettings(BaseModel):
    """Bounds applied when building classification and draft prompts."""

    max_samples: int = Field(
        default=3, ge=0, description="Voice profile samples included in prompts"
    )
    sample_chars: int = Field(
        default=1200, ge=1, description="Characters kept from each sample"
    )
    content_chars: int = Field(
        default=1000, ge=1, description="Characters of body sent to the AI"
    )


class SchedulerSettings(BaseModel):
    """Settings for the periodic sync loop."""

    tick_seconds: int = Field(
        default=60, ge=1, description="Seconds between scheduler ticks"
    )
    enabled: bool = Field(
        default=True, description="Start the scheduler with the web app"
    )


class StorageSettings(BaseModel):
    """Settings for local persistence."""

    db_path: Path = Field(
        default=Path("./inbox_sync.db"), description="SQLite database path"
    )


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    imap: ImapSettings = Field(default_factory=ImapSettings)
    gmail: GmailSettings = Field(default_factory=GmailSettings)
    ai: AiSettings = Field(default_factory=AiSettings)
    drafts: DraftSettings = Field(default_factory=DraftSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


ENV_PREFIX = "INBOX_SYNC_"


def _normalize_key(raw_key: str) -> list[str]:
    """Convert an environment variable key into a nested attribute path."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _merge_into_tree(tree: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a value to a nested dictionary given a path."""
    cursor = tree
    for segment in path[:-1]:
        next_node = cursor.setdefault(segment, {})
        cursor = cast(dict[str, Any], next_node)
    cursor[path[-1]] = value


def _collect_env_values(
    env_file: Path | str | None, *, include_environment: bool = True
) -> dict[str, Any]:
    """Load configuration values from environment variables and optional file."""
    collected: dict[str, Any] = {}

    file_values = {}
    if env_file:
        env_path = Path(env_file)
        if env_path.is_file():
            file_values = {
                key: value
                for key, value in dotenv_values(env_path).items()
                if key and key.startswith(ENV_PREFIX)
            }

    env_values: dict[str, str] = {}
    if include_environment:
        env_values = {
            key: value
            for key, value in os.environ.items()
            if key.startswith(ENV_PREFIX)
        }

    combined: dict[str, Any] = {**file_values, **env_values}

    for key, value in combined.items():
        path = _normalize_key(key)
        if not path:
            continue
        normalized_value: Any = value
        if isinstance(value, str) and value == "":
            normalized_value = None
        elif isinstance(value, str):
            lowercase_value = value.lower()
            if lowercase_value == "true":
                normalized_value = True
            elif lowercase_value == "false":
                normalized_value = False
        _merge_into_tree(collected, path, normalized_value)

    return collected


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    *,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings, applying env files and overrides."""
    collected = _collect_env_values(
        env_file, include_environment=include_environment
    )
    if overrides:
        collected.update(overrides)
    return AppSettings.model_validate(collected)


__all__ = [
    "AiSettings",
    "AppSettings",
    "DraftSettings",
    "GmailSettings",
    "ImapSettings",
    "LoggingSettings",
    "SchedulerSettings",
    "StorageSettings",
    "load_app_settings",
]
