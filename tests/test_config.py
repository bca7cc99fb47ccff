"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from inbox_sync.core.config import load_app_settings


@pytest.fixture(autouse=True)
def clear_settings_cache() -> None:
    """Ensure each test sees a fresh settings instance."""

    load_app_settings.cache_clear()


def test_defaults_loaded_without_env_file() -> None:
    """Default values should be returned when no overrides are present."""

    settings = load_app_settings(include_environment=False)
    assert settings.imap.default_port == 993
    assert settings.imap.fetch_limit == 50
    assert settings.ai.provider == "openai"
    assert settings.drafts.sample_chars == 1200
    assert settings.scheduler.tick_seconds == 60
    assert settings.storage.db_path == Path("./inbox_sync.db")


def test_env_file_overrides(tmp_path: Path) -> None:
    """Values defined in an env file should override defaults."""

    env_file = tmp_path / "test.env"
    env_file.write_text(
        "INBOX_SYNC_IMAP__FETCH_LIMIT=10\n"
        "INBOX_SYNC_AI__PROVIDER=anthropic\n"
        "INBOX_SYNC_AI__ANTHROPIC_API_KEY=\n"
        "INBOX_SYNC_SCHEDULER__ENABLED=false\n",
        encoding="utf-8",
    )

    settings = load_app_settings(env_file=env_file, include_environment=False)
    assert settings.imap.fetch_limit == 10
    assert settings.ai.provider == "anthropic"
    assert settings.ai.anthropic_api_key is None
    assert settings.scheduler.enabled is False


def test_environment_wins_over_env_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_file = tmp_path / "test.env"
    env_file.write_text("INBOX_SYNC_GMAIL__MAX_RESULTS=5\n", encoding="utf-8")
    monkeypatch.setenv("INBOX_SYNC_GMAIL__MAX_RESULTS", "7")

    settings = load_app_settings(env_file=env_file)
    assert settings.gmail.max_results == 7
