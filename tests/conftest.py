"""Shared fixtures for the test suite."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from inbox_sync.core.config import StorageSettings
from inbox_sync.core.models import User
from inbox_sync.storage import SqliteSyncRepository


@pytest.fixture()
def repository(tmp_path: Path) -> Iterator[SqliteSyncRepository]:
    """Fresh SQLite repository per test."""
    repo = SqliteSyncRepository(StorageSettings(db_path=tmp_path / "sync.db"))
    try:
        yield repo
    finally:
        repo.close()


@pytest.fixture()
def user(repository: SqliteSyncRepository) -> User:
    """A stored user owning test mailboxes."""
    return repository.upsert_user(User(id=7, org_id=3, email="owner@example.com"))
