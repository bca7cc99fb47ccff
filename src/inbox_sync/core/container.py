"""Service container and default wiring for the sync pipeline."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from .config import AppSettings

T = TypeVar("T")


class ServiceContainer:
    """Minimal dependency container with lazy singleton semantics."""

    def __init__(self) -> None:
        """Initialise container storage."""
        self._factories: dict[str, Callable[[ServiceContainer], Any]] = {}
        self._instances: dict[str, Any] = {}

    def register(self, key: str, factory: Callable[[ServiceContainer], T]) -> None:
        """Register a factory under a given key, dropping any cached instance."""
        self._factories[key] = factory
        self._instances.pop(key, None)

    def register_instance(self, key: str, instance: Any) -> None:
        """Register an already constructed service."""
        self._instances[key] = instance

    def resolve(self, key: str) -> Any:
        """Resolve a dependency by key, invoking its factory once."""
        if key in self._instances:
            return self._instances[key]
        if key not in self._factories:
            msg = f"Service '{key}' is not registered"
            raise KeyError(msg)
        instance = self._factories[key](self)
        self._instances[key] = instance
        return instance

    def clear(self) -> None:
        """Clear cached singleton instances."""
        self._instances.clear()


def build_container(settings: AppSettings) -> ServiceContainer:
    """Register the production implementations for every pipeline seam."""
    # pylint: disable=import-outside-toplevel
    from ..ingestion import EmailParser, MailboxSynchronizer
    from ..intelligence import (
        AutoDraftPolicy,
        ClassificationService,
        SettingsAiResolver,
    )
    from ..scheduler import SyncScheduler
    from ..storage import SqliteSyncRepository
    from ..transport import GmailConnector, ImapConnector
    from .models import CONNECTION_GMAIL, CONNECTION_IMAP

    container = ServiceContainer()
    container.register_instance("settings", settings)
    container.register(
        "repository", lambda c: SqliteSyncRepository(c.resolve("settings").storage)
    )
    container.register(
        "connectors",
        lambda c: {
            CONNECTION_IMAP: ImapConnector(settings.imap, EmailParser()),
            CONNECTION_GMAIL: GmailConnector(settings.gmail, c.resolve("repository")),
        },
    )
    container.register(
        "resolver",
        lambda c: SettingsAiResolver(c.resolve("repository"), settings.ai),
    )
    container.register(
        "classifier",
        lambda c: ClassificationService(c.resolve("resolver"), settings.ai),
    )
    container.register(
        "draft_policy",
        lambda c: AutoDraftPolicy(
            c.resolve("repository"),
            c.resolve("resolver"),
            settings.ai,
            settings.drafts,
        ),
    )
    container.register(
        "synchronizer",
        lambda c: MailboxSynchronizer(
            c.resolve("repository"),
            c.resolve("connectors"),
            c.resolve("classifier"),
            c.resolve("draft_policy"),
            settings.drafts,
        ),
    )
    container.register(
        "scheduler",
        lambda c: SyncScheduler(
            c.resolve("repository"), c.resolve("synchronizer"), settings.scheduler
        ),
    )
    return container


__all__ = ["ServiceContainer", "build_container"]
