"""Classification engine with deterministic fallback."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from ..core.config import AiSettings
from ..core.datetime_utils import parse_datetime
from ..core.errors import ClassificationError
from ..core.interfaces import AiBackendResolver, Classifier
from ..core.models import CATEGORIES, TASK_PRIORITIES, Classification, ExtractedTask
from .fallback import heuristic_classification
from .llm import LLMClientFactory, LLMError, build_llm_client, extract_json
from .prompts import CLASSIFICATION_SYSTEM_PROMPT

LOGGER = logging.getLogger(__name__)


class ClassificationService(Classifier):
    """Classify message content through the org's AI backend or keyword rules."""

    def __init__(
        self,
        resolver: AiBackendResolver,
        settings: AiSettings,
        *,
        client_factory: LLMClientFactory | None = None,
    ) -> None:
        """Initialise with backend resolution and an optional client factory."""
        self._resolver = resolver
        self._settings = settings
        self._client_factory = client_factory or (
            lambda backend: build_llm_client(backend, settings)
        )

    def classify(self, content: str, org_id: int | None) -> Classification:
        """Return a classification; failures degrade to the heuristic."""
        try:
            return self._classify_with_ai(content, org_id)
        except ClassificationError as exc:
            LOGGER.warning("AI classification unavailable, using heuristic: %s", exc)
        except Exception:  # noqa: BLE001  # pylint: disable=broad-exception-caught
            LOGGER.error(
                "Unexpected classification failure, using heuristic", exc_info=True
            )
        return heuristic_classification(content)

    def _classify_with_ai(self, content: str, org_id: int | None) -> Classification:
        backend = self._resolver.resolve(org_id)
        if backend is None:
            raise ClassificationError(f"no AI key configured for org {org_id}")
        client = self._client_factory(backend)
        try:
            raw_output = client.generate(
                CLASSIFICATION_SYSTEM_PROMPT,
                content,
                max_tokens=self._settings.classification_max_tokens,
            )
            payload = extract_json(raw_output)
        except LLMError as exc:
            raise ClassificationError(str(exc)) from exc

        category = str(payload.get("category", "")).strip().lower()
        if category not in CATEGORIES:
            raise ClassificationError(f"unknown category {category!r}")
        tasks = tuple(_normalise_tasks(payload.get("tasks")))
        LOGGER.debug(
            "Classified as %s with %s task(s) via %s",
            category,
            len(tasks),
            client.provider_id,
        )
        return Classification(
            category=category,
            tasks=tasks,
            provider=client.provider_id,
            used_fallback=False,
        )


def _normalise_tasks(raw_tasks: Any) -> list[ExtractedTask]:
    if not isinstance(raw_tasks, list):
        return []
    tasks: list[ExtractedTask] = []
    for item in raw_tasks:
        if not isinstance(item, dict):
            continue
        title = str(item.get("title") or "").strip()
        if not title:
            continue
        description = item.get("description")
        priority = str(item.get("priority") or "").strip().lower()
        tasks.append(
            ExtractedTask(
                title=title,
                description=str(description).strip() if description else None,
                priority=priority if priority in TASK_PRIORITIES else "medium",
                due_date=_parse_due_date(item.get("due_date")),
            )
        )
    return tasks


def _parse_due_date(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return parse_datetime(value.strip())
    except ValueError:
        return None


__all__ = ["ClassificationService"]
