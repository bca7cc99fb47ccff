"""Deterministic heuristics used when the LLM is unavailable."""

from __future__ import annotations

import re
from collections.abc import Iterable

from ..core.models import Classification, ExtractedTask

# Checked in order; the first category with a matching keyword wins.
_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "task",
        (
            "action required",
            "due",
            "deadline",
            "asap",
            "please complete",
            "follow up",
            "please action",
            "action this",
        ),
    ),
    ("question", ("can you", "could you", "do you know", "question", "?")),
    ("approval", ("approve", "approval", "sign off", "authorize")),
    ("meeting", ("meeting", "call", "schedule", "calendar", "invite")),
)

_URGENCY_KEYWORDS = ("urgent", "asap", "high priority")
_TASK_KEYWORDS = _CATEGORY_KEYWORDS[0][1]
_BULLET_PATTERN = re.compile(r"^(?:[-*•]\s+|\d+[.)]\s+)")
_MAX_TASKS = 3
_MAX_TITLE_CHARS = 80
_HEADER_PREFIXES = ("from:", "subject:")


def heuristic_classification(content: str) -> Classification:
    """Classify ``content`` with keyword rules; total over every string."""
    text = (content or "").lower()
    category = _match_category(text)
    tasks: tuple[ExtractedTask, ...] = ()
    if category == "task":
        priority = "high" if any(word in text for word in _URGENCY_KEYWORDS) else "medium"
        tasks = tuple(
            ExtractedTask(
                title=_truncate(line, _MAX_TITLE_CHARS),
                description=line,
                priority=priority,
            )
            for line in _collect_task_lines(content or "")
        )
    return Classification(
        category=category, tasks=tasks, provider="heuristic", used_fallback=True
    )


def _match_category(text: str) -> str:
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return "fyi"


def _collect_task_lines(content: str) -> Iterable[str]:
    emitted = 0
    for raw_line in content.splitlines():
        if emitted >= _MAX_TASKS:
            return
        stripped = raw_line.strip()
        if not stripped:
            continue
        lowered = stripped.lower()
        if lowered.startswith(_HEADER_PREFIXES):
            continue
        flagged = (
            _BULLET_PATTERN.match(stripped) is not None
            or "todo" in lowered
            or any(keyword in lowered for keyword in _TASK_KEYWORDS)
        )
        if not flagged:
            continue
        cleaned = _normalise_line(_BULLET_PATTERN.sub("", stripped))
        if cleaned:
            emitted += 1
            yield cleaned


def _normalise_line(line: str) -> str:
    return re.sub(r"\s+", " ", line.strip())


def _truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 3].rstrip() + "..."


__all__ = ["heuristic_classification"]
