"""Prompt templates for classification and voice-matched reply drafts."""

from __future__ import annotations

import html
import re
from textwrap import dedent

from ..core.models import EmailMessage, VoiceProfile

_TAG_PATTERN = re.compile(r"<[^>]+>")
_STYLE_BLOCK_PATTERN = re.compile(
    r"<(script|style)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL
)
_MAX_COMMON_PHRASES = 5

CLASSIFICATION_SYSTEM_PROMPT = dedent(
    """
    You are an email triage assistant. Classify the email into exactly one
    category and extract any actionable tasks.
    Respond strictly with JSON using this schema:
    {
      "category": "task" | "fyi" | "question" | "approval" | "meeting",
      "tasks": [
        {
          "title": string,
          "description": string,
          "priority": "high" | "medium" | "low",
          "due_date": string | null   # ISO 8601 date when one is stated
        }
      ]
    }

    Use "task" when the sender asks for work to be done, "question" when a
    reply with information is expected, "approval" when a decision or sign off
    is requested, "meeting" for scheduling, and "fyi" otherwise.
    Return an empty task list when nothing is actionable.
    Do not include any additional keys or prose outside the JSON object.
    """
).strip()


def strip_html(markup: str) -> str:
    """Return visible text from an HTML fragment."""
    without_blocks = _STYLE_BLOCK_PATTERN.sub(" ", markup)
    text = html.unescape(_TAG_PATTERN.sub(" ", without_blocks))
    return re.sub(r"\s+", " ", text).strip()


def build_message_content(
    sender: str,
    subject: str,
    body_text: str,
    body_html: str | None,
    *,
    limit: int,
) -> str:
    """Compose the text submitted for classification and drafting."""
    body = body_text.strip() or strip_html(body_html or "")
    return f"From: {sender}\nSubject: {subject}\n\n{body[:limit]}"


def build_draft_system_prompt(
    profile: VoiceProfile, *, max_samples: int, sample_chars: int
) -> str:
    """Describe the user's writing voice for the reply generator."""
    style = profile.writing_style
    phrases = ", ".join(style.common_phrases[:_MAX_COMMON_PHRASES]) or "(none)"
    samples = [
        sample.strip()[:sample_chars]
        for sample in profile.sample_texts[:max_samples]
        if sample.strip()
    ]
    sample_block = "\n\n".join(
        f"Example {index}:\n{sample}" for index, sample in enumerate(samples, start=1)
    )

    prompt = f"""
    You write email replies on behalf of the user, matching their voice.
    Voice profile:
    - Tone: {profile.tone or 'professional'}
    - Formality: {profile.formality_level or 3}/5
    - Greeting: {style.greeting or 'Hi'}
    - Closing: {style.closing or 'Best regards'}
    - Sentence length: {style.sentence_length or 'medium'}
    - Emoji usage: {style.emoji_usage or 'none'}
    - Exclamation usage: {style.exclamation_usage or 'rare'}
    - Common phrases: {phrases}

    Return ONLY JSON matching this schema:
    {{
      "subject": string,
      "body": string   # the full reply including greeting and closing
    }}
    """
    prompt = dedent(prompt).strip()
    if sample_block:
        prompt += "\n\nWriting samples from the user:\n" + sample_block
    return prompt


def build_draft_user_prompt(message: EmailMessage, content: str) -> str:
    """Ask for a reply to ``message``."""
    subject = message.subject or "this message"
    return f"Write a reply to the following email (subject: {subject}).\n\n{content}"


__all__ = [
    "CLASSIFICATION_SYSTEM_PROMPT",
    "build_draft_system_prompt",
    "build_draft_user_prompt",
    "build_message_content",
    "strip_html",
]
