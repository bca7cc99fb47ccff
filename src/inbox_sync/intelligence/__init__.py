"""Classification and reply drafting."""

from .classifier import ClassificationService
from .drafter import AutoDraftPolicy
from .fallback import heuristic_classification
from .llm import LLMClient, LLMError, build_llm_client, extract_json
from .resolver import SettingsAiResolver

__all__ = [
    "AutoDraftPolicy",
    "ClassificationService",
    "LLMClient",
    "LLMError",
    "SettingsAiResolver",
    "build_llm_client",
    "extract_json",
    "heuristic_classification",
]
