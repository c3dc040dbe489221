# src/workflow_tracker/llm/offline.py

from __future__ import annotations


class OfflineSuggestionClient:
    """
    Deterministic SuggestionClient used when no external API is configured.

    Returns the same "not configured" notices the online client would show
    instead of calling anything.
    """

    def suggest(self, prompt: str) -> str:
        return "API Key not configured. Please add an API key (WORKFLOW_LLM_API_KEY)."

    def summarize(self, report_texts: list[str]) -> str:
        return "API Key not configured."
