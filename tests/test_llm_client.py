# tests/test_llm_client.py

from __future__ import annotations

from types import SimpleNamespace

import httpx
import openai
import pytest

from workflow_tracker.llm.client import (
    SUGGEST_EMPTY,
    SUGGEST_FAILED,
    SUMMARY_FAILED,
    OpenAISuggestionClient,
    friendly_llm_error_message,
)
from workflow_tracker.llm.offline import OfflineSuggestionClient

from .fakes import fake_openai


def _settings(*models: str) -> SimpleNamespace:
    return SimpleNamespace(
        llm_api_key="test-key",
        llm_base_url="https://llm.invalid/v1",
        llm_models=list(models),
        extra_headers={"X-Title": "workflow-test"},
    )


def _status_error(cls: type[openai.APIStatusError], code: int) -> openai.APIStatusError:
    request = httpx.Request("POST", "https://llm.invalid/v1/chat/completions")
    response = httpx.Response(code, request=request)
    return cls("failed", response=response, body=None)


def test_suggest_returns_model_text() -> None:
    client, completions = fake_openai("  - step one\n- step two  ")
    ai = OpenAISuggestionClient(_settings("m1", "m2"), client=client)

    assert ai.suggest("Fix printer") == "- step one\n- step two"
    assert completions.models == ["m1"]


def test_falls_back_to_next_model() -> None:
    client, completions = fake_openai(RuntimeError("boom"), "from m2")
    ai = OpenAISuggestionClient(_settings("m1", "m2"), client=client)

    assert ai.suggest("Fix printer") == "from m2"
    assert completions.models == ["m1", "m2"]


def test_missing_model_is_skipped_until_cooldown() -> None:
    client, completions = fake_openai(_status_error(openai.NotFoundError, 404), "first", "second")
    ai = OpenAISuggestionClient(_settings("gone", "ok"), client=client)

    assert ai.suggest("a") == "first"
    assert ai.suggest("b") == "second"
    assert completions.models == ["gone", "ok", "ok"]


def test_auth_error_stops_fallback() -> None:
    client, completions = fake_openai(_status_error(openai.AuthenticationError, 401), "never")
    ai = OpenAISuggestionClient(_settings("m1", "m2"), client=client)

    assert ai.suggest("a") == SUGGEST_FAILED
    assert completions.models == ["m1"]


def test_failures_degrade_to_messages() -> None:
    client, _ = fake_openai(RuntimeError("x"), RuntimeError("y"))
    ai = OpenAISuggestionClient(_settings("m1"), client=client)
    assert ai.suggest("a") == SUGGEST_FAILED
    assert ai.summarize(["Date: x, Content: y, Issues: none"]) == SUMMARY_FAILED

    empty, _ = fake_openai("")
    assert OpenAISuggestionClient(_settings("m1"), client=empty).suggest("a") == SUGGEST_EMPTY

    no_models, _ = fake_openai()
    assert OpenAISuggestionClient(_settings(), client=no_models).suggest("a") == SUGGEST_FAILED


def test_summarize_sends_report_lines() -> None:
    client, _ = fake_openai("On track.")
    ai = OpenAISuggestionClient(_settings("m1"), client=client)
    assert ai.summarize(["Date: 2024-06-10, Content: outline, Issues: none"]) == "On track."


def test_missing_key_raises_at_construction() -> None:
    settings = _settings("m1")
    settings.llm_api_key = None
    with pytest.raises(RuntimeError) as exc:
        OpenAISuggestionClient(settings)
    assert "WORKFLOW_LLM_API_KEY" in friendly_llm_error_message(exc.value)


def test_offline_client() -> None:
    offline = OfflineSuggestionClient()
    assert offline.suggest("x").startswith("API Key not configured")
    assert offline.summarize([]) == "API Key not configured."
