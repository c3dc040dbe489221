# src/workflow_tracker/llm/client.py

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, List, Optional

import httpx
import openai
from openai import OpenAI

logger = logging.getLogger(__name__)

SUGGEST_FAILED = "Error connecting to AI service."
SUGGEST_EMPTY = "Could not generate suggestions."
SUMMARY_FAILED = "Error analyzing progress."
SUMMARY_EMPTY = "No analysis available."

SUMMARY_PROMPT = (
    "Here are the progress reports for a task: {reports}. "
    "Summarize the overall progress, highlight any major blockers mentioned, "
    "and estimate if the task is on track."
)

BAD_MODEL_COOLDOWN_SECONDS = 3600.0


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    s = raw.strip()
    if not s:
        return default
    try:
        return float(s)
    except ValueError:
        return default


def _timeouts_from_env() -> dict[str, float]:
    """
    Timeouts are configurable via env so a slow model cannot block a caller
    for long.

    Defaults:
    - connect timeout: 5s
    - read timeout: 30s
    """
    return {
        "read": _env_float("WORKFLOW_LLM_READ_TIMEOUT_SECONDS", 30.0),
        "connect": _env_float("WORKFLOW_LLM_CONNECT_TIMEOUT_SECONDS", 5.0),
    }


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.APIConnectionError, openai.APITimeoutError, httpx.TimeoutException))


def _is_not_found_error(exc: Exception) -> bool:
    # OpenAI-compatible APIs answer 404 for unknown model ids
    return isinstance(exc, openai.NotFoundError)


def _make_timeout_obj(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "LLM API key is not set" in msg:
        return "AI is not configured (missing API key). Set WORKFLOW_LLM_API_KEY in .env."
    if "LLM model list is empty" in msg:
        return "AI is not configured (no models). Set WORKFLOW_LLM_MODELS in .env."
    if "LLM base URL is not set" in msg:
        return "AI is not configured (missing base URL). Set WORKFLOW_LLM_BASE_URL in .env."
    return msg


class OpenAISuggestionClient:
    """
    SuggestionClient backed by any OpenAI-compatible chat completion API.

    Behavior:
    - tries models in the configured order
    - 404 (model not available) -> model is skipped for an hour, try next
    - rate limit / network issues -> try next
    - auth issues -> stop at once (other models would fail the same way)
    - `suggest` / `summarize` never raise; they return a degraded message
    """

    def __init__(self, settings: Any, *, client: OpenAI | None = None) -> None:
        api_key = getattr(settings, "llm_api_key", None)
        base_url = str(getattr(settings, "llm_base_url", "") or "")
        if client is None:
            if not api_key or not str(api_key).strip():
                raise RuntimeError("LLM API key is not set. Set WORKFLOW_LLM_API_KEY in your .env.")
            if not base_url.strip():
                raise RuntimeError("LLM base URL is not set. Set WORKFLOW_LLM_BASE_URL in your .env.")
            t = _timeouts_from_env()
            client = OpenAI(
                base_url=base_url,
                api_key=str(api_key),
                timeout=_make_timeout_obj(connect_s=t["connect"], read_s=t["read"]),
                # We fall back across models ourselves.
                max_retries=0,
            )

        self._client = client
        self._models: List[str] = [m.strip() for m in getattr(settings, "llm_models", []) or [] if m.strip()]
        self._headers: Dict[str, str] = dict(getattr(settings, "extra_headers", {}) or {})
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

    def _complete(self, prompt: str) -> str:
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set WORKFLOW_LLM_MODELS in your .env.")

        last_error: Optional[Exception] = None
        now = time.monotonic()

        for model in self._models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s", model)
            t0 = time.monotonic()
            try:
                resp = self._client.chat.completions.create(
                    model=model,
                    messages=[{"role": "user", "content": prompt}],
                    extra_headers=self._headers or None,
                )
            except Exception as e:
                last_error = e

                if _is_auth_error(e):
                    raise RuntimeError("LLM authentication failed. Check WORKFLOW_LLM_API_KEY.") from e

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + BAD_MODEL_COOLDOWN_SECONDS
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            try:
                text = resp.choices[0].message.content or ""
            except (AttributeError, IndexError):
                text = ""
            logger.info("LLM: model=%s answered in %.2fs (%d chars)", model, time.monotonic() - t0, len(text))
            return text.strip()

        if last_error is not None:
            raise RuntimeError("All LLM models failed.") from last_error
        raise RuntimeError("All LLM models failed.")

    def suggest(self, prompt: str) -> str:
        try:
            text = self._complete(prompt)
        except Exception as e:
            logger.warning("AI suggestion failed: %s", friendly_llm_error_message(e))
            return SUGGEST_FAILED
        return text or SUGGEST_EMPTY

    def summarize(self, report_texts: list[str]) -> str:
        prompt = SUMMARY_PROMPT.format(reports=json.dumps(report_texts, ensure_ascii=False))
        try:
            text = self._complete(prompt)
        except Exception as e:
            logger.warning("AI summary failed: %s", friendly_llm_error_message(e))
            return SUMMARY_FAILED
        return text or SUMMARY_EMPTY
