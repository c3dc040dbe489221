# src/workflow_tracker/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "WORKFLOW"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Storage ----
    store_retry_attempts: int
    store_retry_delay_seconds: float
    seed_demo_data: bool

    # ---- Statistics ----
    due_soon_days: int

    # ---- LLM (OpenAI-compatible) ----
    llm_api_key: Optional[str]
    llm_base_url: str
    llm_models: List[str]
    extra_headers: Dict[str, str]

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "workflow-tracker") or "workflow-tracker"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/workflow"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "workflow.sqlite3")

        store_retry_attempts = _env_int(_k("STORE_RETRY_ATTEMPTS"), 3)
        store_retry_delay_seconds = _env_float(_k("STORE_RETRY_DELAY_SECONDS"), 0.05)
        seed_demo_data = _env_bool(_k("SEED_DEMO_DATA"), True)

        due_soon_days = _env_int(_k("DUE_SOON_DAYS"), 3)

        llm_api_key = _first_env(_k("LLM_API_KEY"), "OPENROUTER_API_KEY", "OPENAI_API_KEY", default=None)
        llm_base_url = _env(_k("LLM_BASE_URL"), "https://openrouter.ai/api/v1")
        llm_models = _env_list(
            _k("LLM_MODELS"),
            [
                "google/gemini-2.5-flash",
                "qwen/qwen-2.5-72b-instruct:free",
                "deepseek/deepseek-chat-v3-0324:free",
            ],
        )

        http_referer = _env(_k("HTTP_REFERER"), "https://example.com")
        extra_headers = {
            "HTTP-Referer": http_referer,
            "X-Title": app_name,
        }

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            store_retry_attempts=store_retry_attempts,
            store_retry_delay_seconds=store_retry_delay_seconds,
            seed_demo_data=seed_demo_data,
            due_soon_days=due_soon_days,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
