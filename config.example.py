# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "WORKFLOW_APP_NAME": "App display name (default: workflow-tracker).",
    "WORKFLOW_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "WORKFLOW_DATA_DIR": "Local data directory (default: .local/workflow).",
    "WORKFLOW_DB_PATH": "Key-value SQLite path (default: <data_dir>/workflow.sqlite3).",
    # Storage
    "WORKFLOW_STORE_RETRY_ATTEMPTS": "Attempts per storage call before giving up (default: 3).",
    "WORKFLOW_STORE_RETRY_DELAY_SECONDS": "Base delay between storage retries (default: 0.05).",
    "WORKFLOW_SEED_DEMO_DATA": "Seed demo projects and tasks on first run (true/false, default: true).",
    # Statistics
    "WORKFLOW_DUE_SOON_DAYS": "Window for 'due soon' counts in days (default: 3).",
    # LLM (OpenAI-compatible, e.g. OpenRouter)
    "WORKFLOW_LLM_API_KEY": "API key for AI suggestions (falls back to OPENROUTER_API_KEY / OPENAI_API_KEY).",
    "WORKFLOW_LLM_BASE_URL": "Base URL (default: https://openrouter.ai/api/v1).",
    "WORKFLOW_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "WORKFLOW_HTTP_REFERER": "Optional OpenRouter metadata header.",
}
