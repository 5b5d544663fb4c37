"""Environment-variable-driven configuration for the name card bot.

Secrets (bot token, API keys, service account) are NOT read here; they go
through namecard_bot.secret_store so the hosted deployment can pull them from
Secret Manager instead of the process environment.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Local development reads a .env file; hosted deployments never do.
if not os.getenv("K_SERVICE"):
    load_dotenv(override=False)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


# -- Mode ---------------------------------------------------------------------
APP_ENV: str = os.getenv("APP_ENV", "production").strip().lower()
IS_DEV: bool = APP_ENV == "dev"
IS_CLOUD_RUN: bool = bool(os.getenv("K_SERVICE"))

# -- Secrets ------------------------------------------------------------------
SECRET_BACKEND: str = os.getenv(
    "SECRET_BACKEND", "secret-manager" if IS_CLOUD_RUN else "env"
).strip().lower()
SECRET_MANAGER_PROJECT: str | None = os.getenv("SECRET_MANAGER_PROJECT") or os.getenv(
    "GOOGLE_CLOUD_PROJECT"
)

# -- Telegram -----------------------------------------------------------------
TELEGRAM_API_BASE: str = os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org").rstrip("/")
TELEGRAM_TIMEOUT_SECONDS: float = _env_float("TELEGRAM_TIMEOUT_SECONDS", 30.0)
WEBHOOK_URL: str | None = os.getenv("WEBHOOKURL")
WEBHOOK_PATH: str = os.getenv("WEBHOOKPATH", "/telegram-webhook")
# Fixed public origin for /setup-webhook, e.g. https://bot-abc.a.run.app
PUBLIC_BASE_URL: str | None = os.getenv("PUBLIC_BASE_URL")
# Local tunnel used by `serve` when WEBHOOKURL is unset
NGROK_AUTHTOKEN: str | None = os.getenv("NGROK_AUTHTOKEN")

# -- OpenAI -------------------------------------------------------------------
OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4.1")
OPENAI_TIMEOUT_SECONDS: float = _env_float("OPENAI_TIMEOUT_SECONDS", 60.0)

# -- Google Sheets ------------------------------------------------------------
SHEETS_API_BASE: str = os.getenv(
    "SHEETS_API_BASE", "https://sheets.googleapis.com/v4/spreadsheets"
).rstrip("/")
SHEETS_SCOPES: list[str] = ["https://www.googleapis.com/auth/spreadsheets"]
SHEET_NAME: str = os.getenv("SHEET_NAME", "crm")
SHEET_INCLUDE_TIMESTAMP: bool = _env_bool("SHEET_INCLUDE_TIMESTAMP", True)
SHEETS_TIMEOUT_SECONDS: float = _env_float("SHEETS_TIMEOUT_SECONDS", 30.0)

# -- Server -------------------------------------------------------------------
PORT: int = int(os.getenv("PORT", "3000"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
