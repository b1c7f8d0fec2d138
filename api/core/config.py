"""
Environment-driven settings.

Values are read on every call so tests (and long-lived workers) pick up
changes without a restart. Invalid or blank integers fall back to defaults.
"""

from __future__ import annotations

import os

DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5 MiB
DEFAULT_REQUEST_TIMEOUT_MS = 8000
DEFAULT_UPLOAD_TIMEOUT_MS = 10000
DEFAULT_MAX_PAGE_LIMIT = 100


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value < minimum:
        return default
    return value


def environment() -> str:
    return os.environ.get("APP_ENV", "development").strip().lower() or "development"


def is_production() -> bool:
    return environment() == "production"


def log_level() -> str:
    default = "WARNING" if is_production() else "INFO"
    return os.environ.get("LOG_LEVEL", default).strip().upper() or default


def allowed_origins() -> list[str]:
    raw = os.environ.get("ALLOWED_ORIGINS", "").strip()
    if not raw:
        return ["*"]
    origins = [origin.strip() for origin in raw.split(",")]
    return [origin for origin in origins if origin] or ["*"]


def pool_min_size() -> int:
    return _env_int("DB_POOL_MIN_SIZE", 0)


def pool_max_size() -> int:
    # Each serverless instance owns its own pool, so keep this small.
    return max(_env_int("DB_POOL_MAX_SIZE", 5, minimum=1), pool_min_size())


def pool_idle_seconds() -> float:
    return float(_env_int("DB_POOL_IDLE_SECONDS", 300))


def command_timeout_seconds() -> float:
    return float(_env_int("DB_COMMAND_TIMEOUT_SECONDS", 30, minimum=1))


def acquire_timeout_seconds() -> float:
    return float(_env_int("DB_ACQUIRE_TIMEOUT_SECONDS", 5, minimum=1))


def request_timeout_seconds() -> float:
    return _env_int("REQUEST_TIMEOUT_MS", DEFAULT_REQUEST_TIMEOUT_MS, minimum=1) / 1000


def upload_timeout_seconds() -> float:
    return _env_int("UPLOAD_TIMEOUT_MS", DEFAULT_UPLOAD_TIMEOUT_MS, minimum=1) / 1000


def max_upload_bytes() -> int:
    return _env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES, minimum=1)


def max_page_limit() -> int:
    return _env_int("MAX_PAGE_LIMIT", DEFAULT_MAX_PAGE_LIMIT, minimum=1)
