"""
Environment-driven settings.

Every value is read on call, so tests can monkeypatch the environment.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_UPLOAD_DIR = "uploads"
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5 MiB
DEFAULT_MAX_UPLOAD_FILES = 5


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    return value


def database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return url


def db_pool_min_size() -> int:
    return _env_int("DB_POOL_MIN_SIZE", 1)


def db_pool_max_size() -> int:
    return max(_env_int("DB_POOL_MAX_SIZE", 5), db_pool_min_size())


def db_command_timeout() -> int:
    return _env_int("DB_COMMAND_TIMEOUT", 30)


def upload_dir() -> Path:
    raw = os.environ.get("UPLOAD_DIR", "").strip() or DEFAULT_UPLOAD_DIR
    return Path(raw).resolve()


def max_upload_bytes() -> int:
    return _env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)


def max_upload_files() -> int:
    return _env_int("MAX_UPLOAD_FILES", DEFAULT_MAX_UPLOAD_FILES)


def cors_allow_origins() -> list[str]:
    raw = os.environ.get("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return ["*"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def host() -> str:
    return os.environ.get("HOST", "").strip() or "0.0.0.0"


def port() -> int:
    return _env_int("PORT", 3000)
