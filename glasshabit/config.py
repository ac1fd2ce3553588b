from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


DATABASE_URL = os.environ.get("DATABASE_URL", "").strip()
SQLITE_PATH = os.environ.get("SQLITE_PATH", str(BASE_DIR / "glasshabit.db"))
SECRET_KEY = os.environ.get("APP_SECRET_KEY", "dev-secret-change-me")
TOKEN_MAX_AGE_SECONDS = _int_env("TOKEN_MAX_AGE_SECONDS", 7 * 24 * 3600)
AUTH_MODE = os.environ.get("AUTH_MODE", "token").strip().lower()
IDENTITY_AUTHORITY_SECRET = os.environ.get("IDENTITY_AUTHORITY_SECRET", "").strip()
API_PREFIX = os.environ.get("API_PREFIX", "/api").rstrip("/")
POINTS_PER_COMPLETION = _int_env("POINTS_PER_COMPLETION", 10)
SNAPSHOT_WORKERS = _int_env("SNAPSHOT_WORKERS", 5)
CORS_ALLOW_ORIGIN = os.environ.get("CORS_ALLOW_ORIGIN", "*")


def defaults() -> dict:
    return {
        "DATABASE_URL": DATABASE_URL,
        "SQLITE_PATH": SQLITE_PATH,
        "SECRET_KEY": SECRET_KEY,
        "TOKEN_MAX_AGE_SECONDS": TOKEN_MAX_AGE_SECONDS,
        "AUTH_MODE": AUTH_MODE,
        "IDENTITY_AUTHORITY_SECRET": IDENTITY_AUTHORITY_SECRET,
        "API_PREFIX": API_PREFIX,
        "POINTS_PER_COMPLETION": POINTS_PER_COMPLETION,
        "SNAPSHOT_WORKERS": SNAPSHOT_WORKERS,
        "CORS_ALLOW_ORIGIN": CORS_ALLOW_ORIGIN,
    }
