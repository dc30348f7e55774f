from __future__ import annotations

import os

ACCESS_ENV = "ACCESS_ENV"
ACCESS_SEED_PATH = "ACCESS_SEED_PATH"
ACCESS_ADMIN_API_ENABLED = "ACCESS_ADMIN_API_ENABLED"
ACCESS_ERROR_INCLUDE_DETAILS = "ACCESS_ERROR_INCLUDE_DETAILS"
ACCESS_LOG_LEVEL = "ACCESS_LOG_LEVEL"
ACCESS_LOG_JSON = "ACCESS_LOG_JSON"
ACCESS_LOG_CAPTURE_ROOT = "ACCESS_LOG_CAPTURE_ROOT"

TRUE_VALUES = {"1", "true", "yes", "y", "on"}


def get_env(name: str, default: str = "") -> str:
    return str(os.getenv(name, default) or "").strip()


def get_env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    return str(raw).strip().lower() in TRUE_VALUES
