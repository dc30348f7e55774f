from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from access_catalog_app.core.defaults import DEFAULT_LOG_LEVEL, DEFAULT_LOGGER_NAME
from access_catalog_app.core.env import (
    ACCESS_LOG_CAPTURE_ROOT,
    ACCESS_LOG_JSON,
    ACCESS_LOG_LEVEL,
    get_env,
    get_env_bool,
)

_LOGGING_CONFIGURED = False


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=True)


def setup_app_logging(*, force: bool = False) -> None:
    global _LOGGING_CONFIGURED  # pylint: disable=global-statement
    if _LOGGING_CONFIGURED and not force:
        return

    level_name = get_env(ACCESS_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper() or DEFAULT_LOG_LEVEL
    level = getattr(logging, level_name, logging.INFO)
    use_json = get_env_bool(ACCESS_LOG_JSON, default=False)
    capture_root = get_env_bool(ACCESS_LOG_CAPTURE_ROOT, default=False)

    formatter: logging.Formatter
    if use_json:
        formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)

    app_logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    app_logger.handlers.clear()
    app_logger.addHandler(handler)
    app_logger.setLevel(level)
    app_logger.propagate = False

    if capture_root:
        root = logging.getLogger()
        root.handlers.clear()
        root.addHandler(handler)
        root.setLevel(level)

    logging.getLogger(__name__).info(
        "Application logging configured. level=%s json=%s capture_root=%s",
        level_name,
        str(use_json).lower(),
        str(capture_root).lower(),
    )
    _LOGGING_CONFIGURED = True
