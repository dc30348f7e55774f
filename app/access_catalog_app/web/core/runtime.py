from __future__ import annotations

import logging
from functools import lru_cache

from access_catalog_app.backend.catalog import AccessCatalog
from access_catalog_app.backend.seed import load_seed_file
from access_catalog_app.core.config import AppConfig

LOGGER = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return AppConfig.from_env()


@lru_cache(maxsize=1)
def get_catalog() -> AccessCatalog:
    config = get_config()
    if not config.has_seed:
        LOGGER.info("No access seed configured; starting with an empty catalog. env=%s", config.env)
        return AccessCatalog()
    return load_seed_file(config.seed_path)


def clear_runtime_caches() -> None:
    get_catalog.cache_clear()
    get_config.cache_clear()
