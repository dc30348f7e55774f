from __future__ import annotations

# Environment and config defaults
DEFAULT_ENV_NAME = "dev"
DEFAULT_DEV_ENV_NAMES = ("dev", "development", "local")
DEFAULT_DEV_SEED_PATH = "setup/seed/ga1_employee_data.json"

# Logging defaults
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOGGER_NAME = "access_catalog_app"
