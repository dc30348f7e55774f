from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from access_catalog_app.core.defaults import (
    DEFAULT_DEV_ENV_NAMES,
    DEFAULT_DEV_SEED_PATH,
    DEFAULT_ENV_NAME,
)
from access_catalog_app.core.env import (
    ACCESS_ADMIN_API_ENABLED,
    ACCESS_ENV,
    ACCESS_ERROR_INCLUDE_DETAILS,
    ACCESS_SEED_PATH,
    get_env,
    get_env_bool,
)


DEV_ENV_NAMES = set(DEFAULT_DEV_ENV_NAMES)


def _repo_root() -> Path:
    # app/access_catalog_app/core/config.py -> repo root
    # parents[0]=core, [1]=access_catalog_app, [2]=app, [3]=repo root
    return Path(__file__).resolve().parents[3]


def _resolve_repo_relative_path(raw_path: str) -> str:
    value = str(raw_path or "").strip()
    if not value:
        return value
    path = Path(value)
    if path.is_absolute():
        return str(path)
    return str((_repo_root() / path).resolve())


@dataclass(frozen=True)
class AppConfig:
    env: str = DEFAULT_ENV_NAME
    seed_path: str = ""
    admin_api_enabled: bool = True
    error_include_details: bool = False

    @property
    def is_dev_env(self) -> bool:
        return self.env in DEV_ENV_NAMES

    @property
    def has_seed(self) -> bool:
        return bool(self.seed_path)

    @staticmethod
    def from_env() -> "AppConfig":
        env_name = get_env(ACCESS_ENV, DEFAULT_ENV_NAME).lower() or DEFAULT_ENV_NAME
        is_dev = env_name in DEV_ENV_NAMES
        default_seed = DEFAULT_DEV_SEED_PATH if is_dev else ""
        seed_path = _resolve_repo_relative_path(get_env(ACCESS_SEED_PATH, default_seed))
        if seed_path and not Path(seed_path).is_file():
            raise RuntimeError(
                f"ACCESS_SEED_PATH points to '{seed_path}', which is not a readable file."
            )
        return AppConfig(
            env=env_name,
            seed_path=seed_path,
            admin_api_enabled=get_env_bool(ACCESS_ADMIN_API_ENABLED, default=is_dev),
            error_include_details=get_env_bool(ACCESS_ERROR_INCLUDE_DETAILS, default=False),
        )
