from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    database_url: str
    scheduler_api_key: str
    admin_api_key: str
    facility_timezone: str
    log_level: str


def _clean(value: str) -> str:
    return value.strip().strip('"').strip("'")


def _get_required_env(name: str) -> str:
    value = _clean(os.getenv(name, ""))
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


@lru_cache
def get_settings() -> Settings:
    return Settings(
        app_name="Makerspace Scheduler API",
        app_version="1.0.0",
        database_url=_get_required_env("DATABASE_URL"),
        scheduler_api_key=_get_required_env("SCHEDULER_API_KEY"),
        admin_api_key=_get_required_env("ADMIN_API_KEY"),
        facility_timezone=_clean(os.getenv("FACILITY_TIMEZONE", "")) or "UTC",
        log_level=(_clean(os.getenv("LOG_LEVEL", "")) or "INFO").upper(),
    )
