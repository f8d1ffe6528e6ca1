from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_COLLECTION_NAME_ENV = "SENSOR_COLLECTION_NAME"
_STORE_PATH_ENV = "SENSOR_STORE_PERSISTENCE_PATH"
_PAGE_SIZE_ENV = "SENSOR_PAGE_SIZE"
_DEFAULT_START_ENV = "SENSOR_DEFAULT_START_DAY"
_DEFAULT_END_ENV = "SENSOR_DEFAULT_END_DAY"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    collection_name: str
    store_persistence_path: Optional[str]
    page_size: int
    default_start_day: str
    default_end_day: str
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_page_size(default: int) -> int:
    value = os.getenv(_PAGE_SIZE_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        collection_name=_read_str_env(_COLLECTION_NAME_ENV, "daily_measurements"),
        store_persistence_path=_read_optional_env(
            _STORE_PATH_ENV, "./tmp/daily_measurements.json"
        ),
        page_size=_read_page_size(5),
        default_start_day=_read_str_env(_DEFAULT_START_ENV, "2025-01-01"),
        default_end_day=_read_str_env(_DEFAULT_END_ENV, "2025-12-31"),
        log_level=_read_log_level("INFO"),
    )
