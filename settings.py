from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DATA_SOURCE_URL_ENV = "WIDGET_DATA_SOURCE_URL"
_MAX_POINTS_ENV = "WIDGET_MAX_POINTS"
_REQUEST_TIMEOUT_ENV = "WIDGET_REQUEST_TIMEOUT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    data_source_url: Optional[str]
    max_points: int
    request_timeout: float
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_max_points(default: int) -> int:
    value = os.getenv(_MAX_POINTS_ENV)
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


def _read_timeout(default: float) -> float:
    value = os.getenv(_REQUEST_TIMEOUT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
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
        data_source_url=_read_optional_env(_DATA_SOURCE_URL_ENV, None),
        max_points=_read_max_points(100),
        request_timeout=_read_timeout(10.0),
        log_level=_read_log_level("INFO"),
    )
