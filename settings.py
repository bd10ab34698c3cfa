from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_MONGO_URI_ENV = "MONGO_URI"
_DATABASE_NAME_ENV = "MONGO_DB_NAME"
_COLLECTION_NAME_ENV = "MONGO_COLLECTION_NAME"
_CONNECT_TIMEOUT_ENV = "MONGO_CONNECT_TIMEOUT_MS"
_CORS_ORIGINS_ENV = "CORS_ALLOW_ORIGINS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    mongo_uri: Optional[str]
    database_name: str
    collection_name: str
    connect_timeout_ms: int
    cors_allow_origins: Tuple[str, ...]
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


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
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


def _read_csv_env(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(part.strip() for part in value.split(",") if part.strip())
    return items or default


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
        mongo_uri=_read_optional_env(_MONGO_URI_ENV, None),
        database_name=_read_str_env(_DATABASE_NAME_ENV, "test"),
        collection_name=_read_str_env(_COLLECTION_NAME_ENV, "rfreadings"),
        connect_timeout_ms=_read_positive_int(_CONNECT_TIMEOUT_ENV, 5000),
        cors_allow_origins=_read_csv_env(_CORS_ORIGINS_ENV, ("*",)),
        log_level=_read_log_level("INFO"),
    )
