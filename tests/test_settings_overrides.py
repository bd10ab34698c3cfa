from __future__ import annotations

from typing import Iterable

from datastore.connector import build_default_connector
from services.readings import build_default_reading_service
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


CACHES = (get_settings, build_default_connector, build_default_reading_service)


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("MONGO_URI", "  mongodb://db.internal:27017/telemetry ")
    monkeypatch.setenv("MONGO_DB_NAME", "rf")
    monkeypatch.setenv("MONGO_COLLECTION_NAME", "rf_readings")
    monkeypatch.setenv("MONGO_CONNECT_TIMEOUT_MS", "2500")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    _clear_caches(CACHES)

    try:
        settings = get_settings()
        connector = build_default_connector()
        service = build_default_reading_service()

        assert settings.log_level == "DEBUG"
        assert settings.cors_allow_origins == ("https://a.example", "https://b.example")
        assert connector.uri == "mongodb://db.internal:27017/telemetry"
        assert connector.database_name == "rf"
        assert connector.collection_name == "rf_readings"
        assert connector.connect_timeout_ms == 2500
        assert service.connector is connector
    finally:
        _clear_caches(CACHES)


def test_defaults_when_unset_or_invalid(monkeypatch) -> None:
    monkeypatch.delenv("MONGO_URI", raising=False)
    monkeypatch.setenv("MONGO_DB_NAME", "   ")
    monkeypatch.delenv("MONGO_COLLECTION_NAME", raising=False)
    monkeypatch.setenv("MONGO_CONNECT_TIMEOUT_MS", "-3")
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    _clear_caches(CACHES)

    try:
        settings = get_settings()

        assert settings.mongo_uri is None
        assert settings.database_name == "test"
        assert settings.collection_name == "rfreadings"
        assert settings.connect_timeout_ms == 5000
        assert settings.cors_allow_origins == ("*",)
        assert settings.log_level == "INFO"
    finally:
        _clear_caches(CACHES)
