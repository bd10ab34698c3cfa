"""Process-wide MongoDB connection handle.

The client is created on first use and shared by every request for the rest
of the process lifetime. Initialization is guarded by a lock so concurrent
first calls make a single connection attempt.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from threading import Lock
from typing import Any, Callable, Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from models.errors import ConfigurationError, StoreConnectionError
from settings import get_settings

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Any]


class MongoConnector:

    def __init__(
        self,
        uri: Optional[str],
        database_name: str,
        collection_name: str,
        connect_timeout_ms: int = 5000,
        client_factory: ClientFactory = MongoClient,
    ) -> None:
        self.uri = uri
        self.database_name = database_name
        self.collection_name = collection_name
        self.connect_timeout_ms = connect_timeout_ms
        self._client_factory = client_factory
        self._client: Optional[Any] = None
        self._connected = False
        self._lock = Lock()

    @property
    def connected(self) -> bool:
        return self._connected

    def ensure_connected(self) -> None:
        """Connect on first call; later calls return without I/O."""
        if self._connected:
            return

        with self._lock:
            if self._connected:
                return

            if not self.uri:
                raise ConfigurationError("MONGO_URI environment variable not set")

            client = None
            try:
                client = self._client_factory(
                    self.uri,
                    serverSelectionTimeoutMS=self.connect_timeout_ms,
                    connectTimeoutMS=self.connect_timeout_ms,
                    tz_aware=True,
                )
                client.admin.command("ping")
            except PyMongoError as exc:
                if client is not None:
                    client.close()
                logger.error("MongoDB connect failed", extra={"error": str(exc)})
                raise StoreConnectionError(f"Could not connect to MongoDB: {exc}") from exc

            self._client = client
            self._connected = True
            logger.info("MongoDB connected")

    def collection(self) -> Collection:
        self.ensure_connected()
        database = self._client.get_default_database(default=self.database_name)
        return database[self.collection_name]

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
            self._client = None
            self._connected = False


@lru_cache
def build_default_connector() -> MongoConnector:
    settings = get_settings()
    return MongoConnector(
        uri=settings.mongo_uri,
        database_name=settings.database_name,
        collection_name=settings.collection_name,
        connect_timeout_ms=settings.connect_timeout_ms,
    )
