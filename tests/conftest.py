"""In-memory stand-ins for the subset of pymongo the service uses."""

from __future__ import annotations

import copy
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional

import pytest
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from datastore.connector import MongoConnector


class FakeCursor:

    def __init__(self, documents: List[Dict[str, Any]]) -> None:
        self._documents = documents
        self._limit: Optional[int] = None

    def sort(self, key: str, direction: int = ASCENDING) -> "FakeCursor":
        self._documents.sort(key=lambda doc: doc[key], reverse=direction != ASCENDING)
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._limit = count
        return self

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        documents = self._documents if self._limit is None else self._documents[: self._limit]
        return iter(documents)


def _matches(document: Dict[str, Any], query_filter: Dict[str, Any]) -> bool:
    for field, condition in query_filter.items():
        value = document.get(field)
        if not isinstance(condition, dict):
            if value != condition:
                return False
            continue
        if "$gte" in condition and not value >= condition["$gte"]:
            return False
        if "$lte" in condition and not value <= condition["$lte"]:
            return False
    return True


class FakeCollection:

    def __init__(self) -> None:
        self.documents: List[Dict[str, Any]] = []
        self.fail_with: Optional[PyMongoError] = None
        self.find_calls: List[Dict[str, Any]] = []

    def insert_one(self, document: Dict[str, Any]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        stored = copy.deepcopy(document)
        stored["_id"] = len(self.documents) + 1
        self.documents.append(stored)

    def find(self, query_filter: Dict[str, Any], projection: Optional[Dict[str, Any]] = None) -> FakeCursor:
        if self.fail_with is not None:
            raise self.fail_with
        self.find_calls.append(query_filter)
        hidden = {key for key, shown in (projection or {}).items() if not shown}
        matched = [
            {key: value for key, value in doc.items() if key not in hidden}
            for doc in self.documents
            if _matches(doc, query_filter)
        ]
        return FakeCursor(matched)


class FakeAdmin:

    def __init__(self, client: "FakeMongoClient") -> None:
        self._client = client

    def command(self, name: str) -> Dict[str, Any]:
        assert name == "ping"
        if self._client.ping_error is not None:
            raise self._client.ping_error
        return {"ok": 1.0}


class FakeMongoClient:

    def __init__(
        self,
        uri: str,
        collection: FakeCollection,
        ping_error: Optional[PyMongoError] = None,
        **options: Any,
    ) -> None:
        self.uri = uri
        self.options = options
        self.ping_error = ping_error
        self.closed = False
        self.admin = FakeAdmin(self)
        self._collection = collection
        self.database_requests: List[Optional[str]] = []

    def get_default_database(self, default: Optional[str] = None) -> "_FakeDatabase":
        self.database_requests.append(default)
        return _FakeDatabase(self._collection)

    def close(self) -> None:
        self.closed = True


class _FakeDatabase:

    def __init__(self, collection: FakeCollection) -> None:
        self._collection = collection

    def __getitem__(self, _name: str) -> FakeCollection:
        return self._collection


class ClientFactory:
    """Callable handed to ``MongoConnector`` that records every client it builds."""

    def __init__(self, collection: FakeCollection, delay: float = 0.0) -> None:
        self.collection = collection
        self.delay = delay
        self.ping_errors: List[PyMongoError] = []
        self.clients: List[FakeMongoClient] = []
        self._lock = threading.Lock()

    def __call__(self, uri: str, **options: Any) -> FakeMongoClient:
        if self.delay:
            time.sleep(self.delay)
        ping_error = self.ping_errors.pop(0) if self.ping_errors else None
        client = FakeMongoClient(uri, self.collection, ping_error=ping_error, **options)
        with self._lock:
            self.clients.append(client)
        return client


@pytest.fixture()
def collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture()
def client_factory(collection: FakeCollection) -> ClientFactory:
    return ClientFactory(collection)


@pytest.fixture()
def connector(client_factory: ClientFactory) -> MongoConnector:
    return MongoConnector(
        uri="mongodb://localhost:27017/rf",
        database_name="test",
        collection_name="rfreadings",
        connect_timeout_ms=5000,
        client_factory=client_factory,
    )


@pytest.fixture()
def frozen_clock() -> Callable[[], datetime]:
    moment = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
    return lambda: moment
