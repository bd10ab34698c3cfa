"""Ingestion and range queries for RF readings."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from datastore.connector import MongoConnector, build_default_connector
from models.errors import MalformedPayloadError, StorageError, ValidationError
from models.records import DEFAULT_CLASSIFICATION, Reading, datetime_from_ms

logger = logging.getLogger(__name__)

# Historical client field names, highest priority first.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "frequency_hz": ("frequency_hz", "frequency", "freq_hz"),
    "signal_dbm": ("signal_dbm", "signalStrength", "signal", "s"),
    "classification": ("classification", "label"),
    "timestamp": ("timestamp",),
}

DEFAULT_LIMIT = 1000
MIN_LIMIT = 1
MAX_LIMIT = 5000
LATEST_COUNT = 20
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_MAX_DATETIME = datetime.max.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class ReadingQuery:
    """Parsed query parameters.

    ``from_ms`` and ``to_ms`` are inclusive epoch-millisecond bounds; ``None``
    leaves that side of the range open.
    """

    from_ms: Optional[float] = None
    to_ms: Optional[float] = None
    limit: int = DEFAULT_LIMIT
    descending: bool = False

    @property
    def direction(self) -> int:
        return DESCENDING if self.descending else ASCENDING

    def to_filter(self) -> Dict[str, Any]:
        bounds: Dict[str, datetime] = {}
        if self.from_ms is not None:
            bounds["$gte"] = _bound_to_datetime(math.ceil(self.from_ms))
        if self.to_ms is not None:
            bounds["$lte"] = _bound_to_datetime(math.floor(self.to_ms))
        return {"timestamp": bounds} if bounds else {}


def _bound_to_datetime(value: int) -> datetime:
    try:
        return datetime_from_ms(value)
    except OverflowError:
        return _MAX_DATETIME


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _truncate_to_ms(value: datetime) -> datetime:
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)


def _coerce_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or ``None`` when it is not one."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            candidate = value.strip()
            if not candidate:
                return None
            number = float(candidate)
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _parse_iso_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    parsed = datetime.fromisoformat(candidate)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _coerce_timestamp(value: Any, now: datetime) -> datetime:
    """Resolve a client timestamp, falling back to ``now``.

    Epoch milliseconds are the primary form. ISO-8601 strings are accepted as
    an extension for older mobile clients that sent string timestamps.
    """
    if value is None:
        return now

    number = _coerce_number(value)
    if number is not None:
        try:
            return datetime_from_ms(int(number))
        except OverflowError:
            return now

    if isinstance(value, str):
        try:
            return _truncate_to_ms(_parse_iso_timestamp(value))
        except (ValueError, OverflowError):
            return now

    return now


def resolve_field(payload: Mapping[str, Any], field: str) -> Any:
    """Return the value of the first alias of ``field`` present in ``payload``."""
    for key in FIELD_ALIASES[field]:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def decode_payload(payload: Any, content_type: Optional[str] = None) -> Mapping[str, Any]:
    """Turn a request body into a mapping.

    Text bodies are JSON unless ``content_type`` marks them as an urlencoded form.
    """
    if payload is None:
        return {}
    if isinstance(payload, Mapping):
        return payload

    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedPayloadError("Payload is not valid UTF-8") from exc

    if not isinstance(payload, str):
        raise MalformedPayloadError(
            f"Unsupported payload type {type(payload).__name__!r}"
        )

    if not payload.strip():
        return {}

    if content_type and content_type.split(";")[0].strip().lower() == FORM_CONTENT_TYPE:
        return dict(parse_qsl(payload, keep_blank_values=True))

    try:
        decoded = json.loads(payload)
        # Some clients send the JSON object as an encoded string.
        if isinstance(decoded, str):
            decoded = json.loads(decoded)
    except json.JSONDecodeError as exc:
        raise MalformedPayloadError(f"Malformed JSON payload: {exc.msg}") from exc
    except (ValueError, RecursionError) as exc:
        # Oversized integer literals and pathological nesting.
        raise MalformedPayloadError(f"Malformed JSON payload: {exc}") from exc

    if not isinstance(decoded, Mapping):
        raise MalformedPayloadError("JSON payload must be an object")
    return decoded


def normalize_payload(payload: Mapping[str, Any], now: datetime) -> Reading:
    """Build a canonical reading from a client payload or raise ``ValidationError``."""
    frequency_hz = _coerce_number(resolve_field(payload, "frequency_hz"))
    signal_dbm = _coerce_number(resolve_field(payload, "signal_dbm"))
    if frequency_hz is None or signal_dbm is None:
        raise ValidationError("Invalid numeric fields (frequency_hz, signal_dbm)")

    raw_classification = resolve_field(payload, "classification")
    classification = str(raw_classification).strip() if raw_classification is not None else ""

    return Reading(
        frequency_hz=frequency_hz,
        signal_dbm=signal_dbm,
        classification=classification or DEFAULT_CLASSIFICATION,
        timestamp=_coerce_timestamp(resolve_field(payload, "timestamp"), now),
    )


def clamp_limit(value: Any, default: int = DEFAULT_LIMIT) -> int:
    number = _coerce_number(value)
    if number is None:
        number = default
    return max(MIN_LIMIT, min(MAX_LIMIT, math.floor(number)))


def _parse_bound(value: Any) -> Optional[float]:
    number = _coerce_number(value)
    if number is None or number <= 0:
        return None
    return number


def parse_query_params(params: Mapping[str, Any]) -> ReadingQuery:
    """Parse ``from``/``to``/``limit``/``sort`` leniently.

    Values that do not parse are treated as absent rather than rejected.
    """
    sort = str(params.get("sort") or "asc").strip().lower()
    return ReadingQuery(
        from_ms=_parse_bound(params.get("from")),
        to_ms=_parse_bound(params.get("to")),
        limit=clamp_limit(params.get("limit")),
        descending=sort == "desc",
    )


class ReadingService:
    """Validates submitted readings and answers range queries."""

    def __init__(
        self,
        connector: MongoConnector,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.connector = connector
        self._clock = clock or _utc_now

    def submit(self, payload: Any, content_type: Optional[str] = None) -> Reading:
        """Validate ``payload`` and insert it as a single reading."""
        try:
            data = decode_payload(payload, content_type)
            reading = normalize_payload(data, _truncate_to_ms(self._clock()))
        except (MalformedPayloadError, ValidationError) as exc:
            logger.warning("Rejected reading", extra={"reason": str(exc)})
            raise

        collection = self.connector.collection()
        try:
            collection.insert_one(reading.to_document())
        except PyMongoError as exc:
            logger.error("Saving reading failed", extra={"error": str(exc)})
            raise StorageError(f"Save failed: {exc}") from exc

        logger.info(
            "Saved reading",
            extra={
                "frequency_hz": reading.frequency_hz,
                "signal_dbm": reading.signal_dbm,
                "classification": reading.classification,
                "timestamp": reading.timestamp_ms,
            },
        )
        return reading

    def query(self, params: Optional[Mapping[str, Any]] = None) -> List[Reading]:
        return self.find(parse_query_params(params or {}))

    def latest(self, count: Any = LATEST_COUNT) -> List[Reading]:
        """Return the newest readings, newest first."""
        return self.find(
            ReadingQuery(limit=clamp_limit(count, default=LATEST_COUNT), descending=True)
        )

    def find(self, query: ReadingQuery) -> List[Reading]:
        collection = self.connector.collection()
        try:
            cursor = (
                collection.find(query.to_filter(), projection={"_id": False})
                .sort("timestamp", query.direction)
                .limit(query.limit)
            )
            documents = list(cursor)
        except PyMongoError as exc:
            logger.error("Fetching readings failed", extra={"error": str(exc)})
            raise StorageError(f"Fetch failed: {exc}") from exc

        readings: List[Reading] = []
        for document in documents:
            try:
                readings.append(Reading.from_document(document))
            except (KeyError, TypeError, ValueError, OverflowError) as exc:
                logger.warning("Skipping unreadable document", extra={"reason": repr(exc)})

        logger.info(
            "Fetched readings",
            extra={
                "from_ms": query.from_ms,
                "to_ms": query.to_ms,
                "limit": query.limit,
                "sort": "desc" if query.descending else "asc",
                "result_count": len(readings),
            },
        )
        return readings


@lru_cache
def build_default_reading_service() -> ReadingService:
    """Factory that wires the service to the process-wide connector."""
    return ReadingService(connector=build_default_connector())
