"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping

DEFAULT_CLASSIFICATION = "UNKNOWN"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def datetime_from_ms(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime.

    Raises ``OverflowError`` when the value falls outside the range
    ``datetime`` can represent.
    """
    return EPOCH + timedelta(milliseconds=value)


def datetime_to_ms(value: datetime) -> int:
    # pymongo hands back naive datetimes unless tz_aware is set; BSON dates are UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // _ONE_MS


@dataclass(frozen=True, slots=True)
class Reading:
    """A single RF observation as stored in the readings collection."""

    frequency_hz: float
    signal_dbm: float
    classification: str
    timestamp: datetime

    @property
    def timestamp_ms(self) -> int:
        return datetime_to_ms(self.timestamp)

    def to_document(self) -> Dict[str, Any]:
        return {
            "frequency_hz": self.frequency_hz,
            "signal_dbm": self.signal_dbm,
            "classification": self.classification,
            "timestamp": self.timestamp,
        }

    def to_payload(self) -> Dict[str, Any]:
        """Wire form with the timestamp as epoch milliseconds."""
        return {
            "frequency_hz": self.frequency_hz,
            "signal_dbm": self.signal_dbm,
            "classification": self.classification,
            "timestamp": self.timestamp_ms,
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "Reading":
        timestamp = document["timestamp"]
        if isinstance(timestamp, datetime):
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
        else:
            timestamp = datetime_from_ms(int(timestamp))
        return cls(
            frequency_hz=float(document["frequency_hz"]),
            signal_dbm=float(document["signal_dbm"]),
            classification=str(document.get("classification") or DEFAULT_CLASSIFICATION),
            timestamp=timestamp,
        )
