"""Error taxonomy for reading ingestion and queries."""

from __future__ import annotations


class ReadingServiceError(Exception):
    """Base class for failures surfaced by the readings service."""


class ConfigurationError(ReadingServiceError):
    """A required setting, such as the MongoDB connection string, is missing."""


class StoreConnectionError(ReadingServiceError, ConnectionError):
    """The store could not be reached; the next call retries from scratch."""


class MalformedPayloadError(ReadingServiceError):
    """The submitted body could not be decoded into a key-value payload."""


class ValidationError(ReadingServiceError):
    """The payload decoded but its fields do not form a valid reading."""


class StorageError(ReadingServiceError):
    """A read or write failed against an otherwise healthy connection."""
