"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from models.records import Reading


class ReadingOut(BaseModel):
    """A stored reading as returned to clients."""

    frequency_hz: float
    signal_dbm: float
    classification: str
    timestamp: int = Field(..., description="Epoch milliseconds (UTC).")

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingOut":
        return cls.model_validate(reading.to_payload())


class SubmitResponse(BaseModel):
    """Acknowledgment returned after a reading is stored."""

    success: bool = True
    message: str = "Saved"
    data: ReadingOut


class QueryResponse(BaseModel):
    """Ordered readings matching a query."""

    success: bool = True
    data: List[ReadingOut] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Structured failure body used for every error status."""

    success: bool = False
    message: str
    error: Optional[str] = None
