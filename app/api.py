"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.schemas import ErrorResponse, QueryResponse, ReadingOut, SubmitResponse
from models.errors import (
    ConfigurationError,
    MalformedPayloadError,
    StorageError,
    StoreConnectionError,
    ValidationError,
)
from services.readings import ReadingService, build_default_reading_service

logger = logging.getLogger(__name__)

READINGS_PATH = "/api/readings"
LEGACY_SUBMIT_PATH = "/rfdata"

router = APIRouter()

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def get_reading_service() -> ReadingService:
    return build_default_reading_service()


def failure_response(
    status_code: int, message: str, exc: Optional[BaseException] = None
) -> JSONResponse:
    body = ErrorResponse(message=message, error=str(exc) if exc is not None else None)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _connection_failure(exc: Exception) -> JSONResponse:
    logger.error("Database connection failed", extra={"error": str(exc)})
    return failure_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Database connection failed", exc
    )


@router.post(
    READINGS_PATH,
    status_code=status.HTTP_201_CREATED,
    response_model=SubmitResponse,
    responses=_ERROR_RESPONSES,
    summary="Store a single RF reading.",
)
@router.post(
    LEGACY_SUBMIT_PATH,
    status_code=status.HTTP_201_CREATED,
    response_model=SubmitResponse,
    include_in_schema=False,
)
async def submit_reading(
    request: Request,
    service: ReadingService = Depends(get_reading_service),
) -> Union[SubmitResponse, JSONResponse]:
    body = await request.body()
    try:
        reading = await run_in_threadpool(
            service.submit, body, request.headers.get("content-type")
        )
    except MalformedPayloadError as exc:
        return failure_response(status.HTTP_400_BAD_REQUEST, "Malformed JSON payload", exc)
    except ValidationError as exc:
        return failure_response(status.HTTP_400_BAD_REQUEST, str(exc))
    except (ConfigurationError, StoreConnectionError) as exc:
        return _connection_failure(exc)
    except StorageError as exc:
        return failure_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Save failed", exc)
    return SubmitResponse(data=ReadingOut.from_reading(reading))


@router.get(
    READINGS_PATH,
    response_model=QueryResponse,
    responses=_ERROR_RESPONSES,
    summary="Fetch readings filtered by time range, sorted and bounded in count.",
)
def query_readings(
    request: Request,
    service: ReadingService = Depends(get_reading_service),
) -> Union[QueryResponse, JSONResponse]:
    # Raw query params: unparseable from/to/limit degrade to defaults instead of a 422.
    try:
        readings = service.query(request.query_params)
    except (ConfigurationError, StoreConnectionError) as exc:
        return _connection_failure(exc)
    except StorageError as exc:
        return failure_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Fetch failed", exc)
    return QueryResponse(data=[ReadingOut.from_reading(reading) for reading in readings])


@router.get(
    f"{READINGS_PATH}/latest",
    response_model=QueryResponse,
    responses=_ERROR_RESPONSES,
    summary="Fetch the most recent readings, newest first.",
)
def latest_readings(
    count: Optional[str] = Query(None, description="Number of readings (default 20)."),
    service: ReadingService = Depends(get_reading_service),
) -> Union[QueryResponse, JSONResponse]:
    try:
        readings = service.latest(count)
    except (ConfigurationError, StoreConnectionError) as exc:
        return _connection_failure(exc)
    except StorageError as exc:
        return failure_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Fetch failed", exc)
    return QueryResponse(data=[ReadingOut.from_reading(reading) for reading in readings])


@router.options(READINGS_PATH, include_in_schema=False)
async def readings_preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint reports that the API is up.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "RF Cloud API is running"}
