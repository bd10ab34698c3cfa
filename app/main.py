from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import failure_response, router
from datastore.connector import build_default_connector
from logging_config import configure_logging
from services.readings import build_default_reading_service
from settings import get_settings

METHOD_NOT_ALLOWED_MESSAGE = "Only GET, POST, OPTIONS allowed"


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # The connector stays open for the whole process; only shutdown closes it.
    connector = build_default_connector()
    try:
        yield
    finally:
        connector.close()
        build_default_reading_service.cache_clear()
        build_default_connector.cache_clear()


async def http_exception_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 405:
        message = METHOD_NOT_ALLOWED_MESSAGE
    else:
        message = str(exc.detail)
    response = failure_response(exc.status_code, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(
        title="RF Readings API",
        description="Ingests RF sensor readings and serves time-range queries over them.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.include_router(router)
    return app

app = create_app()
