"""
FastAPI application entry point for the live wall backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from livewall.config import get_settings
from livewall.errors import (
    ConflictError,
    ForbiddenError,
    LivewallError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from livewall.routes import router

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ValidationError: 400,
    UnauthorizedError: 401,
    ForbiddenError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    StorageError: 500,
}


def status_code_for(exc: LivewallError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


async def handle_livewall_error(request: Request, exc: LivewallError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(status_code=400, content={"detail": "; ".join(messages)})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Live Wall Backend", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(LivewallError, handle_livewall_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.include_router(router, prefix=settings.api_prefix)

    @app.get("/")
    def root():
        return {"service": "livewall-backend", "status": "ok"}

    return app


app = create_app()
