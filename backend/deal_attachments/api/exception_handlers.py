"""Exception handlers.

Render every error in the dashboard envelope:
``{"success": false, "error": {"message", "code", "details"}}``.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from deal_attachments.core.exceptions import AppException

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    message: str,
    code: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build an error envelope response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {
                "message": message,
                "code": code,
                "details": details or {},
            },
        },
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Convert an AppException to its HTTP response."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.code, exc.details)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert request validation errors to the error envelope."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "VALIDATION_ERROR",
        {"errors": errors},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors and hide their internals from clients."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "INTERNAL_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the app."""
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
