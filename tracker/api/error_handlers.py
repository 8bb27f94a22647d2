"""Global error handlers for FastAPI application."""

import logging
import uuid
from typing import Union

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from tracker.core.config import settings
from tracker.core.exceptions import InternalError, TrackerError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please contact support if this persists."


def _organization_id(request: Request):
    user = getattr(request.state, "current_user", None)
    return user.organization_id if user else None


async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    """
    Handle domain errors raised by the services.

    Internal errors are logged in full but answered with a generic message.
    """
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))

    if isinstance(exc, InternalError):
        logger.error(
            f"Internal error: {exc.message}",
            exc_info=exc,
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "organization_id": _organization_id(request),
            },
        )
        message = GENERIC_ERROR_MESSAGE
    else:
        logger.warning(
            f"{exc.__class__.__name__}: {exc.message}",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "organization_id": _organization_id(request),
            },
        )
        message = exc.message

    content = {
        "error": exc.error,
        "message": message,
        "request_id": request_id,
    }
    if exc.field and not isinstance(exc, InternalError):
        content["field"] = exc.field

    return JSONResponse(status_code=exc.status_code, content=content)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all unhandled exceptions.

    In production, returns a generic error message without exposing internal details.
    In development, includes more information for debugging.
    """
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))

    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "organization_id": _organization_id(request),
        },
    )

    if settings.app_env == "production":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "internal_server_error",
                "message": GENERIC_ERROR_MESSAGE,
                "request_id": request_id,
            },
        )
    else:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "internal_server_error",
                "message": str(exc),
                "type": exc.__class__.__name__,
                "request_id": request_id,
            },
        )


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Returns structured validation error details.
    """
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))

    logger.warning(
        f"Validation error: {exc}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Invalid request data",
            "details": jsonable_encoder(exc.errors()),
            "request_id": request_id,
        },
    )

