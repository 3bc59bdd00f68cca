"""
Exception handlers for the HTTP layer.

Every error leaves the API as ``{"error", "message", "details"}``:
- request bodies that fail ProcessRequest validation → 422, one detail per field
- GenerationError escaping a route (orchestration itself never raises it) → 502
- anything else → 500

Streaming chat runs report failures in-band as an ``error`` frame instead,
since their status line has already been sent.
"""

import logging
from typing import Any, Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..core.config import settings
from ..errors import GenerationError


logger = logging.getLogger(__name__)


def error_response(status_code: int, error: str, message: str, details: Any = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "details": details},
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """Report each invalid field by its camelCase wire name, e.g. ``userMessage``."""
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(f"Rejected request to {request.url.path}: {len(details)} invalid field(s)")

    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation Error",
        "The request data failed validation",
        details,
    )


async def generation_exception_handler(
    request: Request,
    exc: GenerationError
) -> JSONResponse:
    logger.error(f"Generation service failure on {request.url.path} (provider={exc.provider}): {exc}")

    return error_response(
        status.HTTP_502_BAD_GATEWAY,
        "Generation Error",
        "The text-generation service failed",
        {"provider": exc.provider, "reason": str(exc)} if settings.DEBUG else None,
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Last resort: log with traceback; expose the exception text only in DEBUG."""
    logger.error(f"Unhandled {exc.__class__.__name__} on {request.url.path}: {exc}", exc_info=True)

    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
        "An unexpected error occurred",
        str(exc) if settings.DEBUG else None,
    )
