# app/logging/exception_handlers.py

import logging
import traceback

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import ResponseValidationError, RequestValidationError

from app.access.exceptions import AccessControlError
from app.logging.writer import safe_json_dumps, write_log

logger = logging.getLogger(__name__)


async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions and log them to database"""
    error_traceback = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc)

    write_log(
        request,
        status_code=500,
        response_body=safe_json_dumps(
            {"error": str(exc), "type": type(exc).__name__, "traceback": error_traceback}
        ),
        error_type=type(exc).__name__,
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )


async def response_validation_exception_handler(request: Request, exc: ResponseValidationError):
    logger.error("Response validation failed on %s %s", request.method, request.url.path)
    write_log(
        request,
        status_code=500,
        response_body=safe_json_dumps(exc.errors()),
        error_type="ResponseValidationError",
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error: Response validation failed."},
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    write_log(
        request,
        status_code=422,
        response_body=safe_json_dumps(exc.errors()),
        error_type="RequestValidationError",
    )

    # Convert errors to a safe format for JSON response
    def convert_error(error):
        if isinstance(error, dict):
            return {k: convert_error(v) for k, v in error.items()}
        elif isinstance(error, list):
            return [convert_error(item) for item in error]
        else:
            return str(error)

    return JSONResponse(
        status_code=422,
        content={"detail": convert_error(exc.errors())},
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions and log 4xx/5xx errors"""
    if exc.status_code >= 400:
        write_log(
            request,
            status_code=exc.status_code,
            response_body=safe_json_dumps({"detail": exc.detail, "headers": getattr(exc, "headers", None)}),
            error_type="HTTPException",
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def access_control_exception_handler(request: Request, exc: AccessControlError):
    """Missing resources become 404, invisible ones 403. Neither names the resource."""
    logger.info(
        "Access check failed: %s %s for principal %s (%s)",
        exc.resource_kind,
        exc.resource_id,
        exc.principal_id,
        exc.status_code,
    )
    write_log(
        request,
        status_code=exc.status_code,
        response_body=safe_json_dumps({"detail": exc.detail}),
        error_type=type(exc).__name__,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )
