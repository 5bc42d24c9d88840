# app/logging/exception_handlers.py

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse

from app.reports.exceptions import InfrastructureError, ReportError

logger = logging.getLogger(__name__)


async def report_exception_handler(request: Request, exc: ReportError):
    """Map report errors to their status code"""
    if isinstance(exc, InfrastructureError):
        logger.error(
            f"{request.method} {request.url.path} failed: {exc.message}",
            exc_info=exc.cause or exc,
        )
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "type": type(exc).__name__},
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )


async def response_validation_exception_handler(request: Request, exc: ResponseValidationError):
    logger.error(f"Response validation failed on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error: Response validation failed."},
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    logger.info(f"Invalid request on {request.method} {request.url.path}")

    # Convert errors to a safe format for JSON response
    def convert_error(error):
        if isinstance(error, dict):
            return {k: convert_error(v) for k, v in error.items()}
        elif isinstance(error, list):
            return [convert_error(item) for item in error]
        else:
            return str(error)

    safe_errors = convert_error(exc.errors())

    return JSONResponse(
        status_code=422,
        content={"detail": safe_errors},
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions and log 4xx/5xx errors"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    elif exc.status_code >= 400:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )
