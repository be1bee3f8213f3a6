"""
Exception handlers for the application.
"""
import logging
import sqlite3

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tasksync.exceptions.errors import (
    ServiceError,
    NotFoundError,
    ValidationError,
    AmbiguousMatchError,
    to_http_exception,
)

logger = logging.getLogger(__name__)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.
    """
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {str(exc)}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "InternalServerError",
            "message": f"Something went wrong: {exc}",
            "path": request.url.path,
            "method": request.method,
        }
    )


async def sqlite_exception_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    """
    Handler for SQLite errors that escaped the storage layer (e.g. a bad raw query clause).
    """
    logger.error(
        f"Database error in {request.method} {request.url.path}: {exc}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "DatabaseError",
            "message": f"Database error: {exc}",
            "path": request.url.path,
            "method": request.method,
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request validation errors with clear messages.
    """
    errors = []
    for error in exc.errors():
        location = " -> ".join(str(loc) for loc in error["loc"])
        errors.append(f"{location}: {error['msg']}")

    logger.warning(f"Validation error in {request.method} {request.url.path}: {', '.join(errors)}")
    return JSONResponse(
        status_code=422,
        content={
            "error": ValidationError.__name__,
            "message": "; ".join(errors),
            "context": {"errors": errors},
        }
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """
    Handler for standard ServiceError exceptions.

    Converts ServiceError to the matching HTTP status with the error details as body.
    """
    expected = (NotFoundError, ValidationError, AmbiguousMatchError)
    log_level = logging.WARNING if isinstance(exc, expected) else logging.ERROR
    logger.log(log_level, f"Service error in {request.method} {request.url.path}: {exc.message}")

    http_exc = to_http_exception(exc)
    return JSONResponse(
        status_code=http_exc.status_code,
        content=http_exc.detail
    )


def setup_exception_handlers(app):
    """
    Register exception handlers with the FastAPI app.

    Note: ServiceError handler must be registered before the generic Exception handler
    to ensure ServiceError exceptions are caught first.
    """
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(sqlite3.Error, sqlite_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
