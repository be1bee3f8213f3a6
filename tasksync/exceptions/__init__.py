"""
Exception handlers and standard exceptions for the application.
"""
from tasksync.exceptions.errors import (
    ServiceError,
    NotFoundError,
    AmbiguousMatchError,
    ValidationError,
    DuplicateError,
    BackendError,
    DatabaseError,
    BackendUnreachableError,
    TaskNotFoundError,
    to_http_exception,
    from_error_response,
)

__all__ = [
    "ServiceError",
    "NotFoundError",
    "AmbiguousMatchError",
    "ValidationError",
    "DuplicateError",
    "BackendError",
    "DatabaseError",
    "BackendUnreachableError",
    "TaskNotFoundError",
    "to_http_exception",
    "from_error_response",
]
