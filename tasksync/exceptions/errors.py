"""
Standard Exception Hierarchy for tasksync

All storage backends, the sync engine and the HTTP server raise exceptions from
this module. Every exception inherits from ServiceError and can be converted to
an HTTPException (for FastAPI) or rebuilt from an error response body on the
client side.
"""
from typing import Any, Dict, List, Optional


# ============================================================================
# Base Exception Class
# ============================================================================

class ServiceError(Exception):
    """Base exception for all tasksync errors.

    Attributes:
        message: Human-readable error message
        context: Dictionary of additional context
        original_error: Optional original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        *,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        """Initialize service error.

        Args:
            message: Human-readable error message
            context: Optional dictionary of additional context
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization.

        Returns:
            Dictionary representation of the exception
        """
        result = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.context:
            result["context"] = self.context
        if self.original_error:
            result["original_error"] = {
                "type": type(self.original_error).__name__,
                "message": str(self.original_error)
            }
        return result


# ============================================================================
# Common Exception Types
# ============================================================================

class NotFoundError(ServiceError):
    """Raised when a requested resource is not found.

    Attributes:
        resource_type: Type of resource (e.g., "Task")
        resource_id: ID of the resource that was not found
    """

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        *,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        if message is None:
            message = f"{resource_type} with ID '{resource_id}' not found"

        super().__init__(message, context=context)
        self.resource_type = resource_type
        self.resource_id = str(resource_id)
        self.context.setdefault("resource_type", resource_type)
        self.context.setdefault("resource_id", str(resource_id))


class AmbiguousMatchError(ServiceError):
    """Raised when an identifier suffix matches more than one task.

    Attributes:
        suffix: The identifier suffix that was looked up
        candidates: Full identifiers of every matching task
    """

    def __init__(
        self,
        suffix: str,
        candidates: List[str],
        *,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        if message is None:
            message = f"Expected 1 task matching '{suffix}' but found {len(candidates)}"

        super().__init__(message, context=context)
        self.suffix = suffix
        self.candidates = list(candidates)
        self.context.setdefault("suffix", suffix)
        self.context.setdefault("candidates", self.candidates)


class ValidationError(ServiceError):
    """Raised when input validation fails (bad due date, bad recurrence, ...).

    Attributes:
        field: Optional field name that failed validation
        value: Optional value that failed validation
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context=context)
        self.field = field
        self.value = value
        if field is not None:
            self.context.setdefault("field", field)
        if value is not None:
            self.context.setdefault("value", str(value))


class DuplicateError(ServiceError):
    """Raised when attempting to create a task whose identifier already exists.

    The sync engine relies on this exception to fall back from save to update.

    Attributes:
        resource_type: Type of resource (e.g., "Task")
        field: Field that has duplicate value
        value: Duplicate value
    """

    def __init__(
        self,
        resource_type: str,
        field: str,
        value: str,
        *,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        if message is None:
            message = f"{resource_type} with {field} '{value}' already exists"

        super().__init__(message, context=context, original_error=original_error)
        self.resource_type = resource_type
        self.field = field
        self.value = value
        self.context.setdefault("resource_type", resource_type)
        self.context.setdefault("field", field)
        self.context.setdefault("value", value)


class BackendError(ServiceError):
    """Raised when a storage backend fails for a reason other than the above."""


class DatabaseError(BackendError):
    """Raised when a database operation fails.

    Attributes:
        operation: Optional database operation that failed (e.g., "INSERT", "SELECT")
    """

    def __init__(
        self,
        message: str,
        *,
        original_error: Optional[Exception] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context=context, original_error=original_error)
        self.operation = operation
        if operation is not None:
            self.context.setdefault("operation", operation)


class BackendUnreachableError(BackendError):
    """Raised when the remote storage backend cannot be reached."""

    def __init__(
        self,
        uri: str,
        *,
        message: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        if message is None:
            message = f"Backend at '{uri}' is unreachable"
            if original_error is not None:
                message = f"{message}: {original_error}"

        super().__init__(message, context=context, original_error=original_error)
        self.uri = uri
        self.context.setdefault("uri", uri)


# ============================================================================
# Service-Specific Exceptions
# ============================================================================

class TaskNotFoundError(NotFoundError):
    """Raised when a task is not found."""

    def __init__(self, ulid: str, **kwargs):
        super().__init__("Task", ulid, **kwargs)
        self.ulid = ulid  # Convenience attribute


# ============================================================================
# Helper Functions for FastAPI Integration
# ============================================================================

STATUS_CODE_MAP = {
    NotFoundError: 404,
    TaskNotFoundError: 404,
    ValidationError: 422,
    DuplicateError: 409,
    AmbiguousMatchError: 409,
    BackendUnreachableError: 502,
}


def to_http_exception(
    exc: ServiceError,
    *,
    default_status_code: int = 500,
    include_context: bool = True
):
    """Convert ServiceError to FastAPI HTTPException.

    Args:
        exc: Service error to convert
        default_status_code: Default status code if mapping not found
        include_context: Whether to include exception context in response

    Returns:
        HTTPException with appropriate status code and detail
    """
    from fastapi import HTTPException

    status_code = STATUS_CODE_MAP.get(type(exc), default_status_code)

    detail = {
        "error": exc.__class__.__name__,
        "message": exc.message,
    }

    if include_context and exc.context:
        detail["context"] = exc.context

    return HTTPException(status_code=status_code, detail=detail)


def from_error_response(status_code: int, body: Any, *, uri: str = "") -> ServiceError:
    """Rebuild a ServiceError from an error response produced by to_http_exception.

    Args:
        status_code: HTTP status code of the response
        body: Decoded JSON body (or raw text when the body is not JSON)
        uri: Endpoint that produced the response, used in messages

    Returns:
        The matching ServiceError subclass instance
    """
    if isinstance(body, dict):
        error_type = body.get("error", "")
        message = body.get("message") or str(body)
        context = body.get("context") or {}
    else:
        error_type = ""
        message = str(body)
        context = {}

    if status_code == 404:
        return TaskNotFoundError(
            context.get("resource_id", ""),
            message=message,
        )
    if status_code == 409 and error_type == AmbiguousMatchError.__name__:
        return AmbiguousMatchError(
            context.get("suffix", ""),
            context.get("candidates", []),
            message=message,
        )
    if status_code == 409:
        return DuplicateError(
            context.get("resource_type", "Task"),
            context.get("field", "ulid"),
            context.get("value", ""),
            message=message,
        )
    if status_code == 422:
        return ValidationError(message, context=context)
    return BackendError(
        f"Failed with status code: {status_code}, and response: {message}",
        context={"uri": uri, "status_code": status_code},
    )


# ============================================================================
# Exports
# ============================================================================

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
    "STATUS_CODE_MAP",
    "to_http_exception",
    "from_error_response",
]
