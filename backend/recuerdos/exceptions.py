"""
Recuerdos Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the CRUD boundary and record stores.
How:   Each exception carries a user-facing message and an optional context dict.
       Global exception handlers (registered in main.py) turn them into
       structured JSON error responses with the matching HTTP status code.
Who:   Raised by stores, services and middleware; caught by global handlers.

Exception Hierarchy:
    RecuerdosError (base)
    ├── ValidationError          → 400 Bad Request (client must fix input)
    ├── NotFoundError            → 404 Not Found (absent OR owned by someone else)
    ├── StoreUnavailableError    → 503 Service Unavailable (retryable)
    │   └── StoreTimeoutError    → 504 Gateway Timeout (retryable)
    ├── UnknownError             → 500 Internal Server Error
    └── RateLimitExceededError   → 429 Too Many Requests

Stores never let a driver exception (SQLAlchemy, OSError, httpx) escape; they
translate to StoreUnavailableError or NotFoundError. Anything else reaching the
service layer is wrapped in UnknownError.
"""

from typing import Any, Dict, Optional


class RecuerdosError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only returned for validation errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(RecuerdosError):
    """
    Raised when client input fails a business rule.

    When:    Missing required field, malformed date, half a coordinate pair.
    HTTP:    400 Bad Request

    `field` uses the wire name (`titulo`, `ubicacion`, `fecha`, `userId`, ...)
    so the presentation layer can attach the message to the right input.

    Example response:
        {
            "error": "validation_error",
            "message": "Missing required field: titulo",
            "details": {"field": "titulo", "fields": ["titulo"]}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(RecuerdosError):
    """
    Raised when no record with that id is visible to the caller.

    HTTP:    404 Not Found

    A record owned by a different user produces exactly the same error as a
    record that never existed. The message never mentions the owner.
    """

    def __init__(
        self,
        resource: str = "recuerdo",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)


class StoreUnavailableError(RecuerdosError):
    """
    Raised when the persistence layer could not be reached.

    What:    Database connection refused, data file unreadable, remote service down.
    HTTP:    503 Service Unavailable (with Retry-After)

    This is a transient condition, never data corruption: the caller may retry.
    """

    def __init__(
        self,
        message: str = "The memories store is temporarily unavailable. Please try again shortly.",
        retry_after: Optional[int] = 5,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class StoreTimeoutError(StoreUnavailableError):
    """
    Raised when the persistence layer did not answer in time.

    HTTP:    504 Gateway Timeout
    """

    def __init__(
        self,
        message: str = "The memories store took too long to respond. Please try again.",
        retry_after: Optional[int] = 5,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, retry_after=retry_after, context=context)


class UnknownError(RecuerdosError):
    """
    Raised for unexpected failures inside a store or service.

    HTTP:    500 Internal Server Error

    The response carries a generic apology; the original exception type is kept
    in `context` for the server log only.
    """

    def __init__(
        self,
        message: str = "Something went wrong while handling your memories. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(RecuerdosError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
