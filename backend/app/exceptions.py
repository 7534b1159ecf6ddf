"""
Waterfall Manager Backend — Custom Exception Hierarchy
=======================================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    WaterfallError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthenticationError      → 401 Unauthorized (missing/invalid token)
    ├── AuthorizationError       → 403 Forbidden (role not permitted)
    ├── NotFoundError            → 404 Not Found
    ├── StorageError             → 500 Internal Server Error (generic message)
    └── ConfigurationError       → raised at startup, never served
"""

from typing import Any, Dict, Optional


class WaterfallError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(WaterfallError):
    """
    Raised when client input fails a business rule.

    When:    Empty transition description, end date before start date, etc.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Description is required",
            "details": {"field": "description"}
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


class AuthenticationError(WaterfallError):
    """
    Raised when the bearer credential is missing, malformed, expired, or
    carries claims that cannot be turned into an identity.

    HTTP:    401 Unauthorized (with WWW-Authenticate: Bearer)
    """

    def __init__(
        self,
        message: str = "Invalid or missing bearer token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(WaterfallError):
    """
    Raised when an authenticated identity's role does not permit an operation.

    HTTP:    403 Forbidden
    Nothing has been written when this is raised.
    """

    def __init__(
        self,
        operation: str = "operation",
        role: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["operation"] = operation
        if role:
            ctx["role"] = role
        super().__init__(
            message=f"You are not allowed to perform '{operation}'",
            context=ctx,
        )
        self.operation = operation
        self.role = role


class NotFoundError(WaterfallError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown project id on transition, unknown ledger record id.
    HTTP:    404 Not Found

    SQLAlchemy returns None for missing rows; the service layer converts
    that None into this exception.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class StorageError(WaterfallError):
    """
    Raised when database operations fail unexpectedly.

    When:    Connection lost mid-transaction, constraint violation, deadlock,
             pool exhausted past DB_POOL_TIMEOUT.
    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. Driver and SQL
    details go into `context` and are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigurationError(WaterfallError):
    """
    Raised at startup when required settings are missing or invalid.

    Never mapped to an HTTP response: the process refuses to start.
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
