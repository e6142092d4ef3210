# dailypath/core/errors.py
"""
Domain error taxonomy.

Services and crud functions raise these; the API layer turns them into
JSON error responses in `dailypath.api.exception_handlers`. Each class
carries its HTTP status, the short `error` code shown to clients and a
default human-readable message.
"""
from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base class for errors that map to an HTTP response."""
    status_code: int = 500
    error: str = "Internal server error"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Any] = None,
        code: Optional[str] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        self.code = code
        super().__init__(self.message)


class UnauthorizedError(AppError):
    status_code = 401
    error = "Unauthorized"
    default_message = "Authentication required"


class ForbiddenError(AppError):
    status_code = 403
    error = "Forbidden"
    default_message = "You do not have permission to perform this action"


class ValidationError(AppError):
    """Field-level input error raised after schema validation (business rules)."""
    status_code = 400
    error = "Validation error"
    default_message = "One or more fields are invalid"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        field_errors: Optional[Dict[str, List[str]]] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message, details=field_errors, code=code)
        self.field_errors = field_errors or {}


class NotFoundError(AppError):
    status_code = 404
    error = "Not found"
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    error = "Conflict"
    default_message = "The request conflicts with the current state of the resource"


class RateLimitedError(AppError):
    status_code = 429
    error = "Too many requests"
    default_message = "Too many attempts. Try again in a few minutes."


class AuthProviderError(AppError):
    """The external auth provider rejected or failed a call we depend on."""
    status_code = 502
    error = "Auth error"
    default_message = "The authentication service could not complete the request"


class DatabaseError(AppError):
    """Storage failure. The message is always generic; the cause is only logged."""
    status_code = 500
    error = "Database error"
    default_message = "A database error occurred"


class InternalError(AppError):
    status_code = 500
    error = "Internal server error"
    default_message = "An unexpected error occurred"
