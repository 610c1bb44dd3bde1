"""
Typed service errors.

Each error carries a machine-readable ``code`` and the HTTP status the API
boundary maps it to. Validation errors also carry a field-level error map.
"""
from typing import Dict, List, Optional


class AppError(Exception):
    """Base class for expected, caller-facing failures."""

    status_code = 400
    title = "Bad Request"
    default_code = "bad_request"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(AppError):
    status_code = 400
    title = "Validation Error"
    default_code = "validation_error"

    def __init__(self, message: str, errors: Optional[Dict[str, List[str]]] = None,
                 code: Optional[str] = None):
        super().__init__(message, code)
        self.errors = errors or {}

    @classmethod
    def for_field(cls, field: str, message: str, code: Optional[str] = None) -> "ValidationError":
        return cls(message, {field: [message]}, code)


class UnauthorizedError(AppError):
    status_code = 401
    title = "Unauthorized"
    default_code = "unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    title = "Forbidden"
    default_code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    title = "Not Found"
    default_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    title = "Conflict"
    default_code = "conflict"


class InvalidStateError(ConflictError):
    """The entity is no longer (or never was) in the state an operation requires."""
    default_code = "invalid_state"
