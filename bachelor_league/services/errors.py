"""
Service-layer error types.

Validation, not-found and state errors subclass ValueError so callers that
catch ValueError (the service convention) keep working. The API layer maps
each type to an HTTP status.
"""

from typing import Dict, List, Optional


class ServiceError(Exception):
    """Base class for errors raised by the domain services."""

    status_code = 500
    default_code = "service_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> Dict:
        return {"detail": self.message, "code": self.code}


class ValidationError(ServiceError, ValueError):
    """Input failed validation. Carries a per-field error list."""

    status_code = 400
    default_code = "validation_error"

    def __init__(
        self,
        message: str,
        errors: Optional[List[Dict]] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message, code)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str, code: str = "invalid") -> "ValidationError":
        """Build an error for a single offending field."""
        return cls(message, errors=[{"field": field, "message": message, "code": code}])

    def to_dict(self) -> Dict:
        return {"detail": self.message, "code": self.code, "errors": self.errors}


class NotFoundError(ServiceError, ValueError):
    """A referenced record does not exist."""

    status_code = 404
    default_code = "not_found"


class AuthorizationError(ServiceError):
    """Caller is not the commissioner, owner or member the operation requires."""

    status_code = 403
    default_code = "forbidden"


class StateError(ServiceError, ValueError):
    """Operation is not valid for the record's current status."""

    status_code = 409
    default_code = "invalid_state"
