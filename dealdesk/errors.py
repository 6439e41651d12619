"""Domain exceptions raised by services and policy checks.

Routers never build error responses themselves; the handlers registered in
``app.py`` turn these into ``{"success": false, "error": ...}`` bodies.
"""

from __future__ import annotations


class DealDeskError(Exception):
    """Base error carrying an HTTP status and a client-safe message."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(DealDeskError):
    status_code = 404
    default_message = "Not found"


class PermissionDenied(DealDeskError):
    status_code = 403
    default_message = "Permission denied"


class AuthenticationRequired(DealDeskError):
    status_code = 401
    default_message = "Authentication required"


class AuthMisconfigured(DealDeskError):
    status_code = 503
    default_message = "Authentication is misconfigured"


class ValidationError(DealDeskError):
    """Raised for invalid input; ``details`` lists ``{field, message}`` pairs."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(
        self,
        message: str | None = None,
        details: list[dict[str, str]] | None = None,
        *,
        field: str | None = None,
    ) -> None:
        super().__init__(message)
        if details is None and field:
            details = [{"field": field, "message": self.message}]
        self.details = details or []


class ConflictError(DealDeskError):
    status_code = 409
    default_message = "A record with this information already exists"
