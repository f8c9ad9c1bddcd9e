"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to HTTP status codes by the global exception handler
in main.py.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Resource not found (404)."""
    def __init__(self, resource_type: str, identifier: str, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(DomainError):
    """
    Validation error (400).

    `errors` is a list of {"field", "message"} dicts, one per violated field.
    """
    def __init__(
        self,
        message: str = "Validation failed",
        errors: list[dict] | None = None,
        field: str | None = None,
        details: dict | None = None,
    ):
        if field:
            message = f"Validation error on {field}: {message}"
        self.errors = list(errors or [])
        if field and not self.errors:
            self.errors.append({"field": field, "message": message})
        details = dict(details or {})
        details.setdefault("errors", self.errors)
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class InvalidTransitionError(ValidationError):
    """Requested status is not part of the order lifecycle (400)."""
    def __init__(self, requested: str, allowed: list[str]):
        super().__init__(
            "Invalid order status",
            errors=[{"field": "status", "message": f"Invalid order status: {requested}"}],
            details={"requested": requested, "allowed": allowed},
        )


class InvalidStateError(DomainError):
    """Operation not permitted from the order's current status (400)."""
    def __init__(self, message: str, current_status: str | None = None, details: dict | None = None):
        details = dict(details or {})
        if current_status is not None:
            details.setdefault("current_status", current_status)
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class UnauthorizedError(DomainError):
    """Unauthorized access (401)."""
    def __init__(self, message: str = "Unauthorized", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)
