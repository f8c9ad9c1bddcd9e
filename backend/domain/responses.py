"""
Standard API response models and helpers for consistent response formatting.

All endpoints should use these helpers to ensure consistent response envelopes:
- Success: { "success": true, "data": <payload>, "meta": {...} }
- Error: { "success": false, "error": { "code": "...", "message": "...", "details": {...} } }
"""
from typing import Any
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Standard error detail structure."""
    code: str = Field(..., description="Error code (e.g., 'notfound', 'validation')")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(default=None, description="Additional error context")


class StandardErrorResponse(BaseModel):
    """Standard error response envelope."""
    success: bool = Field(False, description="Always false for errors")
    error: ErrorDetail = Field(..., description="Error details")


# OpenAPI documentation for the error statuses the order routes produce
ORDER_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": StandardErrorResponse, "description": "Validation or lifecycle error"},
    401: {"model": StandardErrorResponse, "description": "Authentication required"},
    404: {"model": StandardErrorResponse, "description": "Order not found"},
}


def success_response(data: Any, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create a standardized success response.

    Args:
        data: The response payload
        meta: Optional metadata (counts, timestamps, etc.)

    Returns:
        dict: { "success": true, "data": <data>, "meta": <meta> }
    """
    response = {"success": True, "data": data}
    if meta:
        response["meta"] = meta
    return response


def error_response(code: str, message: str, details: Any = None) -> dict[str, Any]:
    """Create a standardized error body (used by the global exception handlers)."""
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details,
        },
    }
