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
    code: str = Field(..., description="Error code (e.g., 'order_not_found', 'insufficient_stock')")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(default=None, description="Additional error context")


class StandardErrorResponse(BaseModel):
    """Standard error response envelope."""
    success: bool = Field(False, description="Always false for errors")
    error: ErrorDetail = Field(..., description="Error details")


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


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build the error envelope as a plain dict."""
    return StandardErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details)
    ).model_dump()
