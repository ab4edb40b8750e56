"""
Custom exception classes and error handling utilities for BalanceLab.
"""

from typing import Any, Optional

from fastapi import HTTPException, status


class BalanceLabException(Exception):
    """Base exception for BalanceLab application."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidInput(BalanceLabException):
    """Raised when input validation fails."""

    pass


def raise_bad_request(message: str, field: str = None) -> None:
    """
    Raise a 400 HTTPException with descriptive message.

    Args:
        message: Description of what's invalid
        field: Field name that's invalid (optional)

    Raises:
        HTTPException: 400 Bad Request
    """
    if field:
        detail = f"Invalid value for '{field}': {message}"
    else:
        detail = message

    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def raise_internal_error(operation: str, error: Exception = None) -> None:
    """
    Raise a 500 HTTPException for internal errors.

    Args:
        operation: What operation failed (e.g., "solve mass balance")
        error: The underlying exception (already logged by the caller)

    Raises:
        HTTPException: 500 Internal Server Error
    """
    detail = f"Failed to {operation}. Please try again or contact support."

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )
