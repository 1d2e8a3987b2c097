"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to HTTP status codes by the global exception handler
in main.py. Raising any of them inside a unit of work rolls the transaction back.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class NotFoundError(DomainError):
    """Resource not found (404)."""
    def __init__(self, resource_type: str, identifier: str, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(DomainError):
    """Validation error (400)."""
    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


# ── Order lifecycle ─────────────────────────────────────────────────

class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int):
        super().__init__("User", str(user_id), details={"user_id": user_id})


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: int):
        super().__init__("Product", str(product_id), details={"product_id": product_id})


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: int):
        super().__init__("Order", str(order_id), details={"order_id": order_id})


class InsufficientStockError(DomainError):
    """Requested quantity exceeds the product's current stock (400)."""
    def __init__(self, product: str, available: int, requested: int):
        message = (
            f"Insufficient stock for product {product}. "
            f"Available: {available}, Requested: {requested}"
        )
        super().__init__(
            message,
            details={"product": product, "available": available, "requested": requested},
        )
        self.product = product
        self.available = available
        self.requested = requested


class PaymentFailedError(DomainError):
    """Payment authorizer declined or could not be reached (400)."""
    def __init__(self, message: str = "Payment processing failed", details: dict | None = None):
        super().__init__(message, details=details)


class NotCancelableError(DomainError):
    """Order has progressed past the point where it can be cancelled (400)."""
    def __init__(self, current_status: str):
        super().__init__(
            f"Cannot cancel order with status: {current_status}",
            details={"status": current_status},
        )
        self.current_status = current_status


# ── Infrastructure ──────────────────────────────────────────────────

class TransientStoreError(DomainError):
    """Transaction could not run to completion; safe to resubmit (503)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE, details=details)


class TransactionSlotUnavailableError(TransientStoreError):
    def __init__(self, max_wait: float | None):
        super().__init__(
            f"Could not start a transaction within {max_wait}s",
            details={"max_wait_seconds": max_wait},
        )


class TransactionTimeoutError(TransientStoreError):
    def __init__(self, timeout: float | None):
        super().__init__(
            f"Transaction exceeded its {timeout}s execution budget",
            details={"timeout_seconds": timeout},
        )


class InternalFailureError(DomainError):
    """Unclassified failure (500)."""
    def __init__(self, message: str = "Internal server error", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)
