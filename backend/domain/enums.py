"""
Domain enums (minimal set used for clarity in services).
"""

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# Statuses from which an order may still be cancelled
CANCELABLE_STATUSES = frozenset({OrderStatus.PENDING.value, OrderStatus.PROCESSING.value})
