"""
Domain enums for the order lifecycle.
"""

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]


class OrderEvent(str, Enum):
    """Event types pushed over the order event stream."""
    CREATED = "order_created"
    UPDATED = "order_updated"
    ASSIGNED = "order_assigned"
    CONFIRMED = "order_confirmed"
