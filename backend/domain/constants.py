"""
Domain constants used across services/routers.
"""

from domain.enums import OrderStatus

# Orders a driver can still pick up (not yet out, not terminal)
AVAILABLE_STATUSES = frozenset({
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
})

TERMINAL_STATUSES = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
})

# Forward lifecycle; cancelled is reachable from any non-terminal stage
LIFECYCLE_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

# Payment methods settled in cash at the door
CASH_PAYMENT_METHODS = frozenset({"cash", "cod"})

# Display defaults for fields the storefront may omit
DEFAULT_CUSTOMER_NAME = "Customer"
DEFAULT_CUSTOMER_PHONE = "N/A"
DEFAULT_DRIVER_NAME = "Driver"
DEFAULT_RESTAURANT_NAME = "Restaurant"
DEFAULT_PICKUP_ADDRESS = "Restaurant Address"

PAYMENT_TYPE_COD = "COD"
PAYMENT_TYPE_ONLINE = "Paid Online"
