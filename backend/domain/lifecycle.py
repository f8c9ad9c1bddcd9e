"""
Order lifecycle rules: payout calculation, derived display fields and
status transition checks.

Pure functions, shared by every OrderStore backend so the in-memory and SQL
registries compute identical orders.
"""
import math
from typing import Any

from domain.constants import (
    CASH_PAYMENT_METHODS,
    LIFECYCLE_SEQUENCE,
    PAYMENT_TYPE_COD,
    PAYMENT_TYPE_ONLINE,
    TERMINAL_STATUSES,
)
from domain.enums import OrderStatus


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (storefront rounding)."""
    return int(math.floor(value + 0.5))


def compute_payout(items: list[Any], rate: float, minimum: int) -> int:
    """
    Driver payout for an order: `rate` of the order value, never below `minimum`.

    Items expose `price` and `quantity` (attribute access).
    """
    total = sum(float(item.price) * int(item.quantity) for item in items)
    return max(minimum, round_half_up(total * rate))


def derive_drop_address(delivery_address: Any) -> str:
    """Flatten a delivery address to the single line shown to drivers."""
    if isinstance(delivery_address, str):
        return delivery_address
    street = getattr(delivery_address, "street", None)
    city = getattr(delivery_address, "city", None)
    return ", ".join(part for part in (street, city) if part)


def derive_payment_type(payment_method: str) -> str:
    if payment_method.strip().lower() in CASH_PAYMENT_METHODS:
        return PAYMENT_TYPE_COD
    return PAYMENT_TYPE_ONLINE


def is_forward_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """
    Whether `current -> new` follows the forward lifecycle graph.

    - Terminal statuses never change (re-setting the same value is allowed).
    - Cancellation is reachable from any non-terminal status.
    - Otherwise the new status must be the same or a later stage.
    """
    if current == new:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if new == OrderStatus.CANCELLED:
        return True
    return LIFECYCLE_SEQUENCE.index(new) > LIFECYCLE_SEQUENCE.index(current)
