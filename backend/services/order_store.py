"""
Order Store: authoritative registry of orders.

Interface:
    create / get / list / list_available / set_status / assign / accept_by_restaurant

Backends:
    - InMemoryOrderStore (this module): volatile dict + counter, reset on restart
    - SqlOrderStore (services/sql_order_store.py): SQLAlchemy table, same semantics

Every mutation is "lock, validate, mutate, unlock": the in-memory backend holds
an asyncio.Lock across the whole operation so two requests can never move the
same order into two different states.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from domain.constants import (
    AVAILABLE_STATUSES,
    DEFAULT_CUSTOMER_NAME,
    DEFAULT_CUSTOMER_PHONE,
    DEFAULT_PICKUP_ADDRESS,
    DEFAULT_RESTAURANT_NAME,
)
from domain.enums import OrderStatus
from domain.errors import (
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from domain.lifecycle import (
    compute_payout,
    derive_drop_address,
    derive_payment_type,
    is_forward_transition,
)
from models import DeliveryAddress, Driver, Order, OrderDraft


# ════════════════════════════════════════════════════════════════════
# Shared rules (used by every backend)
# ════════════════════════════════════════════════════════════════════


def validate_draft(draft: OrderDraft) -> None:
    """Raise ValidationError listing every missing required field."""
    errors = []
    if not draft.items:
        errors.append({"field": "items", "message": "At least one item is required"})

    address = draft.delivery_address
    if address is None or (isinstance(address, str) and not address.strip()) or (
        isinstance(address, DeliveryAddress) and address.is_blank()
    ):
        errors.append({"field": "deliveryAddress", "message": "Delivery address is required"})

    if not draft.payment_method or not draft.payment_method.strip():
        errors.append({"field": "paymentMethod", "message": "Payment method is required"})

    if errors:
        raise ValidationError("Order validation failed", errors=errors)


def build_order(
    draft: OrderDraft,
    *,
    order_id: str,
    payout_rate: float,
    payout_minimum: int,
    created_at: datetime | None = None,
) -> Order:
    """Materialize a validated draft into a pending order with derived fields."""
    return Order(
        id=order_id,
        customer_id=draft.customer_id,
        restaurant_id=draft.restaurant_id,
        customer_name=draft.customer_name or DEFAULT_CUSTOMER_NAME,
        customer_phone=draft.customer_phone or DEFAULT_CUSTOMER_PHONE,
        items=draft.items,
        delivery_address=draft.delivery_address,
        delivery_instructions=draft.delivery_instructions or "",
        payment_method=draft.payment_method,
        created_at=created_at or datetime.now(timezone.utc),
        status=OrderStatus.PENDING,
        payout_amount=compute_payout(draft.items, payout_rate, payout_minimum),
        restaurant_name=draft.restaurant_name or DEFAULT_RESTAURANT_NAME,
        pickup_address=draft.pickup_address or DEFAULT_PICKUP_ADDRESS,
        drop_address=derive_drop_address(draft.delivery_address),
        payment_type=derive_payment_type(draft.payment_method),
    )


def parse_status(value: str | OrderStatus) -> OrderStatus:
    """Coerce a raw status value, raising InvalidTransitionError outside the enum."""
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidTransitionError(str(value), OrderStatus.values())


def check_status_change(order: Order, new_status: OrderStatus, *, strict: bool) -> None:
    if strict and not is_forward_transition(order.status, new_status):
        raise InvalidStateError(
            f"Order cannot move from {order.status.value} to {new_status.value}",
            current_status=order.status.value,
            details={"requested": new_status.value},
        )


def check_assignable(order: Order) -> None:
    if order.status not in AVAILABLE_STATUSES or order.assigned_driver is not None:
        raise InvalidStateError(
            "Order is not available for assignment",
            current_status=order.status.value,
        )


def check_acceptable(order: Order) -> None:
    if order.status != OrderStatus.PENDING:
        raise InvalidStateError(
            "Order cannot be accepted",
            current_status=order.status.value,
        )


# ════════════════════════════════════════════════════════════════════
# Interface
# ════════════════════════════════════════════════════════════════════


class OrderStore(ABC):
    """
    Narrow storage interface the order service is written against.

    All returned orders are snapshots; mutating them never touches the registry.
    """

    backend: str = "abstract"

    def __init__(
        self,
        *,
        id_prefix: str = "ORD-",
        id_seed: int = 1010,
        payout_rate: float = 0.10,
        payout_minimum: int = 30,
        strict_transitions: bool = True,
    ):
        self.id_prefix = id_prefix
        self.id_seed = id_seed
        self.payout_rate = payout_rate
        self.payout_minimum = payout_minimum
        self.strict_transitions = strict_transitions

    def format_id(self, number: int) -> str:
        return f"{self.id_prefix}{number}"

    @abstractmethod
    async def create(self, draft: OrderDraft) -> Order: ...

    @abstractmethod
    async def get(self, order_id: str) -> Order: ...

    @abstractmethod
    async def list(self) -> list[Order]: ...

    @abstractmethod
    async def list_available(self) -> list[Order]: ...

    @abstractmethod
    async def set_status(self, order_id: str, new_status: str | OrderStatus) -> Order: ...

    @abstractmethod
    async def assign(self, order_id: str, driver: Driver) -> Order: ...

    @abstractmethod
    async def accept_by_restaurant(self, order_id: str) -> Order: ...

    async def ping(self) -> bool:
        """Backend reachability for /health."""
        return True


# ════════════════════════════════════════════════════════════════════
# In-memory backend
# ════════════════════════════════════════════════════════════════════


class InMemoryOrderStore(OrderStore):
    """Process-local registry. Dict preserves insertion order for list()."""

    backend = "memory"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._orders: dict[str, Order] = {}
        self._next_number = self.id_seed
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._orders)

    def _require(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    async def create(self, draft: OrderDraft) -> Order:
        validate_draft(draft)
        async with self._lock:
            order_id = self.format_id(self._next_number)
            self._next_number += 1
            # Stored order must not share items or address with the caller's draft
            order = build_order(
                draft.model_copy(deep=True),
                order_id=order_id,
                payout_rate=self.payout_rate,
                payout_minimum=self.payout_minimum,
            )
            self._orders[order_id] = order
            return order.model_copy(deep=True)

    async def get(self, order_id: str) -> Order:
        async with self._lock:
            return self._require(order_id).model_copy(deep=True)

    async def list(self) -> list[Order]:
        async with self._lock:
            return [o.model_copy(deep=True) for o in self._orders.values()]

    async def list_available(self) -> list[Order]:
        async with self._lock:
            return [
                o.model_copy(deep=True)
                for o in self._orders.values()
                if o.status in AVAILABLE_STATUSES
            ]

    async def set_status(self, order_id: str, new_status: str | OrderStatus) -> Order:
        async with self._lock:
            order = self._require(order_id)
            status = parse_status(new_status)
            check_status_change(order, status, strict=self.strict_transitions)
            order.status = status
            return order.model_copy(deep=True)

    async def assign(self, order_id: str, driver: Driver) -> Order:
        async with self._lock:
            order = self._require(order_id)
            check_assignable(order)
            order.status = OrderStatus.OUT_FOR_DELIVERY
            order.assigned_driver = driver.model_copy()
            return order.model_copy(deep=True)

    async def accept_by_restaurant(self, order_id: str) -> Order:
        async with self._lock:
            order = self._require(order_id)
            check_acceptable(order)
            order.status = OrderStatus.CONFIRMED
            return order.model_copy(deep=True)
