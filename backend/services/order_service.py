"""
Order service: the operation surface over the order store.

Every successful mutation publishes one lifecycle event:
    create_order         -> order_created
    update_order_status  -> order_updated
    assign_order         -> order_assigned
    accept_order         -> order_confirmed

The caller identity is an explicit argument (None for anonymous requests);
the store and broadcaster are injected so the service is storage-agnostic.
Store errors (NotFoundError, InvalidStateError, ValidationError) propagate
unchanged and are rendered by the global exception handlers in main.py.
"""
from __future__ import annotations

import logging
from typing import Optional

from domain.constants import DEFAULT_DRIVER_NAME
from domain.enums import OrderEvent, OrderStatus
from middleware.auth import Caller
from models import CreateOrderRequest, Driver, Order, OrderDraft
from services.event_broadcaster import EventBroadcaster
from services.order_store import OrderStore, parse_status

logger = logging.getLogger(__name__)


def _publish(broadcaster: EventBroadcaster, event: OrderEvent, order: Order) -> None:
    delivered = broadcaster.publish(event.value, order.to_payload())
    logger.info(f"{event.value}: {order.id} status={order.status.value} (delivered to {delivered})")


async def list_orders(store: OrderStore) -> list[Order]:
    return await store.list()


async def list_available_orders(store: OrderStore) -> list[Order]:
    """Orders a driver can still pick up (pending / confirmed / preparing)."""
    return await store.list_available()


async def get_order(store: OrderStore, order_id: str) -> Order:
    return await store.get(order_id)


async def create_order(
    store: OrderStore,
    broadcaster: EventBroadcaster,
    *,
    caller: Optional[Caller],
    request: CreateOrderRequest,
) -> Order:
    """
    Place a new order.

    Customer fields missing from the request are filled from the caller
    identity; the store fills whatever is still missing with display defaults.
    """
    draft = OrderDraft.model_validate(
        {
            **request.model_dump(),
            "customer_id": caller.id if caller else None,
            "customer_name": request.customer_name or (caller.name if caller else None),
            "customer_phone": request.customer_phone or (caller.phone if caller else None),
        }
    )
    order = await store.create(draft)
    _publish(broadcaster, OrderEvent.CREATED, order)
    return order


async def update_order_status(
    store: OrderStore,
    broadcaster: EventBroadcaster,
    *,
    caller: Optional[Caller],
    order_id: str,
    status: str,
) -> Order:
    # Reject values outside the lifecycle before touching the order
    new_status: OrderStatus = parse_status(status)
    order = await store.set_status(order_id, new_status)
    logger.debug(f"Status of {order_id} set to {new_status.value} by {caller.id if caller else 'anonymous'}")
    _publish(broadcaster, OrderEvent.UPDATED, order)
    return order


async def assign_order(
    store: OrderStore,
    broadcaster: EventBroadcaster,
    *,
    caller: Optional[Caller],
    order_id: str,
) -> Order:
    """Hand the order to the calling driver and mark it out for delivery."""
    driver = Driver(
        id=caller.id if caller else None,
        name=(caller.name if caller else None) or DEFAULT_DRIVER_NAME,
    )
    order = await store.assign(order_id, driver)
    _publish(broadcaster, OrderEvent.ASSIGNED, order)
    return order


async def accept_order(
    store: OrderStore,
    broadcaster: EventBroadcaster,
    *,
    caller: Optional[Caller],
    order_id: str,
) -> Order:
    """Restaurant confirms a pending order."""
    order = await store.accept_by_restaurant(order_id)
    logger.debug(f"Order {order_id} accepted by {caller.id if caller else 'anonymous'}")
    _publish(broadcaster, OrderEvent.CONFIRMED, order)
    return order
