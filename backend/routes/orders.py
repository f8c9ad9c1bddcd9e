"""
Order endpoints — storefront checkout, restaurant and driver flows, and the
live order event stream.

Endpoints:
    GET  /api/orders/events                      — server-sent order events (auth optional)
    GET  /api/orders                             — all orders
    POST /api/orders                             — place an order
    GET  /api/orders/available/list              — orders a driver can pick up
    GET  /api/orders/{order_id}                  — one order
    PUT  /api/orders/{order_id}/status           — set status
    POST /api/orders/{order_id}/assign           — caller takes the delivery
    POST /api/orders/{order_id}/accept-restaurant — restaurant confirms a pending order
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse

from config import settings
from deps import get_broadcaster, get_order_store
from domain.responses import ORDER_ERROR_RESPONSES, success_response
from middleware.auth import Caller, optional_caller, require_caller
from models import CreateOrderRequest, StatusUpdateRequest
from services import order_service
from services.event_broadcaster import EventBroadcaster, event_stream
from services.order_store import OrderStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"], responses=ORDER_ERROR_RESPONSES)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # disable nginx response buffering
}


# ════════════════════════════════════════════════════════════════════
# Event Stream
# ════════════════════════════════════════════════════════════════════


@router.get("/events")
async def order_events(
    request: Request,
    caller: Optional[Caller] = Depends(optional_caller),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    """Long-lived text/event-stream of order lifecycle events."""
    stream = event_stream(
        broadcaster,
        request.is_disconnected,
        caller_id=caller.id if caller else None,
        poll_seconds=settings.sse_disconnect_poll_seconds,
    )
    return StreamingResponse(stream, media_type="text/event-stream", headers=SSE_HEADERS)


# ════════════════════════════════════════════════════════════════════
# Orders
# ════════════════════════════════════════════════════════════════════


@router.get("")
async def list_orders(
    caller: Caller = Depends(require_caller),
    store: OrderStore = Depends(get_order_store),
):
    orders = await order_service.list_orders(store)
    return success_response(
        data=[o.to_payload() for o in orders],
        meta={"total": len(orders)},
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    caller: Caller = Depends(require_caller),
    store: OrderStore = Depends(get_order_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    order = await order_service.create_order(
        store,
        broadcaster,
        caller=caller,
        request=request,
    )
    return success_response(data=order.to_payload())


@router.get("/available/list")
async def list_available_orders(
    caller: Caller = Depends(require_caller),
    store: OrderStore = Depends(get_order_store),
):
    """Orders still waiting for a driver (pending / confirmed / preparing)."""
    orders = await order_service.list_available_orders(store)
    return success_response(
        data=[o.to_payload() for o in orders],
        meta={"total": len(orders)},
    )


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    caller: Caller = Depends(require_caller),
    store: OrderStore = Depends(get_order_store),
):
    order = await order_service.get_order(store, order_id)
    return success_response(data=order.to_payload())


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: str,
    request: StatusUpdateRequest,
    caller: Caller = Depends(require_caller),
    store: OrderStore = Depends(get_order_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    order = await order_service.update_order_status(
        store,
        broadcaster,
        caller=caller,
        order_id=order_id,
        status=request.status,
    )
    return success_response(data=order.to_payload())


@router.post("/{order_id}/assign")
async def assign_order(
    order_id: str,
    caller: Caller = Depends(require_caller),
    store: OrderStore = Depends(get_order_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    order = await order_service.assign_order(
        store,
        broadcaster,
        caller=caller,
        order_id=order_id,
    )
    return success_response(data=order.to_payload())


@router.post("/{order_id}/accept-restaurant")
async def accept_order(
    order_id: str,
    caller: Caller = Depends(require_caller),
    store: OrderStore = Depends(get_order_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    order = await order_service.accept_order(
        store,
        broadcaster,
        caller=caller,
        order_id=order_id,
    )
    return success_response(data=order.to_payload())
