"""
Health check endpoint.
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from config import settings
from deps import get_broadcaster, get_order_store
from services.event_broadcaster import EventBroadcaster
from services.order_store import OrderStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(
    store: OrderStore = Depends(get_order_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    """Health check: verifies the order store backend is reachable."""
    store_ok = await store.ping()
    body = {
        "status": "healthy" if store_ok else "unhealthy",
        "environment": settings.environment,
        "order_store": store.backend,
        "order_store_connected": store_ok,
        "event_subscribers": broadcaster.subscriber_count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if not store_ok:
        logger.error(f"Health check failed: order store ({store.backend}) unreachable")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body
