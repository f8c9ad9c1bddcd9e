"""
Shared FastAPI dependencies.

Centralizes the process-wide order store and event broadcaster so routers
import them from a single place; tests swap them via app.dependency_overrides.
"""

from __future__ import annotations

import logging

from config import settings
from services.event_broadcaster import EventBroadcaster
from services.order_store import InMemoryOrderStore, OrderStore

logger = logging.getLogger(__name__)

_store: OrderStore | None = None
_broadcaster: EventBroadcaster | None = None


def build_order_store() -> OrderStore:
    """Create the store selected by ORDER_STORE_BACKEND."""
    options = {
        "id_prefix": settings.order_id_prefix,
        "id_seed": settings.order_id_seed,
        "payout_rate": settings.payout_rate,
        "payout_minimum": settings.payout_minimum,
        "strict_transitions": settings.strict_status_transitions,
    }
    if settings.uses_sql_store:
        from database import async_session
        from services.sql_order_store import SqlOrderStore
        return SqlOrderStore(async_session, **options)
    return InMemoryOrderStore(**options)


def get_order_store() -> OrderStore:
    global _store
    if _store is None:
        _store = build_order_store()
        logger.info(f"Order store initialized (backend={_store.backend})")
    return _store


def get_broadcaster() -> EventBroadcaster:
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = EventBroadcaster(
            keepalive_seconds=settings.sse_keepalive_seconds,
            queue_size=settings.sse_queue_size,
        )
    return _broadcaster
