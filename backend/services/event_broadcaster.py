"""
Order Event Broadcaster — server-sent event fan-out.

Each connected client owns a Subscription: a bounded frame queue plus a
keep-alive task that pushes a comment frame every `keepalive_seconds` so
proxies do not close idle streams.

Delivery is best-effort and fire-and-forget:
    - publish() never raises to the caller
    - one failing subscriber never stops delivery to the others
    - a subscriber whose queue is full (stalled client) is closed and dropped

Frame format (text/event-stream):
    event: <type>\\ndata: <json>\\n\\n      — lifecycle event
    : <comment>\\n\\n                        — connect / keep-alive
"""
import asyncio
import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable, Optional

from services.broadcaster_metrics import BroadcasterMetrics

logger = logging.getLogger(__name__)

CONNECTED_FRAME = ": connected\n\n"


def format_event(event_type: str, payload: dict) -> str:
    return f"event: {event_type}\ndata: {json.dumps(payload)}\n\n"


def format_comment(text: str) -> str:
    return f": {text}\n\n"


class SubscriptionClosed(Exception):
    """Raised when delivering to a subscription that has been closed."""
    pass


# ════════════════════════════════════════════════════════════════════
# Subscription
# ════════════════════════════════════════════════════════════════════


class Subscription:
    """One open event stream. Handle returned by EventBroadcaster.subscribe()."""

    def __init__(self, caller_id: Optional[str] = None, queue_size: int = 100):
        self.id = uuid.uuid4().hex
        self.caller_id = caller_id
        self.connected_at = datetime.now(timezone.utc)
        self.closed = False
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=queue_size)
        self._keepalive_task: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        return f"Subscription(id={self.id[:8]}, caller={self.caller_id}, closed={self.closed})"

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def deliver(self, frame: str) -> None:
        """Queue a frame. Raises SubscriptionClosed or asyncio.QueueFull."""
        if self.closed:
            raise SubscriptionClosed(self.id)
        self._queue.put_nowait(frame)

    async def next_frame(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Wait for the next frame.

        Returns None on timeout, and once the subscription is closed.
        """
        if self.closed:
            return None
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def close(self) -> None:
        """Stop the keep-alive task and wake any reader. Idempotent."""
        if self.closed:
            return
        self.closed = True
        if self._keepalive_task is not None and not self._keepalive_task.done():
            self._keepalive_task.cancel()
        # Pending frames are discarded; the None sentinel releases a blocked reader
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)


# ════════════════════════════════════════════════════════════════════
# Broadcaster
# ════════════════════════════════════════════════════════════════════


class EventBroadcaster:
    """Registry of open subscriptions with typed fan-out."""

    def __init__(self, keepalive_seconds: float = 25.0, queue_size: int = 100):
        self.keepalive_seconds = keepalive_seconds
        self.queue_size = queue_size
        self.metrics = BroadcasterMetrics()
        self._subscriptions: dict[str, Subscription] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def is_subscribed(self, subscription: Subscription) -> bool:
        return subscription.id in self._subscriptions

    def subscribe(self, caller_id: Optional[str] = None) -> Subscription:
        """
        Register a new listener and start its keep-alive task.

        Must be called from inside the running event loop.
        """
        subscription = Subscription(caller_id=caller_id, queue_size=self.queue_size)
        self._subscriptions[subscription.id] = subscription
        if self.keepalive_seconds > 0:
            subscription._keepalive_task = asyncio.create_task(
                self._keepalive(subscription),
                name=f"sse-keepalive-{subscription.id[:8]}",
            )
        self.metrics.record_subscribe()
        logger.info(
            f"Event stream opened: {subscription.id[:8]} "
            f"(caller={caller_id or 'anonymous'}, subscribers={self.subscriber_count})"
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a listener and cancel its keep-alive. Returns False if already removed."""
        removed = self._subscriptions.pop(subscription.id, None)
        subscription.close()
        if removed is None:
            return False
        self.metrics.record_unsubscribe()
        logger.info(
            f"Event stream closed: {subscription.id[:8]} (subscribers={self.subscriber_count})"
        )
        return True

    def publish(self, event_type: str, payload: dict) -> int:
        """
        Deliver one event to every current subscriber.

        Returns the number of successful deliveries. Never raises.
        """
        try:
            frame = format_event(event_type, payload)
        except (TypeError, ValueError) as e:
            logger.error(f"Could not encode {event_type} event: {e}")
            return 0

        delivered = 0
        failed = 0
        for subscription in list(self._subscriptions.values()):
            try:
                subscription.deliver(frame)
                delivered += 1
            except asyncio.QueueFull:
                failed += 1
                self._drop(subscription, reason="event queue full")
            except Exception as e:
                failed += 1
                logger.debug(f"Delivery to {subscription.id[:8]} failed: {e}")

        self.metrics.record_publish(event_type, delivered, failed)
        logger.debug(f"Published {event_type} to {delivered} subscriber(s) ({failed} failed)")
        return delivered

    def close(self) -> None:
        """Close every subscription (application shutdown)."""
        for subscription in list(self._subscriptions.values()):
            self.unsubscribe(subscription)

    def status(self) -> dict:
        """Broadcaster status for the /events/status endpoint."""
        return {
            "subscribers": self.subscriber_count,
            "keepaliveSeconds": self.keepalive_seconds,
            "queueSize": self.queue_size,
            "connections": [
                {
                    "id": s.id[:8],
                    "caller": s.caller_id,
                    "connectedAt": s.connected_at.isoformat(),
                    "pending": s.pending,
                }
                for s in self._subscriptions.values()
            ],
            "metrics": self.metrics.to_dict(),
        }

    # ── Internals ───────────────────────────────────────────────────

    def _drop(self, subscription: Subscription, reason: str) -> None:
        logger.warning(f"Dropping event stream {subscription.id[:8]}: {reason}")
        self.metrics.record_dropped()
        self.unsubscribe(subscription)

    async def _keepalive(self, subscription: Subscription) -> None:
        while not subscription.closed:
            await asyncio.sleep(self.keepalive_seconds)
            try:
                subscription.deliver(format_comment(f"ping {int(time.time() * 1000)}"))
                self.metrics.record_keepalive()
            except asyncio.QueueFull:
                self._drop(subscription, reason="keep-alive queue full")
                return
            except SubscriptionClosed:
                return


# ════════════════════════════════════════════════════════════════════
# Stream
# ════════════════════════════════════════════════════════════════════


async def event_stream(
    broadcaster: EventBroadcaster,
    is_disconnected: Callable[[], Awaitable[bool]],
    *,
    caller_id: Optional[str] = None,
    poll_seconds: float = 1.0,
) -> AsyncIterator[str]:
    """
    Body of a text/event-stream response.

    Subscribes on first iteration, yields the connect comment, then queued
    frames. Between frames the client is polled for disconnect. The
    subscription is always released when the generator ends, whether by
    disconnect, cancellation or close.
    """
    subscription = broadcaster.subscribe(caller_id=caller_id)
    try:
        yield CONNECTED_FRAME
        while not subscription.closed:
            frame = await subscription.next_frame(timeout=poll_seconds)
            if frame is not None:
                yield frame
                continue
            if await is_disconnected():
                break
    finally:
        broadcaster.unsubscribe(subscription)
