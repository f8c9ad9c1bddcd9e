"""
Event broadcaster metrics for fan-out throughput and subscriber churn.

Simple in-memory counters; can be replaced with Prometheus later.
"""
import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class BroadcasterMetrics:
    """In-memory metrics for the order event broadcaster."""

    subscriptions_total: int = 0
    unsubscriptions_total: int = 0
    events_published_total: int = 0
    deliveries_total: int = 0
    delivery_failures_total: int = 0
    dropped_subscribers_total: int = 0
    keepalives_sent_total: int = 0
    last_event_type: str | None = None
    last_event_at: float | None = None
    started_at: float = field(default_factory=time.monotonic)
    # Rolling window: publish timestamps in the last 60 seconds
    _events_minute_window: list[float] = field(default_factory=list)
    _window_seconds: float = 60.0

    def record_subscribe(self) -> None:
        self.subscriptions_total += 1

    def record_unsubscribe(self) -> None:
        self.unsubscriptions_total += 1

    def record_publish(self, event_type: str, delivered: int, failed: int) -> None:
        self.events_published_total += 1
        self.deliveries_total += delivered
        self.delivery_failures_total += failed
        self.last_event_type = event_type
        now = time.monotonic()
        self.last_event_at = now
        self._events_minute_window.append(now)
        self._prune_window(now)

    def record_dropped(self) -> None:
        self.dropped_subscribers_total += 1

    def record_keepalive(self) -> None:
        self.keepalives_sent_total += 1

    def _prune_window(self, now: float) -> None:
        cutoff = now - self._window_seconds
        self._events_minute_window = [t for t in self._events_minute_window if t > cutoff]

    @property
    def events_last_minute(self) -> int:
        self._prune_window(time.monotonic())
        return len(self._events_minute_window)

    def to_dict(self) -> dict:
        last_event_age = None
        if self.last_event_at is not None:
            last_event_age = round(time.monotonic() - self.last_event_at, 1)
        return {
            "subscriptions_total": self.subscriptions_total,
            "unsubscriptions_total": self.unsubscriptions_total,
            "events_published_total": self.events_published_total,
            "deliveries_total": self.deliveries_total,
            "delivery_failures_total": self.delivery_failures_total,
            "dropped_subscribers_total": self.dropped_subscribers_total,
            "keepalives_sent_total": self.keepalives_sent_total,
            "events_last_minute": self.events_last_minute,
            "last_event_type": self.last_event_type,
            "last_event_age_seconds": last_event_age,
            "uptime_seconds": round(time.monotonic() - self.started_at, 1),
        }
