"""
SQLAlchemy ORM models for the SQL order store.

Tables:
    orders          — one row per order; creation-time fields live in a JSON
                      document, mutable lifecycle fields in their own columns
    order_counters  — next numeric suffix per id prefix (ids are never reused)
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index

from database import Base
from models import Order

# Lifecycle fields kept out of the immutable document
_MUTABLE_KEYS = ("status", "assignedDriver")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderRecord(Base):
    """Persisted order. `seq` gives insertion order for listings."""
    __tablename__ = "orders"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(40), unique=True, nullable=False, index=True)
    customer_id = Column(String(100), nullable=True, index=True)
    status = Column(String(30), nullable=False, default="pending", index=True)
    assigned_driver_id = Column(String(100), nullable=True, index=True)
    assigned_driver = Column(JSON, nullable=True)  # {"id", "name"}
    document = Column(JSON, nullable=False)  # camelCase payload minus lifecycle fields
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        # For the available-orders listing: filter by status, keep insertion order
        Index("ix_orders_status_seq", "status", "seq"),
    )

    @classmethod
    def from_order(cls, order: Order) -> "OrderRecord":
        payload = order.to_payload()
        document = {k: v for k, v in payload.items() if k not in _MUTABLE_KEYS}
        return cls(
            id=order.id,
            customer_id=order.customer_id,
            status=order.status.value,
            document=document,
        )

    def to_order(self) -> Order:
        return Order.model_validate(
            {**self.document, "status": self.status, "assignedDriver": self.assigned_driver}
        )

    def apply(self, order: Order) -> None:
        """Copy lifecycle fields from a mutated snapshot back onto the row."""
        self.status = order.status.value
        if order.assigned_driver is not None:
            self.assigned_driver = order.assigned_driver.model_dump(mode="json")
            self.assigned_driver_id = order.assigned_driver.id
        self.updated_at = _utcnow()


class OrderCounter(Base):
    """Single row per id prefix holding the next numeric suffix."""
    __tablename__ = "order_counters"

    prefix = Column(String(20), primary_key=True)
    next_value = Column(Integer, nullable=False)
