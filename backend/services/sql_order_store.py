"""
SQL-backed Order Store.

Same interface and rules as InMemoryOrderStore, backed by the `orders` table.
Each operation runs in one transaction; mutations lock the row with
SELECT ... FOR UPDATE (a no-op on SQLite, where writers are serialized by the
database) and are additionally serialized in-process by an asyncio.Lock.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db_models import OrderCounter, OrderRecord
from domain.constants import AVAILABLE_STATUSES
from domain.enums import OrderStatus
from domain.errors import NotFoundError
from models import Driver, Order, OrderDraft
from services.order_store import (
    OrderStore,
    build_order,
    check_acceptable,
    check_assignable,
    check_status_change,
    parse_status,
    validate_draft,
)

logger = logging.getLogger(__name__)


class SqlOrderStore(OrderStore):
    backend = "sql"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], **kwargs):
        super().__init__(**kwargs)
        self._session_factory = session_factory
        self._write_lock = asyncio.Lock()

    # ── Internals ───────────────────────────────────────────────────

    async def _next_id(self, db: AsyncSession) -> str:
        result = await db.execute(
            select(OrderCounter)
            .where(OrderCounter.prefix == self.id_prefix)
            .with_for_update()
        )
        counter = result.scalar_one_or_none()
        if counter is None:
            counter = OrderCounter(prefix=self.id_prefix, next_value=self.id_seed)
            db.add(counter)
        number = counter.next_value
        counter.next_value = number + 1
        return self.format_id(number)

    async def _load(self, db: AsyncSession, order_id: str, for_update: bool = False) -> OrderRecord:
        query = select(OrderRecord).where(OrderRecord.id == order_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError("Order", order_id)
        return record

    async def _mutate(self, order_id: str, apply: Callable[[Order], None]) -> Order:
        async with self._write_lock, self._session_factory() as db:
            async with db.begin():
                record = await self._load(db, order_id, for_update=True)
                order = record.to_order()
                apply(order)
                record.apply(order)
            return order

    # ── Interface ───────────────────────────────────────────────────

    async def create(self, draft: OrderDraft) -> Order:
        validate_draft(draft)
        async with self._write_lock, self._session_factory() as db:
            async with db.begin():
                order_id = await self._next_id(db)
                order = build_order(
                    draft,
                    order_id=order_id,
                    payout_rate=self.payout_rate,
                    payout_minimum=self.payout_minimum,
                )
                db.add(OrderRecord.from_order(order))
            return order

    async def get(self, order_id: str) -> Order:
        async with self._session_factory() as db:
            record = await self._load(db, order_id)
            return record.to_order()

    async def list(self) -> list[Order]:
        async with self._session_factory() as db:
            result = await db.execute(select(OrderRecord).order_by(OrderRecord.seq))
            return [r.to_order() for r in result.scalars().all()]

    async def list_available(self) -> list[Order]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(OrderRecord)
                .where(OrderRecord.status.in_([s.value for s in AVAILABLE_STATUSES]))
                .order_by(OrderRecord.seq)
            )
            return [r.to_order() for r in result.scalars().all()]

    async def set_status(self, order_id: str, new_status: str | OrderStatus) -> Order:
        def apply(order: Order) -> None:
            status = parse_status(new_status)
            check_status_change(order, status, strict=self.strict_transitions)
            order.status = status

        return await self._mutate(order_id, apply)

    async def assign(self, order_id: str, driver: Driver) -> Order:
        def apply(order: Order) -> None:
            check_assignable(order)
            order.status = OrderStatus.OUT_FOR_DELIVERY
            order.assigned_driver = driver.model_copy()

        return await self._mutate(order_id, apply)

    async def accept_by_restaurant(self, order_id: str) -> Order:
        def apply(order: Order) -> None:
            check_acceptable(order)
            order.status = OrderStatus.CONFIRMED

        return await self._mutate(order_id, apply)

    async def ping(self) -> bool:
        try:
            async with self._session_factory() as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Order store ping failed: {e}")
            return False
