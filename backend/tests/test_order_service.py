"""
Tests for the order service layer.

Tests: one lifecycle event per successful mutation, none on failure,
caller identity flowing into orders and driver assignment.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import json

import pytest

from domain.errors import InvalidStateError, InvalidTransitionError, NotFoundError
from middleware.auth import Caller
from models import CreateOrderRequest
from services import order_service


CUSTOMER = Caller(id="cust-42", name="Asha Rao", phone="+91 90000 00000")
DRIVER = Caller(id="drv-7", name="Ravi", role="delivery")


def _drain(subscription) -> list[tuple[str, dict]]:
    events = []
    while subscription.pending:
        frame = subscription._queue.get_nowait()
        event_line, data_line = frame.rstrip("\n").split("\n")
        events.append((event_line[len("event: "):], json.loads(data_line[len("data: "):])))
    return events


@pytest.fixture
def request_body(order_payload):
    return CreateOrderRequest.model_validate(order_payload)


class TestCreateOrder:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_publishes_order_created(self, store, broadcaster, request_body):
        sub = broadcaster.subscribe()
        order = await order_service.create_order(store, broadcaster, caller=CUSTOMER, request=request_body)

        events = _drain(sub)
        assert [e[0] for e in events] == ["order_created"]
        assert events[0][1]["id"] == order.id
        assert events[0][1]["status"] == "pending"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_caller_identity_fills_customer(self, store, broadcaster, request_body):
        order = await order_service.create_order(store, broadcaster, caller=CUSTOMER, request=request_body)
        assert order.customer_id == "cust-42"
        assert order.customer_name == "Asha Rao"
        assert order.customer_phone == "+91 90000 00000"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_request_fields_win_over_caller(self, store, broadcaster, order_payload):
        body = CreateOrderRequest.model_validate({**order_payload, "customerName": "Gift for Mom"})
        order = await order_service.create_order(store, broadcaster, caller=CUSTOMER, request=body)
        assert order.customer_name == "Gift for Mom"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_payload_fields(self, store, broadcaster, request_body):
        order = await order_service.create_order(store, broadcaster, caller=CUSTOMER, request=request_body)
        payload = order.to_payload()

        assert payload["payoutAmount"] == 70
        assert payload["dropAddress"] == "12 MG Road, Pune"
        assert payload["paymentType"] == "COD"
        assert payload["restaurantName"] == "Spice Route"
        assert payload["deliveryInstructions"] == "Ring twice"
        assert payload["items"][0]["id"] == "m-1"
        assert payload["assignedDriver"] is None


class TestMutations:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_each_mutation_emits_its_event(self, store, broadcaster, request_body):
        order = await order_service.create_order(store, broadcaster, caller=CUSTOMER, request=request_body)
        sub = broadcaster.subscribe()

        await order_service.accept_order(store, broadcaster, caller=CUSTOMER, order_id=order.id)
        await order_service.update_order_status(
            store, broadcaster, caller=CUSTOMER, order_id=order.id, status="preparing"
        )
        await order_service.assign_order(store, broadcaster, caller=DRIVER, order_id=order.id)

        events = _drain(sub)
        assert [e[0] for e in events] == ["order_confirmed", "order_updated", "order_assigned"]
        assert [e[1]["status"] for e in events] == ["confirmed", "preparing", "out_for_delivery"]
        assert events[-1][1]["assignedDriver"] == {"id": "drv-7", "name": "Ravi"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_mutations_emit_nothing(self, store, broadcaster, request_body):
        order = await order_service.create_order(store, broadcaster, caller=CUSTOMER, request=request_body)
        sub = broadcaster.subscribe()

        with pytest.raises(InvalidTransitionError):
            await order_service.update_order_status(
                store, broadcaster, caller=CUSTOMER, order_id=order.id, status="shipped"
            )
        with pytest.raises(NotFoundError):
            await order_service.assign_order(store, broadcaster, caller=DRIVER, order_id="ORD-1")

        await order_service.assign_order(store, broadcaster, caller=DRIVER, order_id=order.id)
        with pytest.raises(InvalidStateError):
            await order_service.assign_order(store, broadcaster, caller=DRIVER, order_id=order.id)

        assert [e[0] for e in _drain(sub)] == ["order_assigned"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unnamed_driver_gets_default_name(self, store, broadcaster, request_body):
        order = await order_service.create_order(store, broadcaster, caller=CUSTOMER, request=request_body)
        assigned = await order_service.assign_order(
            store, broadcaster, caller=Caller(id="drv-9"), order_id=order.id
        )
        assert assigned.assigned_driver.id == "drv-9"
        assert assigned.assigned_driver.name == "Driver"


class TestReads:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_and_get(self, store, broadcaster, request_body):
        a = await order_service.create_order(store, broadcaster, caller=CUSTOMER, request=request_body)
        b = await order_service.create_order(store, broadcaster, caller=CUSTOMER, request=request_body)
        await order_service.update_order_status(
            store, broadcaster, caller=CUSTOMER, order_id=b.id, status="cancelled"
        )

        assert [o.id for o in await order_service.list_orders(store)] == [a.id, b.id]
        assert [o.id for o in await order_service.list_available_orders(store)] == [a.id]
        assert (await order_service.get_order(store, b.id)).status.value == "cancelled"
