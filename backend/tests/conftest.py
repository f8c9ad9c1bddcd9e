"""
Pytest configuration and shared fixtures for the orders API tests.

Provides fresh in-memory and SQL order stores, an event broadcaster, an httpx
client wired to the FastAPI app through dependency overrides, and caller
headers for the auth boundary.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
import pytest_asyncio
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings

# ── Test Configuration ───────────────────────────────────────────────
# Set test-only values for settings that would normally come from .env
if not settings.jwt_secret:
    settings.jwt_secret = "test-jwt-secret-for-pytest-only"


# ── Store / Broadcaster Fixtures ─────────────────────────────────────


@pytest.fixture
def store():
    """Fresh in-memory order store with production defaults."""
    from services.order_store import InMemoryOrderStore
    return InMemoryOrderStore()


@pytest.fixture
def legacy_store():
    """In-memory store with status transitions unchecked (legacy behaviour)."""
    from services.order_store import InMemoryOrderStore
    return InMemoryOrderStore(strict_transitions=False)


@pytest.fixture
def broadcaster():
    """Broadcaster without keep-alive tasks (no background timers in API tests)."""
    from services.event_broadcaster import EventBroadcaster
    return EventBroadcaster(keepalive_seconds=0)


@pytest_asyncio.fixture(scope="function")
async def sql_store() -> AsyncGenerator:
    """
    SQL order store on an in-memory SQLite database, one per test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    from database import init_db
    from services.sql_order_store import SqlOrderStore

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)

    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    yield SqlOrderStore(session_maker)

    await engine.dispose()


# ── HTTP Client ──────────────────────────────────────────────────────


@pytest_asyncio.fixture(scope="function")
async def client(store, broadcaster) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx client against the FastAPI app.

    Overrides the store and broadcaster dependencies with the per-test fixtures.
    """
    from main import app
    from deps import get_broadcaster, get_order_store

    app.dependency_overrides[get_order_store] = lambda: store
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest.fixture
def customer_headers() -> dict:
    """Legacy header identity of a storefront customer."""
    return {"X-User-Id": "cust-42", "X-User-Name": "Asha Rao"}


@pytest.fixture
def driver_headers() -> dict:
    """Bearer token identity of a delivery partner."""
    from middleware.auth import issue_access_token
    token = issue_access_token(user_id="drv-7", name="Ravi", role="delivery")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def order_payload() -> dict:
    """A valid checkout body as the storefront sends it."""
    return {
        "items": [
            {"id": "m-1", "name": "Paneer Tikka", "price": 250, "quantity": 2},
            {"id": "m-2", "name": "Butter Naan", "price": 50, "quantity": 4},
        ],
        "deliveryAddress": {"street": "12 MG Road", "city": "Pune"},
        "paymentMethod": "cash",
        "deliveryInstructions": "Ring twice",
        "restaurantId": "rest-9",
        "restaurantName": "Spice Route",
    }


@pytest.fixture
def make_draft():
    """Factory for OrderDraft objects with overridable fields."""
    from models import OrderDraft

    def _make(**overrides):
        data = {
            "items": [{"name": "Masala Dosa", "price": 100, "quantity": 2}],
            "delivery_address": "221B Baker Street",
            "payment_method": "upi",
        }
        data.update(overrides)
        return OrderDraft.model_validate(data)

    return _make
