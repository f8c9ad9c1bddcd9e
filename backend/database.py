"""
Database engine and session management for the SQL order store.

Uses SQLAlchemy async engine with aiosqlite for non-blocking DB operations
inside FastAPI. Only touched when ORDER_STORE_BACKEND=sql; tables are
auto-created on server startup via init_db().
"""
import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


# ── Engine ──────────────────────────────────────────────────────────

def async_database_url(raw_url: str) -> str:
    """Convert sqlite:///... → sqlite+aiosqlite:///... for the async driver."""
    if raw_url.startswith("sqlite:///"):
        return raw_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return raw_url


engine = create_async_engine(
    async_database_url(settings.database_url),
    echo=False,
    future=True,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# ── Helpers ─────────────────────────────────────────────────────────

async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create all tables. Called once on server startup."""
    # Import models so Base.metadata knows about them
    import db_models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created (or already exist)")


async def dispose_db() -> None:
    """Release pooled connections on shutdown."""
    await engine.dispose()
