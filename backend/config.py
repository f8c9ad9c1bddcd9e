"""
Configuration management for the orders service.

Loads settings from .env via pydantic-settings.

Notes:
    - ORDER_STORE_BACKEND selects the registry: "memory" (volatile, default)
      or "sql" (SQLAlchemy table, see database.py).
    - validate_production_settings() enforces strict CORS and a JWT secret
      in production.
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Order Store ─────────────────────────────────────────────────
    order_store_backend: str = "memory"  # "memory" | "sql"
    database_url: str = "sqlite:///./data/orders.db"

    # ── Order Identity ──────────────────────────────────────────────
    # Ids start above the demo fixtures shipped with the storefront.
    order_id_prefix: str = "ORD-"
    order_id_seed: int = 1010

    # ── Payout ──────────────────────────────────────────────────────
    payout_rate: float = 0.10
    payout_minimum: int = 30

    # ── Lifecycle ───────────────────────────────────────────────────
    # False restores the legacy behaviour where PUT /status accepts any
    # enum value regardless of the current status.
    strict_status_transitions: bool = True

    # ── Event Stream ────────────────────────────────────────────────
    sse_keepalive_seconds: float = 25.0
    sse_queue_size: int = 100
    sse_disconnect_poll_seconds: float = 1.0

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"

    # ── Auth (JWT) ──────────────────────────────────────────────────
    jwt_secret: str = ""
    jwt_issuer: str = "food-orders-api"
    jwt_access_ttl_minutes: int = 60

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def uses_sql_store(self) -> bool:
        return self.order_store_backend.lower() == "sql"

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup.
        """
        if self.order_store_backend.lower() not in ("memory", "sql"):
            raise ValueError(
                f"ORDER_STORE_BACKEND must be 'memory' or 'sql', got '{self.order_store_backend}'."
            )

        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if not self.jwt_secret:
                raise ValueError(
                    "JWT_SECRET must be set in production. "
                    "It is used to verify caller access tokens."
                )
            logger.info("Production settings validated")
        else:
            warnings = []
            if not self.uses_sql_store:
                warnings.append("ORDER_STORE_BACKEND=memory (orders are lost on restart)")
            if not self.strict_status_transitions:
                warnings.append("STRICT_STATUS_TRANSITIONS=false (any status may follow any other)")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            for w in warnings:
                logger.warning(f"⚠️  {w}")


# Global settings instance
settings = Settings()
