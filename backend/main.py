"""
Food Ordering — Orders API (FastAPI Application)

Order registry, status lifecycle and live order events for the storefront,
restaurant and delivery apps.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from deps import get_broadcaster, get_order_store
from domain.responses import error_response
from routes import health, orders
from services.event_broadcaster import EventBroadcaster

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: validate settings, prepare the order store. Shutdown: close event streams."""
    settings.validate_production_settings()

    if settings.uses_sql_store:
        if settings.database_url.startswith("sqlite:///./data/"):
            os.makedirs("data", exist_ok=True)
        from database import init_db
        await init_db()
        logger.info("Database initialized")

    store = get_order_store()
    logger.info(f"Order store ready (backend={store.backend})")

    yield  # app runs here

    get_broadcaster().close()

    if settings.uses_sql_store:
        from database import dispose_db
        await dispose_db()

    logger.info("Shutting down")


# ── App Factory ─────────────────────────────────────────────────────

app = FastAPI(
    title="Food Ordering Orders API",
    description="Order registry, status lifecycle and server-sent order events",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routes ──────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(orders.router)


# ── Event Stream Status Endpoint ────────────────────────────────────

@app.get("/events/status", tags=["events"])
async def get_event_stream_status(broadcaster: EventBroadcaster = Depends(get_broadcaster)):
    """Current subscriber count and fan-out counters of the order event stream."""
    return broadcaster.status()


# ── Exception Handlers ──────────────────────────────────────────────


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Catch-all for unhandled exceptions.

    Never return raw exception details to clients.
    The full traceback is logged server-side for debugging.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_response("internal_server_error", "Internal server error"),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc: RequestValidationError):
    """Malformed request bodies get the same 400 field-error list as domain validation."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return JSONResponse(
        status_code=400,
        content=error_response("validation", "Request validation failed", {"errors": errors}),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc: StarletteHTTPException):
    """
    Standardize HTTPException responses for frontend consumers.

    Keeps the original HTTP status code, but wraps the payload.
    """
    # DomainError carries structured error info
    if hasattr(exc, "message") and hasattr(exc, "details"):
        error_code = exc.__class__.__name__.replace("Error", "").lower()
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(error_code, exc.message, exc.details),
            headers=getattr(exc, "headers", None),
        )

    # Regular HTTPException
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(
            "http_error",
            message,
            detail if not isinstance(detail, str) else None,
        ),
        headers=getattr(exc, "headers", None),
    )


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
