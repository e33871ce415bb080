"""
FastAPI application factory.

* Builds the single ``WaitTimeEngine`` for the process during lifespan
  startup and restores its last session from Redis.
* Starts / stops the ride-event listener via lifespan events.
* Registers routes for the wait timer, payments, ride events and admin.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.middleware import limiter
from src.api.routes import admin, events, payments, wait_timer
from src.config import settings
from src.domain.wait_timer import WaitTimeEngine
from src.infrastructure.redis_client import close_redis, get_redis
from src.infrastructure.session_store import RedisSessionStore, SessionPersister
from src.workers import ride_events as _ride_events
from src.workers.ticker import AsyncioTicker

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


async def build_wait_timer() -> tuple[WaitTimeEngine, SessionPersister | None]:
    """Construct the engine and, if enabled, bring back the persisted session."""
    persister = None
    snapshot = None
    if settings.persist_session:
        store = RedisSessionStore(await get_redis(), settings.session_store_key)
        persister = SessionPersister(store)
        try:
            snapshot = await store.load()
        except Exception:
            logger.exception("Could not load persisted wait session")

    timer = WaitTimeEngine(
        AsyncioTicker(settings.tick_interval_seconds),
        pickup_free_seconds=settings.pickup_free_wait_seconds,
        stop_free_seconds=settings.stop_free_wait_seconds,
        on_change=persister,
    )
    if snapshot:
        timer.restore(snapshot)
    return timer, persister


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the wait timer and event listener on startup; stop both on shutdown."""
    timer, persister = await build_wait_timer()
    app.state.wait_timer = timer
    if settings.ride_events_enabled:
        await _ride_events.start_ride_event_listener(timer)
    yield
    if settings.ride_events_enabled:
        await _ride_events.stop_ride_event_listener()
    timer.shutdown()
    if persister is not None:
        await persister.drain()
    await close_redis()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Driver Wait-Time API",
        description=(
            "Tracks free and billable wait time for the driver's current "
            "ride, applies dispatch ride events, and settles wait-time "
            "charges and tips when a ride is paid."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Routers
    app.include_router(wait_timer.router, prefix="/api/v1")
    app.include_router(payments.router, prefix="/api/v1")
    app.include_router(events.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
