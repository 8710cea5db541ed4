"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vantrack.api import alerts, diagnostics, locations, routes, trips, ws
from vantrack.config import settings
from vantrack.core.broadcaster import FleetBroadcastStore
from vantrack.core.fleet_repository import FleetRepository
from vantrack.core.scheduler import create_scheduler
from vantrack.core.session_manager import SessionManager
from vantrack.db.session import async_session, engine
from vantrack.models.base import Base
from vantrack.models import tables  # noqa: F401

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    # Create tables if they don't exist
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Initialize services
    store = FleetBroadcastStore()
    await store.connect()
    repository = FleetRepository(async_session)

    scheduler = create_scheduler()
    scheduler.start()
    manager = SessionManager(repository, store, scheduler)

    # Wire up API modules
    ws.store = store
    ws.manager = manager
    trips.manager = manager
    diagnostics.manager = manager
    locations.store = store
    alerts.store = store
    routes.repository = repository

    logger.info(
        "VanTrack started - publishing every %ss, stoppage check every %ds",
        settings.publish_interval_seconds, settings.watchdog_interval_seconds,
    )

    yield

    # Shutdown: every active vehicle gets its offline record
    await manager.shutdown()
    scheduler.shutdown(wait=False)
    await store.close()
    await engine.dispose()
    logger.info("VanTrack shut down")


app = FastAPI(
    title="VanTrack Live Tracking",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes.router)
app.include_router(trips.router)
app.include_router(locations.router)
app.include_router(alerts.router)
app.include_router(diagnostics.router)
app.include_router(ws.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
