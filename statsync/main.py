from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from statsync.api import health, integrations, sync
from statsync.config import ENCRYPTION_KEY, FRONTEND_ORIGIN, LOG_LEVEL, SYNC_ENGINE
from statsync.db import engine
from statsync.services.scheduler_service import SyncScheduler
from statsync.services.sync_engine import load_sync_engine

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="StatSync API")

# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Startup / shutdown hooks
# ---------------------------------------------------------------------------


@app.on_event("startup")
async def startup_event():
    """Build the sync scheduler from SYNC_ENGINE and start its jobs."""
    if not ENCRYPTION_KEY:
        logger.warning("ENCRYPTION_KEY not set - credential encryption will not be available")

    app.state.sync_scheduler = None
    if not SYNC_ENGINE:
        logger.warning("SYNC_ENGINE not set - scheduled provider syncs are disabled")
        return

    app.state.sync_scheduler = SyncScheduler(load_sync_engine(SYNC_ENGINE))
    await app.state.sync_scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Stop scheduling new syncs and release the database pool."""
    scheduler = getattr(app.state, "sync_scheduler", None)
    if scheduler is not None:
        await scheduler.stop()

    await engine.dispose()


# Include API routers
app.include_router(health.router)
app.include_router(integrations.router)
app.include_router(sync.router)
