"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from fandango_explorer.api.errors import install_error_handlers
from fandango_explorer.api.routes import debug, extract, health, search, seatmap, sessions
from fandango_explorer.browser import SessionRegistry
from fandango_explorer.config import settings
from fandango_explorer.tasks.session_sweep import run_session_sweep

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: one registry per process, swept for idle sessions
    registry = SessionRegistry()
    app.state.registry = registry

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_session_sweep,
        trigger=IntervalTrigger(seconds=settings.session_sweep_interval),
        args=[registry],
        id="session_sweep",
        name="Close idle browser sessions",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started, sessions idle for {settings.session_idle_ttl}s are closed "
        f"every {settings.session_sweep_interval}s"
    )

    yield

    # Shutdown: stop sweeping, then close every browser
    scheduler.shutdown(wait=False)
    await registry.shutdown()
    logger.info("Scheduler and browser sessions shut down")


# Create FastAPI app
app = FastAPI(
    title="Fandango Explorer API",
    description="Showtime search and seat-map capture on Fandango",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# Include routers
app.include_router(health.router)
app.include_router(search.router, prefix="/api", tags=["search"])
app.include_router(seatmap.router, prefix="/api", tags=["seatmap"])
app.include_router(sessions.router, prefix="/api", tags=["sessions"])
app.include_router(extract.router, prefix="/api", tags=["extract"])
app.include_router(debug.router, prefix="/api", tags=["debug"])

if settings.serve_screenshots:
    settings.screenshot_dir.mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.screenshot_url_prefix,
        StaticFiles(directory=settings.screenshot_dir),
        name="screenshots",
    )
