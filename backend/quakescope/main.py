"""
FastAPI application entry point.

Run with:
    uvicorn backend.quakescope.main:app --reload --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ── Core infrastructure ──
from backend.quakescope.core.config import settings
from backend.quakescope.core.errors import register_error_handlers
from backend.quakescope.core.health import run_health_check
from backend.quakescope.core.logging_config import get_logger, setup_logging
from backend.quakescope.core.middleware import RequestLoggingMiddleware

# ── Domain ──
from backend.quakescope.seismic.orchestrator import ChunkedFetchOrchestrator
from backend.quakescope.seismic.session import QuakeSession
from backend.quakescope.seismic.usgs_client import USGSClient

# ── API routers ──
from backend.quakescope.api.v1.earthquakes import router as earthquake_router

setup_logging()
logger = get_logger(__name__)


def build_session() -> QuakeSession:
    """Wire client → orchestrator → session from settings."""
    client = USGSClient(
        feed_base=settings.USGS_FEED_BASE,
        query_url=settings.USGS_QUERY_URL,
        timeout=settings.USGS_TIMEOUT_SECONDS,
    )
    orchestrator = ChunkedFetchOrchestrator(
        client,
        pacing_seconds=settings.CHUNK_PACING_SECONDS,
        range_limit=settings.RANGE_QUERY_LIMIT,
    )
    return QuakeSession(
        orchestrator,
        client,
        regional_radius_km=settings.REGIONAL_RADIUS_KM,
        regional_limit=settings.REGIONAL_LIMIT,
        nearest_limit=settings.NEAREST_LIMIT,
    )


def create_app(session: Optional[QuakeSession] = None) -> FastAPI:
    """Build the application; tests pass a session wired to a fake client."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting %s v%s [%s]",
            settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
        )
        app.state.session = session or build_session()
        yield
        close = getattr(app.state.session.client, "close", None)
        if close is not None:
            await close()
        logger.info("Shutting down %s", settings.APP_NAME)

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "USGS earthquake working sets: chunked date-range fetching, "
            "magnitude/depth/count filtering, nearest-neighbour ranking "
            "and activity histograms."
        ),
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # ── Middleware stack (outermost first) ──
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS if not settings.CORS_ALLOW_ALL else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_error_handlers(app)
    app.include_router(earthquake_router)

    @app.get("/", tags=["root"])
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "docs": "/docs",
        }

    @app.get("/health", tags=["health"])
    async def health_check():
        report = await run_health_check(app.state.session)
        if report.status.value == "unhealthy":
            return JSONResponse(status_code=503, content=report.to_dict())
        return report.to_dict()

    @app.get("/health/live", tags=["health"])
    async def liveness():
        return {"status": "alive"}

    return app


app = create_app()
