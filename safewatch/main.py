"""
SafeWatch host — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups, and
manages the dashboard lifecycle: the shared httpx client and the incident
polling loop are opened on startup and torn down on shutdown.

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from safewatch.core.config import settings
from safewatch.core.rate_limit import limiter
from safewatch.routes.dashboard import router as dashboard_router
from safewatch.routes.health import VERSION
from safewatch.routes.health import router as health_router
from safewatch.routes.incidents import router as incidents_router
from safewatch.routes.location import router as location_router
from safewatch.routes.panic import router as panic_router
from safewatch.services.dashboard import close_dashboard, open_dashboard

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Code before `yield` runs on startup; code after runs on shutdown.
    Polling and any active location session are stopped on every exit path.
    """
    logger.info("Starting SafeWatch host (env: %s)", settings.environment)
    await open_dashboard()
    try:
        yield
    finally:
        logger.info("Shutting down SafeWatch host")
        await close_dashboard()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="SafeWatch",
    description=(
        "Community safety dashboard host: incident feed, protection mode, "
        "risk lookup and report submission."
    ),
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(dashboard_router)
app.include_router(incidents_router)
app.include_router(location_router)
app.include_router(panic_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "SafeWatch",
        "version": VERSION,
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
    }
