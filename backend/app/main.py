"""
FastAPI application entry point.

Run with:
    uvicorn backend.app.main:app --reload --port 8000

Or from the project root:
    python -m uvicorn backend.app.main:app --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ── Core infrastructure ──
from backend.app.core.config import settings
from backend.app.core.logging_config import setup_logging, get_logger
from backend.app.core.errors import register_error_handlers
from backend.app.core.middleware import RequestLoggingMiddleware
from backend.app.core.health import HealthStatus, run_health_check
from backend.app.core.store import get_store

# ── SOS wiring ──
from backend.app.sos.channels.launchers import get_launcher
from backend.app.sos.haptics import LoggingHaptics
from backend.app.sos.sessions import SessionRegistry
from backend.app.sos.timers import LoopScheduler

# ── API routers ──
from backend.app.api.v1.contacts import router as contacts_router
from backend.app.api.v1.sos import router as sos_router

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared store and session registry on the running loop."""
    logger.info(
        "Starting %s v%s [%s] store=%s channels=%s location=%s",
        settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
        settings.STORE_BACKEND, settings.CHANNEL_PROVIDER, settings.LOCATION_SOURCE,
    )
    store = get_store()
    app.state.store = store
    app.state.registry = SessionRegistry(
        store,
        LoopScheduler(),
        get_launcher(),
        haptics=LoggingHaptics(),
    )
    yield
    app.state.registry.close()
    await store.close()
    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Hold-to-trigger personal safety alerts. Captures a single "
        "location fix, records the event locally and fans the alert out "
        "to up to five trusted contacts via staggered call and "
        "messaging deep links."
    ),
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware stack (order matters — outermost first) ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS if not settings.CORS_ALLOW_ALL else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_error_handlers(app)

app.include_router(contacts_router)
app.include_router(sos_router)


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
    """Deep health probe."""
    report = await run_health_check(app.state.store)
    return report.to_dict()


@app.get("/health/live", tags=["health"])
async def liveness():
    return {"status": "alive"}


@app.get("/health/ready", tags=["health"])
async def readiness():
    report = await run_health_check(app.state.store)
    if report.status == HealthStatus.UNHEALTHY:
        return JSONResponse(status_code=503, content=report.to_dict())
    return report.to_dict()
