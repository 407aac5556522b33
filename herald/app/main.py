"""
FastAPI application entry point.

Run with:
    uvicorn herald.app.main:app --reload --port 8000
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

# ── Core infrastructure ──
from herald.app.core.config import settings
from herald.app.core.logging_config import setup_logging
from herald.app.core.errors import register_error_handlers

# ── API routers ──
from herald.app.api.v1.notify import router as notify_router

# ── Initialise logging ──
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown events."""
    logger.info(
        "Starting %s v%s [%s]",
        settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
    )
    yield
    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Multi-channel notification dispatch: Bark / Barker push and SMTP "
        "email behind one send contract, with per-channel retry under a "
        "deadline and sequential or parallel fan-out."
    ),
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

register_error_handlers(app)
app.include_router(notify_router)


@app.get("/", tags=["root"])
async def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
