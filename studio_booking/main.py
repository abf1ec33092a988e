# studio_booking/main.py
"""
FastAPI application for the studio booking engine.

    uvicorn studio_booking.main:app
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from . import models  # noqa: F401  registers tables on Base.metadata
from .core.config import is_running_tests, settings
from .core.logging_config import configure_logging
from .database import Base, engine
from .routes import metrics as metrics_routes
from .routes.v1 import bookings as bookings_v1, classes as classes_v1, waitlist as waitlist_v1

configure_logging()
logger = logging.getLogger(__name__)

API_TITLE = "Studio Booking API"
API_VERSION = "1.0.0"


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{API_TITLE} starting up...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Studio timezone: {settings.studio_timezone}")
    logger.info(f"Class lock backend: {settings.class_lock_backend}")

    if settings.is_sqlite and not is_running_tests():
        # Local development database; production schemas are migrated separately.
        Base.metadata.create_all(bind=engine)

    yield

    logger.info(f"{API_TITLE} shutting down...")


app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(waitlist_v1.router, prefix="/waitlist")
api_v1.include_router(classes_v1.router, prefix="/classes")

app.include_router(api_v1)
app.include_router(metrics_routes.router)


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "environment": settings.environment}
