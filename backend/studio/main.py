# backend/studio/main.py
"""
FastAPI application for the studio booking engine.

Mounts the v1 routers under /api/v1, the health and Prometheus endpoints at
the root, and problem+json error handlers.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.constants import API_V1_PREFIX, BRAND_NAME
from .database import init_db
from .errors import register_error_handlers
from .routes import health
from .routes.v1 import availability as availability_v1
from .routes.v1 import bookings as bookings_v1
from .routes.v1 import packages as packages_v1
from .routes.v1 import teachers as teachers_v1

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: create tables for local SQLite setups."""
    logger.info(f"{BRAND_NAME} API starting up (environment={settings.environment})")
    if settings.is_sqlite:
        init_db()
    yield
    logger.info(f"{BRAND_NAME} API shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        title=f"{BRAND_NAME} API",
        description="Scheduling and session-accounting engine for studio bookings",
        version="1.0.0",
        lifespan=app_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(bookings_v1.router, prefix=f"{API_V1_PREFIX}/bookings")
    app.include_router(availability_v1.router, prefix=f"{API_V1_PREFIX}/availability")
    app.include_router(packages_v1.router, prefix=f"{API_V1_PREFIX}/packages")
    app.include_router(teachers_v1.router, prefix=f"{API_V1_PREFIX}/teachers")
    app.include_router(health.router, prefix=API_V1_PREFIX, include_in_schema=False)

    return app


app = create_app()
