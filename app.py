"""
app.py — FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the catalog repository and the allocation engine, registers
routers, and provisions the engine before the first request.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.allocation_controller import router as allocation_router
from backend.controllers.catalog_controller import router as catalog_router
from backend.repository.data_repository import DataRepository
from backend.services.allocation_engine import AllocationEngine, validate_settings
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    The engine is attached to app.state during startup; controllers resolve
    it through backend.controllers.dependencies.
    """
    settings = settings or get_settings()

    # --- Repository (SQLite provisioning catalog) ---
    repository = DataRepository(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Provision the engine before accepting requests."""
        _startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(allocation_router)
    app.include_router(catalog_router)

    app.state.settings = settings
    app.state.repository = repository
    app.state.allocation_engine = None

    return app


def _startup(app: FastAPI, settings: Settings) -> None:
    """
    Startup sequence. Safe to re-run on server restarts.

    Order matters:
      1. Settings are validated before anything touches the database.
      2. Schema must exist before seeding.
      3. Zones, slots and staff must be seeded before the engine snapshots them.
    """
    repository: DataRepository = app.state.repository

    logger.info("Startup: validating engine settings")
    validate_settings(settings)

    logger.info("Startup: initializing catalog schema")
    repository.initialize_database()

    logger.info("Startup: seeding zones, pickup slots and staff (skipped if present)")
    repository.seed_reference_data()

    logger.info("Startup: provisioning allocation engine")
    app.state.allocation_engine = AllocationEngine.from_repository(repository, settings)

    logger.info("Startup complete — system ready")


# Module-level app object for uvicorn
app = create_app()
