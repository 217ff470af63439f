"""
app.py — FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires all services, registers routers, and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from roombooking.controllers.admin_controller import router as admin_router
from roombooking.controllers.booking_controller import router as booking_router
from roombooking.controllers.series_controller import router as series_router
from roombooking.domain.constraints import validate_policy_config
from roombooking.domain.validation import BookingValidator
from roombooking.repository.data_repository import DataRepository
from roombooking.services.availability_service import AvailabilityService
from roombooking.services.booking_service import BookingService
from roombooking.services.room_service import RoomService
from roombooking.services.series_service import SeriesService
from roombooking.utils.clock import Clock, SystemClock
from roombooking.utils.config import Settings, get_settings
from roombooking.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Instantiates all services with explicit dependency injection via app.state.
    The validator and clock are shared so every booking surface applies the
    same rules against the same notion of "now".
    """
    settings = settings or get_settings()
    validate_policy_config(settings)
    clock = clock or SystemClock()

    # --- Repository (single SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services (business logic, no direct DB access) ---
    validator = BookingValidator.from_settings(settings)
    booking_service = BookingService(
        repository=repository,
        settings=settings,
        clock=clock,
        validator=validator,
    )
    series_service = SeriesService(
        repository=repository,
        settings=settings,
        clock=clock,
        validator=validator,
    )
    availability_service = AvailabilityService(
        repository=repository,
        settings=settings,
        clock=clock,
    )
    room_service = RoomService(repository=repository, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(booking_router)
    app.include_router(series_router)
    app.include_router(admin_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.settings = settings
    app.state.repository = repository
    app.state.booking_service = booking_service
    app.state.series_service = series_service
    app.state.availability_service = availability_service
    app.state.room_service = room_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Schema (tables, indexes, overlap trigger) must exist before seeding.
    """
    repository: DataRepository = app.state.repository
    settings: Settings = app.state.settings

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_rooms:
        logger.info("Startup: seeding demo rooms (skipped if Rooms table not empty)")
        repository.seed_demo_rooms_if_empty()

    logger.info("Startup complete — system ready")


# Module-level app object for uvicorn
app = create_app()
