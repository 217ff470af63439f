"""Runtime settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def parse_level_overrides(raw: Optional[str]) -> tuple[tuple[str, str], ...]:
    """Parse ``"roombooking.repository=WARNING,uvicorn=ERROR"`` into pairs."""
    if raw is None or not raw.strip():
        return ()
    overrides = []
    for item in raw.split(","):
        if not item.strip():
            continue
        name, separator, level = item.partition("=")
        if not separator or not name.strip() or not level.strip():
            raise ValueError(f"Invalid log level override: {item.strip()!r}")
        overrides.append((name.strip(), level.strip().upper()))
    return tuple(overrides)


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    database_path: Path
    log_level: str
    log_level_overrides: tuple[tuple[str, str], ...]
    day_start_hour: int
    day_end_hour: int
    slot_rounding_minutes: int
    default_slot_minutes: int
    student_max_active_bookings: int
    student_max_duration_hours: float
    seed_demo_rooms: bool
    series_insert_retries: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; call ``get_settings.cache_clear()`` to reload."""
    return Settings(
        app_name=os.getenv("ROOMBOOKING_APP_NAME", "Room Booking Scheduler"),
        app_version=os.getenv("ROOMBOOKING_APP_VERSION", "1.0.0"),
        database_path=Path(os.getenv("ROOMBOOKING_DB_PATH", "data/roombooking.db")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_level_overrides=parse_level_overrides(os.getenv("ROOMBOOKING_LOG_LEVELS")),
        day_start_hour=_env_int("ROOMBOOKING_DAY_START_HOUR", 8),
        day_end_hour=_env_int("ROOMBOOKING_DAY_END_HOUR", 16),
        slot_rounding_minutes=_env_int("ROOMBOOKING_SLOT_ROUNDING_MINUTES", 15),
        default_slot_minutes=_env_int("ROOMBOOKING_DEFAULT_SLOT_MINUTES", 60),
        student_max_active_bookings=_env_int("ROOMBOOKING_STUDENT_MAX_BOOKINGS", 4),
        student_max_duration_hours=_env_float("ROOMBOOKING_STUDENT_MAX_HOURS", 4.0),
        seed_demo_rooms=_env_bool("ROOMBOOKING_SEED_DEMO_ROOMS", True),
        series_insert_retries=_env_int("ROOMBOOKING_SERIES_INSERT_RETRIES", 1),
    )
