"""Role access, quota and opening-hour policies for booking validation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Mapping, Optional

from roombooking.domain.catalog import normalize_room_type
from roombooking.domain.models import Role
from roombooking.utils.config import Settings


ALL_ROOM_TYPES = frozenset({"studierum", "klasseværelse", "auditorium"})


@dataclass(frozen=True)
class RoleQuota:
    """Per-role booking ceilings; ``None`` means unbounded."""

    max_active_bookings: Optional[int] = None
    max_duration_hours: Optional[float] = None


UNLIMITED_QUOTA = RoleQuota()


@dataclass(frozen=True)
class RoleAccessPolicy:
    """Maps a role to the room types it may book and the quota it is held to.

    Unknown roles are treated as students so a misconfigured profile can
    never widen access.
    """

    allowed: Mapping[str, frozenset[str]]
    quotas: Mapping[str, RoleQuota]
    fallback_role: str = Role.STUDENT.value

    @classmethod
    def from_settings(cls, settings: Settings) -> "RoleAccessPolicy":
        return cls(
            allowed={
                Role.STUDENT.value: frozenset({"studierum"}),
                Role.TEACHER.value: frozenset({"klasseværelse", "auditorium"}),
                Role.ADMIN.value: ALL_ROOM_TYPES,
            },
            quotas={
                Role.STUDENT.value: RoleQuota(
                    max_active_bookings=settings.student_max_active_bookings,
                    max_duration_hours=settings.student_max_duration_hours,
                ),
                Role.TEACHER.value: UNLIMITED_QUOTA,
                Role.ADMIN.value: UNLIMITED_QUOTA,
            },
        )

    def _resolve(self, role: Optional[str]) -> str:
        if role is not None and role in self.allowed:
            return role
        return self.fallback_role

    def allowed_types(self, role: Optional[str]) -> frozenset[str]:
        return self.allowed[self._resolve(role)]

    def quota_for(self, role: Optional[str]) -> RoleQuota:
        return self.quotas.get(self._resolve(role), self.quotas[self.fallback_role])

    def can_access_room_type(self, role: Optional[str], room_type: Optional[str]) -> bool:
        normalized = normalize_room_type(room_type)
        if normalized is None:
            return False
        return normalized in self.allowed_types(role)


@dataclass(frozen=True)
class TimeWindowPolicy:
    """Valid booking hours within a day plus the weekday rule."""

    day_start_hour: int = 8
    day_end_hour: int = 16
    rounding_minutes: int = 15

    @classmethod
    def from_settings(cls, settings: Settings) -> "TimeWindowPolicy":
        return cls(
            day_start_hour=settings.day_start_hour,
            day_end_hour=settings.day_end_hour,
            rounding_minutes=settings.slot_rounding_minutes,
        )

    @staticmethod
    def _fractional_hour(value: datetime) -> float:
        return value.hour + value.minute / 60

    def is_within_opening_hours(self, start: datetime, end: datetime) -> bool:
        """Both endpoints fall on the same day inside the configured window."""
        return (
            start.date() == end.date()
            and self._fractional_hour(start) >= self.day_start_hour
            and self._fractional_hour(end) <= self.day_end_hour
        )

    @staticmethod
    def is_weekday(value: date) -> bool:
        return value.isoweekday() < 6

    def round_to_quarter_hour(self, minutes: float) -> int:
        """Round to the nearest slot boundary, halves going up."""
        step = self.rounding_minutes
        return int(math.floor(minutes / step + 0.5)) * step

    def describe(self) -> str:
        return f"{self.day_start_hour:02d}:00–{self.day_end_hour:02d}:00"


def validate_policy_config(settings: Settings) -> None:
    if not 0 <= settings.day_start_hour < 24:
        raise ValueError("day_start_hour must be between 0 and 23")
    if not 0 < settings.day_end_hour <= 23:
        # bookings end on their start day, so the window cannot reach midnight
        raise ValueError("day_end_hour must be between 1 and 23")
    if settings.day_start_hour >= settings.day_end_hour:
        raise ValueError("day_start_hour must be before day_end_hour")
    if settings.slot_rounding_minutes <= 0 or 60 % settings.slot_rounding_minutes != 0:
        raise ValueError("slot_rounding_minutes must be a positive divisor of 60")
    if settings.default_slot_minutes <= 0:
        raise ValueError("default_slot_minutes must be > 0")
    if settings.student_max_active_bookings <= 0:
        raise ValueError("student_max_active_bookings must be > 0")
    if settings.student_max_duration_hours <= 0:
        raise ValueError("student_max_duration_hours must be > 0")
    if settings.series_insert_retries < 0:
        raise ValueError("series_insert_retries must be >= 0")
