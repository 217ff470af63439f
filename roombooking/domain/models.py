"""Domain models for rooms, bookings and recurring series."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Optional


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class BookingType(str, Enum):
    NORMAL = "normal"
    EXAM = "exam"


class RecurrenceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class Room:
    room_id: int
    name: str
    room_type: Optional[str]
    capacity: int
    floor: Optional[int] = None
    has_whiteboard: bool = False
    has_screen: bool = False
    has_board: bool = False
    is_closed: bool = False


@dataclass(frozen=True)
class Booking:
    """A committed or draft reservation of ``[start_time, end_time)`` in one room.

    Drafts produced by the scheduler carry ``booking_id=None`` until the
    repository assigns one.
    """

    room_id: int
    start_time: datetime
    end_time: datetime
    user_id: Optional[str] = None
    title: Optional[str] = None
    booking_type: BookingType = BookingType.NORMAL
    parent_repeating_id: Optional[int] = None
    booking_id: Optional[int] = None

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600.0

    def interval_label(self) -> str:
        return f"{self.start_time:%H:%M}–{self.end_time:%H:%M}"


@dataclass(frozen=True)
class BookingCandidate:
    """A proposed booking that has not been validated yet."""

    room_id: int
    start_time: datetime
    end_time: datetime
    user_id: Optional[str] = None
    title: Optional[str] = None
    booking_type: BookingType = BookingType.NORMAL

    def to_booking(self, parent_repeating_id: Optional[int] = None) -> Booking:
        return Booking(
            room_id=self.room_id,
            start_time=self.start_time,
            end_time=self.end_time,
            user_id=self.user_id,
            title=self.title,
            booking_type=self.booking_type,
            parent_repeating_id=parent_repeating_id,
        )


@dataclass(frozen=True)
class SeriesTemplate:
    """Input for expanding a recurring series into concrete bookings."""

    room: Room
    title: str
    start_date: date
    start_time: time
    end_time: time
    recurrence_type: RecurrenceType
    recurrence_end_date: date
    created_by: Optional[str] = None


@dataclass(frozen=True)
class RecurringSeries:
    room_id: int
    title: str
    start_date: date
    start_time: time
    end_time: time
    recurrence_type: RecurrenceType
    recurrence_end_date: date
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    series_id: Optional[int] = None


@dataclass(frozen=True)
class ActingUser:
    """Identity of the caller as resolved by the external auth layer."""

    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value
