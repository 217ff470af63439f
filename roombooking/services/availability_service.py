"""Advisory slot suggestions and room utilization statistics."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from roombooking.domain.constraints import TimeWindowPolicy
from roombooking.domain.models import Booking, Room
from roombooking.domain.overlap import intervals_overlap
from roombooking.repository.data_repository import DataRepository
from roombooking.services.booking_service import BookingValidationError, RoomNotFoundError
from roombooking.utils.clock import Clock, SystemClock
from roombooking.utils.config import Settings, get_settings
from roombooking.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class SlotSuggestion:
    room_id: int
    start_time: datetime
    end_time: datetime

    def to_dict(self) -> dict[str, object]:
        return {
            "room_id": self.room_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
        }


class AvailabilityService:
    """Helps a user pick a free slot; suggestions are not validated bookings."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock or SystemClock()
        self._time_policy = TimeWindowPolicy.from_settings(self._settings)

    def _require_room(self, room_id: int) -> Room:
        room = self._repository.get_room(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} was not found")
        return room

    @property
    def window_minutes(self) -> int:
        return (self._time_policy.day_end_hour - self._time_policy.day_start_hour) * 60

    def suggest_slot(
        self,
        room_id: int,
        day: date,
        minute_offset: float,
    ) -> Optional[SlotSuggestion]:
        """Propose a slot starting near ``minute_offset`` minutes after day start.

        The start snaps to the nearest quarter hour and the default slot
        length is cut short by the next booking or the end of the day.
        Returns ``None`` for past days, past start times, or starts that land
        inside an existing booking.
        """
        self._require_room(room_id)
        if not 0 <= minute_offset <= self.window_minutes:
            raise BookingValidationError(
                f"minute_offset must be between 0 and {self.window_minutes}"
            )

        now = self._clock.now()
        if day < now.date():
            return None
        if day == now.date() and now.hour >= self._time_policy.day_end_hour:
            return None

        day_start = datetime.combine(day, time(hour=self._time_policy.day_start_hour))
        day_end = day_start + timedelta(minutes=self.window_minutes)
        start = day_start + timedelta(
            minutes=self._time_policy.round_to_quarter_hour(minute_offset)
        )
        if start < now:
            return None

        bookings = self._repository.list_for_room(room_id, day)
        if any(booking.start_time <= start < booking.end_time for booking in bookings):
            return None

        end = min(start + timedelta(minutes=self._settings.default_slot_minutes), day_end)
        next_booking = _next_booking_after(bookings, start)
        if next_booking is not None and end > next_booking.start_time:
            end = next_booking.start_time
        if end <= start:
            return None
        return SlotSuggestion(room_id=room_id, start_time=start, end_time=end)

    def room_utilization(self, room_id: int, start_date: date, end_date: date) -> float:
        """Percentage of the whole-day window ``[start_date, end_date]`` that is booked."""
        self._require_room(room_id)
        if end_date < start_date:
            raise BookingValidationError("end_date must not be before start_date")

        window_start = datetime.combine(start_date, time.min)
        window_end = datetime.combine(end_date + timedelta(days=1), time.min)
        window_seconds = (window_end - window_start).total_seconds()

        booked_seconds = 0.0
        for booking in self._repository.list_for_room(room_id):
            if not intervals_overlap(
                window_start, window_end, booking.start_time, booking.end_time
            ):
                continue
            overlap_start = max(window_start, booking.start_time)
            overlap_end = min(window_end, booking.end_time)
            booked_seconds += (overlap_end - overlap_start).total_seconds()

        percentage = round(min(100.0, max(0.0, booked_seconds / window_seconds * 100.0)), 2)
        logger.info(
            "Room %s utilization %s..%s: %.2f%%",
            room_id,
            start_date.isoformat(),
            end_date.isoformat(),
            percentage,
        )
        return percentage


def _next_booking_after(bookings: list[Booking], start: datetime) -> Optional[Booking]:
    upcoming = [booking for booking in bookings if booking.start_time > start]
    if not upcoming:
        return None
    return min(upcoming, key=lambda booking: booking.start_time)
