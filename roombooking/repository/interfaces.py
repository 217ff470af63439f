"""Storage contracts consumed by the booking services."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from roombooking.domain.models import Booking, RecurringSeries, Room


class BookingOverlapError(Exception):
    """Raised by storage when an insert would overlap an existing booking."""


class RoomRepository(Protocol):
    def list_rooms(self) -> list[Room]:
        ...

    def get_room(self, room_id: int) -> Optional[Room]:
        ...

    def create_room(self, room: Room) -> Room:
        ...

    def update_room(self, room: Room) -> bool:
        ...

    def delete_room(self, room_id: int) -> int:
        ...


class BookingRepository(Protocol):
    def list_for_room(self, room_id: int, day: Optional[date] = None) -> list[Booking]:
        ...

    def list_future_for_user(self, user_id: str, now: datetime) -> list[Booking]:
        ...

    def list_all_bookings(self) -> list[Booking]:
        ...

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        ...

    def insert(self, booking: Booking) -> Booking:
        ...

    def insert_many(self, bookings: Sequence[Booking]) -> list[Booking]:
        ...

    def delete(self, booking_id: int) -> bool:
        ...

    def delete_by_parent_series(self, series_id: int) -> int:
        ...


class SeriesRepository(Protocol):
    def insert_series(self, series: RecurringSeries) -> RecurringSeries:
        ...

    def get_series(self, series_id: int) -> Optional[RecurringSeries]:
        ...

    def delete_series(self, series_id: int) -> int:
        ...
