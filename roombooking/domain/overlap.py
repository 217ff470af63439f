"""Conflict detection between a candidate slot and existing bookings."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional

from roombooking.domain.models import Booking


def intervals_overlap(
    first_start: datetime,
    first_end: datetime,
    second_start: datetime,
    second_end: datetime,
) -> bool:
    """Half-open ``[start, end)`` overlap; touching endpoints do not conflict."""
    return first_start < second_end and first_end > second_start


class OverlapIndex:
    """Per-room buckets of bookings scanned linearly for conflicts."""

    def __init__(self, bookings: Iterable[Booking] = ()) -> None:
        self._by_room: dict[int, list[Booking]] = defaultdict(list)
        for booking in bookings:
            self.add(booking)

    def add(self, booking: Booking) -> None:
        self._by_room[booking.room_id].append(booking)

    def bookings_for_room(self, room_id: int) -> list[Booking]:
        return list(self._by_room.get(room_id, ()))

    def find_conflict(
        self,
        room_id: int,
        start: datetime,
        end: datetime,
    ) -> Optional[Booking]:
        for booking in self._by_room.get(room_id, ()):
            if intervals_overlap(start, end, booking.start_time, booking.end_time):
                return booking
        return None
