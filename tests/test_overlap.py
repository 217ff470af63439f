from __future__ import annotations

from datetime import datetime

from roombooking.domain.models import Booking
from roombooking.domain.overlap import OverlapIndex, intervals_overlap


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 11, 2, hour, minute)


def booking(room_id: int, start: datetime, end: datetime, booking_id: int = 1) -> Booking:
    return Booking(room_id=room_id, start_time=start, end_time=end, booking_id=booking_id)


def test_touching_intervals_do_not_overlap() -> None:
    assert not intervals_overlap(at(9), at(10), at(10), at(11))
    assert not intervals_overlap(at(10), at(11), at(9), at(10))


def test_partial_overlap_is_symmetric() -> None:
    assert intervals_overlap(at(9), at(10), at(9, 30), at(10, 30))
    assert intervals_overlap(at(9, 30), at(10, 30), at(9), at(10))


def test_containment_overlaps_both_ways() -> None:
    assert intervals_overlap(at(9), at(11), at(10), at(10, 30))
    assert intervals_overlap(at(10), at(10, 30), at(9), at(11))


def test_find_conflict_returns_the_conflicting_booking() -> None:
    existing = booking(1, at(10), at(10, 30), booking_id=7)
    index = OverlapIndex([booking(1, at(8), at(9), booking_id=6), existing])

    assert index.find_conflict(1, at(9), at(11)) == existing


def test_find_conflict_ignores_other_rooms() -> None:
    index = OverlapIndex([booking(2, at(9), at(10))])

    assert index.find_conflict(1, at(9), at(10)) is None


def test_find_conflict_sees_bookings_added_later() -> None:
    index = OverlapIndex()
    assert index.find_conflict(1, at(9), at(10)) is None

    index.add(booking(1, at(9, 30), at(10, 30)))
    assert index.find_conflict(1, at(9), at(10)) is not None
    assert len(index.bookings_for_room(1)) == 1


def test_drafts_accepted_earlier_in_a_batch_block_later_drafts() -> None:
    index = OverlapIndex([booking(1, at(8), at(9), booking_id=1)])
    drafts = [
        Booking(room_id=1, start_time=at(10), end_time=at(11)),
        Booking(room_id=1, start_time=at(10, 30), end_time=at(11, 30)),
        Booking(room_id=1, start_time=at(11), end_time=at(12)),
    ]

    accepted = []
    for draft in drafts:
        if index.find_conflict(draft.room_id, draft.start_time, draft.end_time) is None:
            index.add(draft)
            accepted.append(draft)

    assert accepted == [drafts[0], drafts[2]]
    assert index.find_conflict(1, at(10, 45), at(10, 50)) == drafts[0]
