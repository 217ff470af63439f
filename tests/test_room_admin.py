from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time

import pytest

from roombooking.domain.models import ActingUser, Booking, RecurrenceType, Room
from roombooking.domain.validation import ValidationFailureKind
from roombooking.repository.data_repository import DataRepository
from roombooking.services.booking_service import (
    BookingRejectedError,
    BookingService,
    BookingValidationError,
    PermissionDeniedError,
    RoomNotFoundError,
)
from roombooking.services.room_service import RoomService
from roombooking.services.series_service import SeriesService
from roombooking.utils.clock import FixedClock
from roombooking.utils.config import get_settings


NOW = datetime(2026, 10, 19, 7, 0)
MONDAY = date(2026, 11, 2)

STUDENT = ActingUser(user_id="student-1", role="student")
ADMIN = ActingUser(user_id="admin-1", role="admin")

STUDY_ROOM = 1
CLOSED_ROOM = 7


@pytest.fixture()
def settings(tmp_path):
    get_settings.cache_clear()
    return replace(get_settings(), database_path=tmp_path / "room_admin.db")


@pytest.fixture()
def repository(settings):
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_demo_rooms_if_empty()
    return repository


@pytest.fixture()
def room_service(repository, settings):
    return RoomService(repository=repository, settings=settings)


@pytest.fixture()
def booking_service(repository, settings):
    return BookingService(repository=repository, settings=settings, clock=FixedClock(NOW))


def at(hour: int, day: date = MONDAY) -> datetime:
    return datetime.combine(day, time(hour, 0))


def new_room(**overrides) -> Room:
    base = Room(room_id=0, name="Studierum 4.01", room_type="studierum", capacity=4, floor=4)
    return replace(base, **overrides)


def test_admin_lists_closed_rooms_too(room_service) -> None:
    rooms = room_service.list_rooms(ADMIN)
    assert len(rooms) == 7
    assert any(room.is_closed for room in rooms)


def test_non_admin_cannot_manage_rooms(room_service) -> None:
    with pytest.raises(PermissionDeniedError):
        room_service.list_rooms(STUDENT)
    with pytest.raises(PermissionDeniedError):
        room_service.create_room(STUDENT, new_room())
    with pytest.raises(PermissionDeniedError):
        room_service.delete_room(STUDENT, STUDY_ROOM)


def test_create_room_normalizes_legacy_type(room_service, repository) -> None:
    created = room_service.create_room(ADMIN, new_room(name="  Mødelokale 4.02 ", room_type="møderum"))

    assert created.room_type == "studierum"
    assert created.name == "Mødelokale 4.02"
    assert repository.get_room(created.room_id) == created


@pytest.mark.parametrize(
    "overrides",
    [{"name": " "}, {"room_type": "kantine"}, {"room_type": None}, {"capacity": 0}],
)
def test_create_room_rejects_invalid_fields(room_service, overrides) -> None:
    with pytest.raises(BookingValidationError):
        room_service.create_room(ADMIN, new_room(**overrides))


def test_update_room_changes_only_given_fields(room_service, repository) -> None:
    updated = room_service.update_room(ADMIN, STUDY_ROOM, {"capacity": 10, "has_board": True})

    assert updated.capacity == 10
    assert updated.has_board
    assert updated.name == "Studierum 1.01"
    assert repository.get_room(STUDY_ROOM) == updated


def test_update_room_rejects_unknown_field(room_service) -> None:
    with pytest.raises(BookingValidationError):
        room_service.update_room(ADMIN, STUDY_ROOM, {"room_id": 99})


def test_update_unknown_room_raises(room_service) -> None:
    with pytest.raises(RoomNotFoundError):
        room_service.update_room(ADMIN, 999, {"capacity": 3})


def test_closing_a_room_blocks_new_bookings(room_service, booking_service) -> None:
    room_service.update_room(ADMIN, STUDY_ROOM, {"is_closed": True})

    with pytest.raises(BookingRejectedError) as exc_info:
        booking_service.create_booking(STUDENT, STUDY_ROOM, at(9), at(10))

    assert exc_info.value.failure.kind is ValidationFailureKind.ACCESS_DENIED
    assert exc_info.value.failure.context["reason"] == "closed"
    assert STUDY_ROOM not in {room.room_id for room in booking_service.list_bookable_rooms(STUDENT)}


def test_reopening_a_room_allows_bookings_again(room_service, booking_service) -> None:
    room_service.update_room(ADMIN, CLOSED_ROOM, {"is_closed": False})

    booking = booking_service.create_booking(STUDENT, CLOSED_ROOM, at(9), at(10))
    assert booking.room_id == CLOSED_ROOM


def test_delete_room_removes_its_series_and_bookings(room_service, repository, settings) -> None:
    series_service = SeriesService(repository=repository, settings=settings, clock=FixedClock(NOW))
    series_service.create_series(
        user=ADMIN,
        room_id=STUDY_ROOM,
        title="Holdundervisning",
        start_date=MONDAY,
        start_time=time(10, 0),
        end_time=time(11, 0),
        recurrence_type=RecurrenceType.WEEKLY,
        recurrence_end_date=date(2026, 11, 16),
    )
    repository.insert(Booking(room_id=STUDY_ROOM, start_time=at(13), end_time=at(14)))
    other = repository.insert(Booking(room_id=2, start_time=at(13), end_time=at(14)))

    removed = room_service.delete_room(ADMIN, STUDY_ROOM)

    assert removed == 4
    assert repository.get_room(STUDY_ROOM) is None
    assert repository.count_series() == 0
    assert repository.list_all_bookings() == [other]


def test_delete_unknown_room_raises(room_service) -> None:
    with pytest.raises(RoomNotFoundError):
        room_service.delete_room(ADMIN, 999)


def test_list_all_bookings_is_ordered_by_start(room_service, repository) -> None:
    later = repository.insert(Booking(room_id=2, start_time=at(12), end_time=at(13)))
    earlier = repository.insert(Booking(room_id=STUDY_ROOM, start_time=at(9), end_time=at(10)))

    assert room_service.list_all_bookings(ADMIN) == [earlier, later]
    with pytest.raises(PermissionDeniedError):
        room_service.list_all_bookings(STUDENT)
