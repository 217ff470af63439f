"""Tests for the single-booking rule pipeline."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from roombooking.domain.models import Booking, BookingCandidate, BookingType, Room
from roombooking.domain.validation import (
    BookingValidator,
    QuotaReason,
    ValidationFailureKind,
    validate_single_booking,
)
from roombooking.utils.config import get_settings


NOW = datetime(2026, 10, 19, 7, 0)
MONDAY = datetime(2026, 11, 2)

STUDY_ROOM = Room(room_id=1, name="Studierum 1.01", room_type="studierum", capacity=6)
CLASSROOM = Room(room_id=2, name="Klasse 2.01", room_type="klasseværelse", capacity=30)


def _validator() -> BookingValidator:
    get_settings.cache_clear()
    return BookingValidator.from_settings(get_settings())


def at(hour: int, minute: int = 0, day: datetime = MONDAY) -> datetime:
    return day.replace(hour=hour, minute=minute)


def candidate(start: datetime, end: datetime, room: Room = STUDY_ROOM, **kwargs) -> BookingCandidate:
    return BookingCandidate(room_id=room.room_id, start_time=start, end_time=end, user_id="u1", **kwargs)


def future_bookings(count: int) -> list[Booking]:
    return [
        Booking(
            room_id=99,
            start_time=at(9, day=MONDAY + timedelta(days=7 * (index + 1))),
            end_time=at(10, day=MONDAY + timedelta(days=7 * (index + 1))),
            user_id="u1",
            booking_id=100 + index,
        )
        for index in range(count)
    ]


def run(role, room, cand, user_future=(), room_bookings=(), now=NOW):
    return _validator().validate_single_booking(
        role=role,
        room=room,
        candidate=cand,
        user_future_bookings=list(user_future),
        room_bookings=list(room_bookings),
        now=now,
    )


# --- End-to-end scenarios ---

def test_student_study_room_weekday_slot_is_accepted() -> None:
    result = run("student", STUDY_ROOM, candidate(at(9), at(10)))
    assert result.ok
    assert result.failure is None


def test_teacher_cannot_book_study_room() -> None:
    result = run("teacher", STUDY_ROOM, candidate(at(9), at(10)))
    assert result.kind is ValidationFailureKind.ACCESS_DENIED


def test_booking_before_opening_is_outside_opening_hours() -> None:
    result = run("student", STUDY_ROOM, candidate(at(7), at(8)))
    assert result.kind is ValidationFailureKind.OUTSIDE_OPENING_HOURS


def test_overlap_reports_conflicting_interval() -> None:
    existing = Booking(room_id=1, start_time=at(10), end_time=at(10, 30), booking_id=5)
    result = run("student", STUDY_ROOM, candidate(at(9), at(11)), room_bookings=[existing])

    assert result.kind is ValidationFailureKind.SLOT_CONFLICT
    assert result.failure.context["interval"] == "10:00–10:30"
    assert result.failure.context["booking_id"] == 5
    assert "10:00–10:30" in result.failure.message


# --- Ordering and individual rules ---

def test_end_before_start_is_invalid_range() -> None:
    result = run("student", STUDY_ROOM, candidate(at(10), at(10)))
    assert result.kind is ValidationFailureKind.INVALID_RANGE


def test_invalid_range_wins_over_every_later_rule() -> None:
    result = run("teacher", STUDY_ROOM, candidate(at(18), at(7)), now=at(20))
    assert result.kind is ValidationFailureKind.INVALID_RANGE


def test_weekend_booking_is_rejected() -> None:
    saturday = MONDAY + timedelta(days=5)
    result = run("student", STUDY_ROOM, candidate(at(9, day=saturday), at(10, day=saturday)))
    assert result.kind is ValidationFailureKind.WEEKEND_BOOKING


def test_booking_starting_in_the_past_is_rejected() -> None:
    result = run("student", STUDY_ROOM, candidate(at(9), at(10)), now=at(9, 1))
    assert result.kind is ValidationFailureKind.PAST_BOOKING


def test_booking_starting_exactly_now_is_allowed() -> None:
    assert run("student", STUDY_ROOM, candidate(at(9), at(10)), now=at(9)).ok


def test_closed_room_is_denied_even_for_admin() -> None:
    closed = replace(STUDY_ROOM, is_closed=True)
    result = run("admin", closed, candidate(at(9), at(10)))
    assert result.kind is ValidationFailureKind.ACCESS_DENIED
    assert result.failure.context["reason"] == "closed"


def test_legacy_meeting_room_type_is_bookable_by_students() -> None:
    meeting_room = replace(STUDY_ROOM, room_type="møderum")
    assert run("student", meeting_room, candidate(at(9), at(10))).ok


def test_room_without_type_is_denied() -> None:
    untyped = replace(STUDY_ROOM, room_type=None)
    assert run("admin", untyped, candidate(at(9), at(10))).kind is ValidationFailureKind.ACCESS_DENIED


# --- Quota boundaries ---

def test_student_with_three_future_bookings_is_accepted() -> None:
    assert run("student", STUDY_ROOM, candidate(at(9), at(10)), user_future=future_bookings(3)).ok


def test_student_with_four_future_bookings_is_rejected() -> None:
    result = run("student", STUDY_ROOM, candidate(at(9), at(10)), user_future=future_bookings(4))
    assert result.kind is ValidationFailureKind.QUOTA_EXCEEDED
    assert result.failure.context["reason"] == QuotaReason.ACTIVE_BOOKINGS.value


def test_four_hour_student_booking_is_accepted() -> None:
    assert run("student", STUDY_ROOM, candidate(at(9), at(13))).ok


def test_four_hours_and_one_minute_is_rejected_for_students() -> None:
    result = run("student", STUDY_ROOM, candidate(at(9), at(13, 1)))
    assert result.kind is ValidationFailureKind.QUOTA_EXCEEDED
    assert result.failure.context["reason"] == QuotaReason.DURATION.value


def test_teacher_is_exempt_from_quota() -> None:
    result = run(
        "teacher",
        CLASSROOM,
        candidate(at(8), at(15), room=CLASSROOM),
        user_future=future_bookings(10),
    )
    assert result.ok


def test_duration_reason_reported_before_count_reason() -> None:
    result = run("student", STUDY_ROOM, candidate(at(8), at(14)), user_future=future_bookings(4))
    assert result.failure.context["reason"] == QuotaReason.DURATION.value


# --- Exam bookings ---

def test_admin_exam_booking_skips_room_type_rule() -> None:
    untyped = replace(CLASSROOM, room_type=None)
    exam = candidate(at(8), at(15), room=untyped, booking_type=BookingType.EXAM)
    assert run("admin", untyped, exam).ok


def test_student_cannot_create_exam_booking() -> None:
    exam = candidate(at(9), at(10), booking_type=BookingType.EXAM)
    result = run("student", STUDY_ROOM, exam)
    assert result.kind is ValidationFailureKind.ACCESS_DENIED
    assert result.failure.context["reason"] == "exam_requires_admin"


def test_exam_booking_still_checks_overlap() -> None:
    existing = Booking(room_id=2, start_time=at(9), end_time=at(10), booking_id=3)
    exam = candidate(at(9, 30), at(11), room=CLASSROOM, booking_type=BookingType.EXAM)
    result = run("admin", CLASSROOM, exam, room_bookings=[existing])
    assert result.kind is ValidationFailureKind.SLOT_CONFLICT


# --- Purity ---

def test_validation_is_idempotent() -> None:
    existing = [Booking(room_id=1, start_time=at(10), end_time=at(11), booking_id=1)]
    cand = candidate(at(9), at(10))
    first = run("student", STUDY_ROOM, cand, user_future=future_bookings(2), room_bookings=existing)
    second = run("student", STUDY_ROOM, cand, user_future=future_bookings(2), room_bookings=existing)
    assert first == second
    assert first.ok


def test_module_level_helper_matches_validator() -> None:
    result = validate_single_booking(
        role="student",
        room=STUDY_ROOM,
        candidate=candidate(at(9), at(10)),
        user_future_bookings=[],
        room_bookings=[],
        now=NOW,
    )
    assert result.ok


def test_candidate_for_other_room_is_a_programming_error() -> None:
    with pytest.raises(ValueError):
        run("student", STUDY_ROOM, candidate(at(9), at(10), room=CLASSROOM))


def test_non_datetime_input_raises_type_error() -> None:
    bad = BookingCandidate(room_id=1, start_time="09:00", end_time="10:00")
    with pytest.raises(TypeError):
        run("student", STUDY_ROOM, bad)
