"""Tests for role access, opening hours and policy configuration checks."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

import pytest

from roombooking.domain.catalog import normalize_room_type
from roombooking.domain.constraints import (
    RoleAccessPolicy,
    TimeWindowPolicy,
    validate_policy_config,
)
from roombooking.utils.config import get_settings


def valid_settings(**overrides):
    """Return baseline settings, optionally overriding fields."""
    get_settings.cache_clear()
    return replace(get_settings(), **overrides)


POLICY = RoleAccessPolicy.from_settings(valid_settings())
WINDOW = TimeWindowPolicy()


# --- Room type normalization ---

def test_legacy_alias_folds_into_studierum() -> None:
    assert normalize_room_type("møderum") == normalize_room_type("studierum") == "studierum"


@pytest.mark.parametrize("raw", [None, ""])
def test_missing_room_type_normalizes_to_none(raw) -> None:
    assert normalize_room_type(raw) is None


def test_other_room_types_pass_through() -> None:
    assert normalize_room_type("auditorium") == "auditorium"
    assert normalize_room_type("laboratorium") == "laboratorium"


# --- Role access grid ---

ACCESS_GRID = {
    "student": {"studierum": True, "møderum": True, "klasseværelse": False, "auditorium": False},
    "teacher": {"studierum": False, "møderum": False, "klasseværelse": True, "auditorium": True},
    "admin": {"studierum": True, "møderum": True, "klasseværelse": True, "auditorium": True},
}


@pytest.mark.parametrize("role", ["student", "teacher", "admin"])
@pytest.mark.parametrize("room_type", ["studierum", "møderum", "klasseværelse", "auditorium", None])
def test_can_access_room_type_matches_allowed_set(role, room_type) -> None:
    expected = False if room_type is None else ACCESS_GRID[role][room_type]
    assert POLICY.can_access_room_type(role, room_type) is expected
    normalized = normalize_room_type(room_type)
    assert (normalized in POLICY.allowed_types(role)) is expected


def test_unknown_role_falls_back_to_student_access() -> None:
    assert POLICY.allowed_types("janitor") == POLICY.allowed_types("student")
    assert POLICY.allowed_types(None) == POLICY.allowed_types("student")
    assert not POLICY.can_access_room_type("janitor", "auditorium")


def test_quota_only_binds_students() -> None:
    student = POLICY.quota_for("student")
    assert student.max_active_bookings == 4
    assert student.max_duration_hours == 4.0
    assert POLICY.quota_for("teacher").max_active_bookings is None
    assert POLICY.quota_for("admin").max_duration_hours is None
    assert POLICY.quota_for("unknown") == student


# --- Opening hours and weekdays ---

def test_full_day_window_is_within_opening_hours() -> None:
    assert WINDOW.is_within_opening_hours(datetime(2026, 11, 2, 8, 0), datetime(2026, 11, 2, 16, 0))


def test_start_before_day_start_is_outside_opening_hours() -> None:
    assert not WINDOW.is_within_opening_hours(datetime(2026, 11, 2, 7, 59), datetime(2026, 11, 2, 9, 0))


def test_end_after_day_end_is_outside_opening_hours() -> None:
    assert not WINDOW.is_within_opening_hours(datetime(2026, 11, 2, 15, 0), datetime(2026, 11, 2, 16, 1))


def test_booking_spanning_two_days_is_outside_opening_hours() -> None:
    assert not WINDOW.is_within_opening_hours(datetime(2026, 11, 2, 9, 0), datetime(2026, 11, 3, 10, 0))


def test_weekend_days_are_not_weekdays() -> None:
    assert WINDOW.is_weekday(date(2026, 11, 6))
    assert not WINDOW.is_weekday(date(2026, 11, 7))
    assert not WINDOW.is_weekday(date(2026, 11, 8))


@pytest.mark.parametrize(
    ("minutes", "expected"),
    [(0, 0), (7, 0), (7.5, 15), (8, 15), (22.5, 30), (52, 45), (53, 60), (480, 480)],
)
def test_round_to_quarter_hour_rounds_half_up(minutes, expected) -> None:
    assert WINDOW.round_to_quarter_hour(minutes) == expected


# --- Policy configuration ---

def test_valid_config_passes() -> None:
    validate_policy_config(valid_settings())


def test_day_start_after_day_end_raises() -> None:
    with pytest.raises(ValueError):
        validate_policy_config(valid_settings(day_start_hour=16, day_end_hour=8))


@pytest.mark.parametrize("day_end_hour", [24, 25])
def test_day_end_at_or_beyond_midnight_raises(day_end_hour) -> None:
    with pytest.raises(ValueError):
        validate_policy_config(valid_settings(day_end_hour=day_end_hour))


def test_latest_allowed_day_end_accepts_a_booking_ending_then() -> None:
    settings = valid_settings(day_end_hour=23)
    validate_policy_config(settings)
    window = TimeWindowPolicy.from_settings(settings)
    assert window.is_within_opening_hours(datetime(2026, 11, 2, 22, 0), datetime(2026, 11, 2, 23, 0))


def test_slot_rounding_not_dividing_hour_raises() -> None:
    with pytest.raises(ValueError):
        validate_policy_config(valid_settings(slot_rounding_minutes=7))


def test_zero_student_quota_raises() -> None:
    with pytest.raises(ValueError):
        validate_policy_config(valid_settings(student_max_active_bookings=0))


def test_negative_series_retries_raises() -> None:
    with pytest.raises(ValueError):
        validate_policy_config(valid_settings(series_insert_retries=-1))
