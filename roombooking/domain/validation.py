"""Single authority deciding whether a proposed booking may exist.

The validator is a pure predicate pipeline: it reads the candidate, the room,
the acting role and two booking snapshots, and returns the first failing rule
as a value. Rejections are ordinary outcomes and never raise; only malformed
input (wrong types, a candidate aimed at a different room) is an error.

Checks run in a fixed order and stop at the first failure:

1. ``InvalidRange``        end must be after start
2. ``OutsideOpeningHours`` both endpoints inside the day window
3. ``WeekendBooking``      no Saturday/Sunday bookings
4. ``PastBooking``         start must not be before ``now``
5. ``AccessDenied``        room open and its type allowed for the role
6. ``QuotaExceeded``       per-role duration, then active-booking ceiling
7. ``SlotConflict``        no overlap with the room's existing bookings
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional

from roombooking.domain.catalog import normalize_room_type
from roombooking.domain.constraints import RoleAccessPolicy, TimeWindowPolicy
from roombooking.domain.models import Booking, BookingCandidate, BookingType, Role, Room
from roombooking.domain.overlap import OverlapIndex
from roombooking.utils.config import Settings, get_settings


class ValidationFailureKind(str, Enum):
    INVALID_RANGE = "InvalidRange"
    OUTSIDE_OPENING_HOURS = "OutsideOpeningHours"
    ACCESS_DENIED = "AccessDenied"
    QUOTA_EXCEEDED = "QuotaExceeded"
    SLOT_CONFLICT = "SlotConflict"
    PAST_BOOKING = "PastBooking"
    WEEKEND_BOOKING = "WeekendBooking"


class QuotaReason(str, Enum):
    DURATION = "duration"
    ACTIVE_BOOKINGS = "active_bookings"


@dataclass(frozen=True)
class ValidationFailure:
    kind: ValidationFailureKind
    message: str
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "context": dict(self.context),
        }


@dataclass(frozen=True)
class ValidationResult:
    failure: Optional[ValidationFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def kind(self) -> Optional[ValidationFailureKind]:
        return self.failure.kind if self.failure is not None else None

    @classmethod
    def accepted(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def rejected(
        cls,
        kind: ValidationFailureKind,
        message: str,
        **context: Any,
    ) -> "ValidationResult":
        return cls(failure=ValidationFailure(kind=kind, message=message, context=context))


ACCEPTED = ValidationResult.accepted()


class BookingValidator:
    """Composes role, time-window and overlap rules into one decision."""

    def __init__(
        self,
        access_policy: RoleAccessPolicy,
        time_policy: TimeWindowPolicy,
    ) -> None:
        self._access_policy = access_policy
        self._time_policy = time_policy

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "BookingValidator":
        resolved = settings or get_settings()
        return cls(
            access_policy=RoleAccessPolicy.from_settings(resolved),
            time_policy=TimeWindowPolicy.from_settings(resolved),
        )

    @property
    def access_policy(self) -> RoleAccessPolicy:
        return self._access_policy

    @property
    def time_policy(self) -> TimeWindowPolicy:
        return self._time_policy

    def check_range(self, start: datetime, end: datetime) -> ValidationResult:
        if not isinstance(start, datetime) or not isinstance(end, datetime):
            raise TypeError("booking start and end must be datetime instances")
        if end <= start:
            return ValidationResult.rejected(
                ValidationFailureKind.INVALID_RANGE,
                "End time must be later than start time.",
                start_time=start.isoformat(),
                end_time=end.isoformat(),
            )
        return ACCEPTED

    def check_opening_hours(self, start: datetime, end: datetime) -> ValidationResult:
        if not self._time_policy.is_within_opening_hours(start, end):
            return ValidationResult.rejected(
                ValidationFailureKind.OUTSIDE_OPENING_HOURS,
                f"Bookings must lie between {self._time_policy.describe()}.",
                day_start_hour=self._time_policy.day_start_hour,
                day_end_hour=self._time_policy.day_end_hour,
            )
        return ACCEPTED

    def check_weekday(self, start: datetime) -> ValidationResult:
        if not self._time_policy.is_weekday(start.date()):
            return ValidationResult.rejected(
                ValidationFailureKind.WEEKEND_BOOKING,
                "Rooms cannot be booked on Saturdays or Sundays.",
                date=start.date().isoformat(),
            )
        return ACCEPTED

    def check_not_past(self, start: datetime, now: datetime) -> ValidationResult:
        if start < now:
            return ValidationResult.rejected(
                ValidationFailureKind.PAST_BOOKING,
                "Bookings cannot start in the past.",
                start_time=start.isoformat(),
                now=now.isoformat(),
            )
        return ACCEPTED

    def check_room_access(
        self,
        role: Optional[str],
        room: Room,
        booking_type: BookingType = BookingType.NORMAL,
    ) -> ValidationResult:
        room_type = normalize_room_type(room.room_type)
        if room.is_closed:
            return ValidationResult.rejected(
                ValidationFailureKind.ACCESS_DENIED,
                f"Room {room.name} is closed for booking.",
                room_id=room.room_id,
                reason="closed",
            )
        if booking_type == BookingType.EXAM:
            if role != Role.ADMIN.value:
                return ValidationResult.rejected(
                    ValidationFailureKind.ACCESS_DENIED,
                    "Only administrators can create exam bookings.",
                    room_id=room.room_id,
                    reason="exam_requires_admin",
                )
            return ACCEPTED
        if not self._access_policy.can_access_room_type(role, room_type):
            return ValidationResult.rejected(
                ValidationFailureKind.ACCESS_DENIED,
                f"You do not have access to book this type of room ({room_type}).",
                room_id=room.room_id,
                room_type=room_type,
                reason="room_type",
            )
        return ACCEPTED

    def check_quota(
        self,
        role: Optional[str],
        candidate: BookingCandidate,
        user_future_bookings: Iterable[Booking],
    ) -> ValidationResult:
        if candidate.booking_type == BookingType.EXAM:
            return ACCEPTED
        quota = self._access_policy.quota_for(role)
        duration_hours = (candidate.end_time - candidate.start_time).total_seconds() / 3600.0
        if quota.max_duration_hours is not None and duration_hours > quota.max_duration_hours:
            return ValidationResult.rejected(
                ValidationFailureKind.QUOTA_EXCEEDED,
                f"A single booking may last at most {quota.max_duration_hours:g} hours.",
                reason=QuotaReason.DURATION.value,
                limit=quota.max_duration_hours,
                requested_hours=round(duration_hours, 4),
            )
        if quota.max_active_bookings is not None:
            active_count = sum(1 for _ in user_future_bookings)
            if active_count >= quota.max_active_bookings:
                return ValidationResult.rejected(
                    ValidationFailureKind.QUOTA_EXCEEDED,
                    f"You already have {active_count} upcoming bookings; "
                    f"the limit is {quota.max_active_bookings}.",
                    reason=QuotaReason.ACTIVE_BOOKINGS.value,
                    limit=quota.max_active_bookings,
                    active_bookings=active_count,
                )
        return ACCEPTED

    def check_overlap(
        self,
        candidate: BookingCandidate,
        room_bookings: Iterable[Booking],
    ) -> ValidationResult:
        conflict = OverlapIndex(room_bookings).find_conflict(
            candidate.room_id,
            candidate.start_time,
            candidate.end_time,
        )
        if conflict is not None:
            return conflict_result(conflict)
        return ACCEPTED

    def validate_single_booking(
        self,
        role: Optional[str],
        room: Room,
        candidate: BookingCandidate,
        user_future_bookings: Iterable[Booking],
        room_bookings: Iterable[Booking],
        now: datetime,
    ) -> ValidationResult:
        if candidate.room_id != room.room_id:
            raise ValueError(
                f"candidate targets room {candidate.room_id} but room {room.room_id} was supplied"
            )
        start, end = candidate.start_time, candidate.end_time
        checks = (
            lambda: self.check_range(start, end),
            lambda: self.check_opening_hours(start, end),
            lambda: self.check_weekday(start),
            lambda: self.check_not_past(start, now),
            lambda: self.check_room_access(role, room, candidate.booking_type),
            lambda: self.check_quota(role, candidate, user_future_bookings),
            lambda: self.check_overlap(candidate, room_bookings),
        )
        for check in checks:
            result = check()
            if not result.ok:
                return result
        return ACCEPTED


def conflict_result(conflict: Booking) -> ValidationResult:
    return ValidationResult.rejected(
        ValidationFailureKind.SLOT_CONFLICT,
        f"The selected time overlaps an existing booking: {conflict.interval_label()}",
        booking_id=conflict.booking_id,
        start_time=conflict.start_time.isoformat(),
        end_time=conflict.end_time.isoformat(),
        interval=conflict.interval_label(),
    )


def validate_single_booking(
    role: Optional[str],
    room: Room,
    candidate: BookingCandidate,
    user_future_bookings: Iterable[Booking],
    room_bookings: Iterable[Booking],
    now: datetime,
    settings: Optional[Settings] = None,
) -> ValidationResult:
    """Validate with policies built from settings."""
    return BookingValidator.from_settings(settings).validate_single_booking(
        role=role,
        room=room,
        candidate=candidate,
        user_future_bookings=user_future_bookings,
        room_bookings=room_bookings,
        now=now,
    )
