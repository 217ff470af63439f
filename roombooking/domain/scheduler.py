"""Materialization of recurring series into concrete bookings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional

from roombooking.domain.models import Booking, BookingType, Role, SeriesTemplate
from roombooking.domain.overlap import OverlapIndex
from roombooking.domain.recurrence import expand_recurrence, materialize
from roombooking.domain.validation import (
    BookingValidator,
    ValidationFailure,
    ValidationFailureKind,
    conflict_result,
)
from roombooking.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class SkippedOccurrence:
    date: date
    failure: ValidationFailure


@dataclass(frozen=True)
class ScheduleOutcome:
    """Accepted/skipped partition of a series expansion.

    ``accepted`` holds unsaved drafts without ``parent_repeating_id``; the
    caller tags them once the series row exists. ``failure`` is set only when
    the template itself is unusable, in which case nothing was expanded.
    """

    accepted: list[Booking] = field(default_factory=list)
    skipped: list[SkippedOccurrence] = field(default_factory=list)
    weekend_dates: list[date] = field(default_factory=list)
    failure: Optional[ValidationFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def skipped_dates(self) -> list[date]:
        return [item.date for item in self.skipped]

    @property
    def accepted_dates(self) -> list[date]:
        return [booking.start_time.date() for booking in self.accepted]


def _validate_template(
    template: SeriesTemplate,
    validator: BookingValidator,
) -> Optional[ValidationFailure]:
    template_start, template_end = materialize(
        template.start_date,
        template.start_time,
        template.end_time,
    )
    checks = (
        lambda: validator.check_range(template_start, template_end),
        lambda: validator.check_opening_hours(template_start, template_end),
        lambda: validator.check_room_access(Role.ADMIN.value, template.room),
    )
    for check in checks:
        result = check()
        if not result.ok:
            return result.failure
    return None


def schedule_recurring_series(
    template: SeriesTemplate,
    existing_room_bookings: Iterable[Booking],
    now: datetime,
    validator: Optional[BookingValidator] = None,
) -> ScheduleOutcome:
    """Expand a series and keep every occurrence that is free.

    Occurrences are checked against the room's existing bookings and against
    instances accepted earlier in the same batch. Conflicts and past dates
    are skipped, never raised; weekends are dropped before any check.
    """
    resolved_validator = validator or BookingValidator.from_settings()
    template_failure = _validate_template(template, resolved_validator)
    if template_failure is not None:
        logger.info(
            "Series template for room %s rejected: %s",
            template.room.room_id,
            template_failure.kind.value,
        )
        return ScheduleOutcome(failure=template_failure)

    room_id = template.room.room_id
    index = OverlapIndex(
        booking for booking in existing_room_bookings if booking.room_id == room_id
    )
    accepted: list[Booking] = []
    skipped: list[SkippedOccurrence] = []
    weekend_dates: list[date] = []

    for occurrence in expand_recurrence(
        template.start_date,
        template.recurrence_end_date,
        template.recurrence_type,
    ):
        if not resolved_validator.time_policy.is_weekday(occurrence):
            weekend_dates.append(occurrence)
            continue

        start, end = materialize(occurrence, template.start_time, template.end_time)
        past_check = resolved_validator.check_not_past(start, now)
        if not past_check.ok:
            skipped.append(SkippedOccurrence(date=occurrence, failure=past_check.failure))
            continue

        conflict = index.find_conflict(room_id, start, end)
        if conflict is not None:
            skipped.append(
                SkippedOccurrence(date=occurrence, failure=conflict_result(conflict).failure)
            )
            continue

        draft = Booking(
            room_id=room_id,
            start_time=start,
            end_time=end,
            user_id=template.created_by,
            title=template.title,
            booking_type=BookingType.NORMAL,
        )
        index.add(draft)
        accepted.append(draft)

    logger.info(
        "Series for room %s expanded: %s accepted, %s skipped, %s weekend dates dropped",
        room_id,
        len(accepted),
        len(skipped),
        len(weekend_dates),
    )
    return ScheduleOutcome(accepted=accepted, skipped=skipped, weekend_dates=weekend_dates)


def count_conflicts(outcome: ScheduleOutcome) -> int:
    return sum(
        1
        for item in outcome.skipped
        if item.failure.kind is ValidationFailureKind.SLOT_CONFLICT
    )
