"""Recurring series workflow: expand, persist and cascade-delete."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, time
from typing import Optional

from roombooking.domain.models import (
    ActingUser,
    Booking,
    RecurrenceType,
    RecurringSeries,
    SeriesTemplate,
)
from roombooking.domain.recurrence import expand_recurrence
from roombooking.domain.scheduler import (
    ScheduleOutcome,
    SkippedOccurrence,
    count_conflicts,
    schedule_recurring_series,
)
from roombooking.domain.validation import (
    BookingValidator,
    ValidationFailure,
    ValidationFailureKind,
)
from roombooking.repository.data_repository import DataRepository
from roombooking.repository.interfaces import BookingOverlapError
from roombooking.services.booking_service import (
    BookingError,
    BookingRejectedError,
    BookingValidationError,
    PermissionDeniedError,
    RoomNotFoundError,
)
from roombooking.utils.clock import Clock, SystemClock
from roombooking.utils.config import Settings, get_settings
from roombooking.utils.logger import get_logger


logger = get_logger(__name__)


class SeriesNotFoundError(BookingError):
    """Raised when a series id does not exist in persisted state."""


@dataclass(frozen=True)
class SeriesCreationReport:
    series: RecurringSeries
    accepted: list[Booking] = field(default_factory=list)
    skipped: list[SkippedOccurrence] = field(default_factory=list)
    weekend_dates: list[date] = field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)

    @property
    def skipped_dates(self) -> list[date]:
        return [item.date for item in self.skipped]


class SeriesService:
    """Creates recurring series on a best-effort basis; admin only."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        validator: Optional[BookingValidator] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock or SystemClock()
        self._validator = validator or BookingValidator.from_settings(self._settings)

    @staticmethod
    def _require_admin(user: ActingUser) -> None:
        if not user.is_admin:
            raise PermissionDeniedError("Only administrators can manage recurring series")

    @staticmethod
    def preview_dates(
        start_date: date,
        end_date: date,
        recurrence_type: RecurrenceType,
    ) -> list[date]:
        try:
            return expand_recurrence(start_date, end_date, recurrence_type)
        except ValueError as exc:
            raise BookingValidationError(str(exc)) from exc

    def _build_template(
        self,
        user: ActingUser,
        room_id: int,
        title: str,
        start_date: date,
        start_time: time,
        end_time: time,
        recurrence_type: RecurrenceType,
        recurrence_end_date: date,
    ) -> SeriesTemplate:
        if not title or not title.strip():
            raise BookingValidationError("title must be non-empty")
        room = self._repository.get_room(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} was not found")
        return SeriesTemplate(
            room=room,
            title=title.strip(),
            start_date=start_date,
            start_time=start_time,
            end_time=end_time,
            recurrence_type=RecurrenceType(recurrence_type),
            recurrence_end_date=recurrence_end_date,
            created_by=user.user_id,
        )

    def _schedule(self, template: SeriesTemplate) -> ScheduleOutcome:
        return schedule_recurring_series(
            template=template,
            existing_room_bookings=self._repository.list_for_room(template.room.room_id),
            now=self._clock.now(),
            validator=self._validator,
        )

    def preview_series(
        self,
        user: ActingUser,
        room_id: int,
        title: str,
        start_date: date,
        start_time: time,
        end_time: time,
        recurrence_type: RecurrenceType,
        recurrence_end_date: date,
    ) -> ScheduleOutcome:
        """Run the expansion against current bookings without writing anything."""
        self._require_admin(user)
        template = self._build_template(
            user,
            room_id,
            title,
            start_date,
            start_time,
            end_time,
            recurrence_type,
            recurrence_end_date,
        )
        return self._schedule(template)

    def create_series(
        self,
        user: ActingUser,
        room_id: int,
        title: str,
        start_date: date,
        start_time: time,
        end_time: time,
        recurrence_type: RecurrenceType,
        recurrence_end_date: date,
    ) -> SeriesCreationReport:
        """Persist the series and every free occurrence.

        Conflicting or past occurrences are reported, not raised. The series
        row is stored even when no occurrence could be booked. Only an
        unusable template (bad time range, outside opening hours, closed or
        untyped room) rejects the whole request.
        """
        self._require_admin(user)
        template = self._build_template(
            user,
            room_id,
            title,
            start_date,
            start_time,
            end_time,
            recurrence_type,
            recurrence_end_date,
        )
        outcome = self._schedule(template)
        if not outcome.ok:
            raise BookingRejectedError(outcome.failure)

        series = self._repository.insert_series(
            RecurringSeries(
                room_id=room_id,
                title=template.title,
                start_date=start_date,
                start_time=start_time,
                end_time=end_time,
                recurrence_type=template.recurrence_type,
                recurrence_end_date=recurrence_end_date,
                is_active=True,
                created_by=user.user_id,
                created_at=self._clock.now(),
            )
        )

        inserted: list[Booking] = []
        late_skipped: list[SkippedOccurrence] = []
        for attempt in range(self._settings.series_insert_retries + 1):
            drafts = [
                replace(booking, parent_repeating_id=series.series_id)
                for booking in outcome.accepted
            ]
            try:
                inserted = self._repository.insert_many(drafts)
                break
            except BookingOverlapError:
                logger.warning(
                    "Series %s batch collided with a concurrent booking (attempt %s); re-reading",
                    series.series_id,
                    attempt + 1,
                )
                outcome = self._schedule(template)
        else:
            inserted, late_skipped = self._insert_individually(
                [
                    replace(booking, parent_repeating_id=series.series_id)
                    for booking in outcome.accepted
                ]
            )

        report = SeriesCreationReport(
            series=series,
            accepted=inserted,
            skipped=list(outcome.skipped) + late_skipped,
            weekend_dates=list(outcome.weekend_dates),
        )
        logger.info(
            "Series %s created in room %s: %s bookings, %s skipped (%s conflicts)",
            series.series_id,
            room_id,
            report.accepted_count,
            len(report.skipped),
            count_conflicts(outcome) + len(late_skipped),
        )
        return report

    def _insert_individually(
        self,
        drafts: list[Booking],
    ) -> tuple[list[Booking], list[SkippedOccurrence]]:
        inserted: list[Booking] = []
        skipped: list[SkippedOccurrence] = []
        for draft in drafts:
            try:
                inserted.append(self._repository.insert(draft))
            except BookingOverlapError:
                skipped.append(
                    SkippedOccurrence(
                        date=draft.start_time.date(),
                        failure=ValidationFailure(
                            kind=ValidationFailureKind.SLOT_CONFLICT,
                            message="The slot was booked concurrently.",
                            context={
                                "start_time": draft.start_time.isoformat(),
                                "end_time": draft.end_time.isoformat(),
                            },
                        ),
                    )
                )
        return inserted, skipped

    def delete_series(self, user: ActingUser, series_id: int) -> int:
        """Delete a series and all bookings generated from it; returns the booking count."""
        self._require_admin(user)
        if self._repository.get_series(series_id) is None:
            raise SeriesNotFoundError(f"Series {series_id} was not found")
        removed = self._repository.delete_series(series_id)
        logger.info("Series %s deleted with %s bookings", series_id, removed)
        return removed
