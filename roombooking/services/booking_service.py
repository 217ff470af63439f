"""Single-booking workflow: room listing, validation and persistence."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from roombooking.domain.catalog import RoomCatalog, RoomFilters
from roombooking.domain.constraints import validate_policy_config
from roombooking.domain.models import ActingUser, Booking, BookingCandidate, BookingType, Room
from roombooking.domain.validation import (
    BookingValidator,
    ValidationFailure,
    ValidationFailureKind,
    ValidationResult,
)
from roombooking.repository.data_repository import DataRepository
from roombooking.repository.interfaces import BookingOverlapError
from roombooking.utils.clock import Clock, SystemClock
from roombooking.utils.config import Settings, get_settings
from roombooking.utils.logger import get_logger


logger = get_logger(__name__)


class BookingError(Exception):
    """Base exception for booking workflow failures."""


class BookingValidationError(BookingError):
    """Raised when request inputs are malformed."""


class RoomNotFoundError(BookingError):
    """Raised when a room id does not exist in persisted state."""


class BookingNotFoundError(BookingError):
    """Raised when a booking id does not exist in persisted state."""


class PermissionDeniedError(BookingError):
    """Raised when the acting user may not perform the operation."""


class BookingRejectedError(BookingError):
    """Raised when a candidate booking fails a booking rule."""

    def __init__(self, failure: ValidationFailure) -> None:
        super().__init__(failure.message)
        self.failure = failure


class BookingService:
    """Validates and persists single bookings for any role."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        validator: Optional[BookingValidator] = None,
    ) -> None:
        self._settings = settings or get_settings()
        validate_policy_config(self._settings)
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock or SystemClock()
        self._validator = validator or BookingValidator.from_settings(self._settings)

    @property
    def validator(self) -> BookingValidator:
        return self._validator

    def _require_room(self, room_id: int) -> Room:
        room = self._repository.get_room(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} was not found")
        return room

    def list_bookable_rooms(
        self,
        user: ActingUser,
        filters: Optional[RoomFilters] = None,
    ) -> list[Room]:
        catalog = RoomCatalog(self._repository.list_rooms())
        return catalog.bookable_rooms(user.role, self._validator.access_policy, filters)

    def check_booking(
        self,
        user: ActingUser,
        room_id: int,
        start: datetime,
        end: datetime,
        title: Optional[str] = None,
        booking_type: BookingType = BookingType.NORMAL,
    ) -> ValidationResult:
        """Dry run of the full rule set against current state; nothing is written."""
        room = self._require_room(room_id)
        candidate = BookingCandidate(
            room_id=room_id,
            start_time=start,
            end_time=end,
            user_id=user.user_id,
            title=title,
            booking_type=BookingType(booking_type),
        )
        now = self._clock.now()
        return self._validator.validate_single_booking(
            role=user.role,
            room=room,
            candidate=candidate,
            user_future_bookings=self._repository.list_future_for_user(user.user_id, now),
            room_bookings=self._repository.list_for_room(room_id),
            now=now,
        )

    def create_booking(
        self,
        user: ActingUser,
        room_id: int,
        start: datetime,
        end: datetime,
        title: Optional[str] = None,
        booking_type: BookingType = BookingType.NORMAL,
    ) -> Booking:
        result = self.check_booking(
            user=user,
            room_id=room_id,
            start=start,
            end=end,
            title=title,
            booking_type=booking_type,
        )
        if not result.ok:
            logger.info(
                "Booking rejected for user %s in room %s: %s",
                user.user_id,
                room_id,
                result.failure.kind.value,
            )
            raise BookingRejectedError(result.failure)

        draft = Booking(
            room_id=room_id,
            start_time=start,
            end_time=end,
            user_id=user.user_id,
            title=title,
            booking_type=BookingType(booking_type),
        )
        try:
            booking = self._repository.insert(draft)
        except BookingOverlapError as exc:
            raise BookingRejectedError(
                ValidationFailure(
                    kind=ValidationFailureKind.SLOT_CONFLICT,
                    message="The selected time was booked by someone else a moment ago.",
                    context={
                        "start_time": start.isoformat(),
                        "end_time": end.isoformat(),
                    },
                )
            ) from exc
        logger.info(
            "Booking %s created for user %s in room %s (%s)",
            booking.booking_id,
            user.user_id,
            room_id,
            booking.interval_label(),
        )
        return booking

    def delete_booking(self, user: ActingUser, booking_id: int) -> None:
        booking = self._repository.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} was not found")
        if not user.is_admin and booking.user_id != user.user_id:
            raise PermissionDeniedError("Only the owner or an administrator can delete a booking")
        self._repository.delete(booking_id)
        logger.info("Booking %s deleted by %s", booking_id, user.user_id)

    def list_room_bookings(self, room_id: int, day: Optional[date] = None) -> list[Booking]:
        self._require_room(room_id)
        return self._repository.list_for_room(room_id, day)

    def list_user_bookings(self, user: ActingUser, upcoming_only: bool = False) -> list[Booking]:
        if upcoming_only:
            return self._repository.list_future_for_user(user.user_id, self._clock.now())
        return self._repository.list_for_user(user.user_id)
