"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import Header, HTTPException, Request, status

from roombooking.domain.models import ActingUser, Role
from roombooking.domain.validation import ValidationFailure, ValidationFailureKind
from roombooking.services.availability_service import AvailabilityService
from roombooking.services.booking_service import (
    BookingError,
    BookingNotFoundError,
    BookingRejectedError,
    BookingService,
    BookingValidationError,
    PermissionDeniedError,
    RoomNotFoundError,
)
from roombooking.services.room_service import RoomService
from roombooking.services.series_service import SeriesNotFoundError, SeriesService


_REJECTION_STATUS = {
    ValidationFailureKind.SLOT_CONFLICT: status.HTTP_409_CONFLICT,
    ValidationFailureKind.ACCESS_DENIED: status.HTTP_403_FORBIDDEN,
}


def _service_from_state(request: Request, attribute: str, label: str):
    service = getattr(request.app.state, attribute, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} service is not initialized",
        )
    return service


def get_booking_service(request: Request) -> BookingService:
    return _service_from_state(request, "booking_service", "Booking")


def get_series_service(request: Request) -> SeriesService:
    return _service_from_state(request, "series_service", "Series")


def get_availability_service(request: Request) -> AvailabilityService:
    return _service_from_state(request, "availability_service", "Availability")


def get_room_service(request: Request) -> RoomService:
    return _service_from_state(request, "room_service", "Room")


async def get_acting_user(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> ActingUser:
    """Identity is established upstream; this layer only reads what it was given."""
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )
    role = (x_user_role or Role.STUDENT.value).strip().lower()
    return ActingUser(user_id=x_user_id.strip(), role=role)


def rejection_status(failure: ValidationFailure) -> int:
    return _REJECTION_STATUS.get(failure.kind, status.HTTP_400_BAD_REQUEST)


def to_http_exception(exc: BookingError) -> HTTPException:
    if isinstance(exc, BookingRejectedError):
        return HTTPException(
            status_code=rejection_status(exc.failure),
            detail=exc.failure.to_dict(),
        )
    if isinstance(exc, (RoomNotFoundError, BookingNotFoundError, SeriesNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, BookingValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Booking request failed",
    )
