"""HTTP controller layer for rooms and single bookings."""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field, field_validator

from roombooking.controllers.dependencies import (
    get_acting_user,
    get_availability_service,
    get_booking_service,
    to_http_exception,
)
from roombooking.domain.catalog import RoomFilters
from roombooking.domain.models import ActingUser, Booking, BookingType, Room
from roombooking.services.availability_service import AvailabilityService
from roombooking.services.booking_service import BookingError, BookingService
from roombooking.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["bookings"])


class RoomResponse(BaseModel):
    room_id: int = Field(gt=0)
    name: str
    room_type: str | None
    capacity: int = Field(gt=0)
    floor: int | None
    has_whiteboard: bool
    has_screen: bool
    has_board: bool
    is_closed: bool

    @classmethod
    def from_room(cls, room: Room) -> "RoomResponse":
        return cls(
            room_id=room.room_id,
            name=room.name,
            room_type=room.room_type,
            capacity=room.capacity,
            floor=room.floor,
            has_whiteboard=room.has_whiteboard,
            has_screen=room.has_screen,
            has_board=room.has_board,
            is_closed=room.is_closed,
        )


class BookingRequest(BaseModel):
    """Input DTO validated before entering service layer."""

    room_id: int = Field(gt=0)
    start_time: datetime
    end_time: datetime
    title: str | None = Field(default=None, max_length=200)
    booking_type: BookingType = BookingType.NORMAL

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_wall_clock(cls, value: datetime) -> datetime:
        if value.tzinfo is not None:
            raise ValueError("times must be local wall-clock values without a UTC offset")
        return value.replace(second=0, microsecond=0)


class BookingResponse(BaseModel):
    booking_id: int = Field(gt=0)
    room_id: int = Field(gt=0)
    user_id: str | None
    title: str | None
    start_time: datetime
    end_time: datetime
    booking_type: BookingType
    parent_repeating_id: int | None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls(
            booking_id=booking.booking_id,
            room_id=booking.room_id,
            user_id=booking.user_id,
            title=booking.title,
            start_time=booking.start_time,
            end_time=booking.end_time,
            booking_type=booking.booking_type,
            parent_repeating_id=booking.parent_repeating_id,
        )


class ValidationResponse(BaseModel):
    ok: bool
    failure: dict | None = None


class SlotSuggestionResponse(BaseModel):
    suggestion: dict | None


class UtilizationResponse(BaseModel):
    room_id: int = Field(gt=0)
    start_date: date
    end_date: date
    utilization_percent: float = Field(ge=0.0, le=100.0)


@router.get("/rooms", response_model=list[RoomResponse])
async def list_rooms(
    min_capacity: int | None = Query(default=None, gt=0),
    floor: int | None = None,
    room_type: str | None = None,
    facilities: list[str] = Query(default=[]),
    user: ActingUser = Depends(get_acting_user),
    service: BookingService = Depends(get_booking_service),
) -> list[RoomResponse]:
    """Rooms the caller may book; closed rooms are never listed."""
    try:
        filters = RoomFilters(
            min_capacity=min_capacity,
            floor=floor,
            room_type=room_type,
            facilities=tuple(facilities),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return [RoomResponse.from_room(room) for room in service.list_bookable_rooms(user, filters)]


@router.get("/rooms/{room_id}/bookings", response_model=list[BookingResponse])
async def list_room_bookings(
    room_id: int,
    day: date | None = None,
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    try:
        bookings = service.list_room_bookings(room_id, day)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return [BookingResponse.from_booking(booking) for booking in bookings]


@router.get("/rooms/{room_id}/suggest_slot", response_model=SlotSuggestionResponse)
async def suggest_slot(
    room_id: int,
    day: date,
    minute_offset: float = Query(ge=0.0),
    service: AvailabilityService = Depends(get_availability_service),
) -> SlotSuggestionResponse:
    try:
        suggestion = service.suggest_slot(room_id, day, minute_offset)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return SlotSuggestionResponse(
        suggestion=suggestion.to_dict() if suggestion is not None else None
    )


@router.get("/rooms/{room_id}/utilization", response_model=UtilizationResponse)
async def room_utilization(
    room_id: int,
    start_date: date,
    end_date: date,
    service: AvailabilityService = Depends(get_availability_service),
) -> UtilizationResponse:
    try:
        percentage = service.room_utilization(room_id, start_date, end_date)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return UtilizationResponse(
        room_id=room_id,
        start_date=start_date,
        end_date=end_date,
        utilization_percent=percentage,
    )


@router.post("/bookings/validate", response_model=ValidationResponse)
async def validate_booking(
    payload: BookingRequest,
    user: ActingUser = Depends(get_acting_user),
    service: BookingService = Depends(get_booking_service),
) -> ValidationResponse:
    """Dry-run the booking rules so a form can show the first problem early."""
    try:
        result = service.check_booking(
            user=user,
            room_id=payload.room_id,
            start=payload.start_time,
            end=payload.end_time,
            title=payload.title,
            booking_type=payload.booking_type,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return ValidationResponse(
        ok=result.ok,
        failure=result.failure.to_dict() if result.failure is not None else None,
    )


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    payload: BookingRequest,
    user: ActingUser = Depends(get_acting_user),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = service.create_booking(
            user=user,
            room_id=payload.room_id,
            start=payload.start_time,
            end=payload.end_time,
            title=payload.title,
            booking_type=payload.booking_type,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create booking",
        ) from exc
    return BookingResponse.from_booking(booking)


@router.get("/bookings/me", response_model=list[BookingResponse])
async def list_my_bookings(
    upcoming_only: bool = False,
    user: ActingUser = Depends(get_acting_user),
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    return [
        BookingResponse.from_booking(booking)
        for booking in service.list_user_bookings(user, upcoming_only=upcoming_only)
    ]


@router.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: int,
    user: ActingUser = Depends(get_acting_user),
    service: BookingService = Depends(get_booking_service),
) -> Response:
    try:
        service.delete_booking(user, booking_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
