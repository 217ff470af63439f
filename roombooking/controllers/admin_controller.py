"""HTTP controller layer for administrative room management."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from roombooking.controllers.booking_controller import BookingResponse, RoomResponse
from roombooking.controllers.dependencies import (
    get_acting_user,
    get_room_service,
    to_http_exception,
)
from roombooking.domain.models import ActingUser, Room
from roombooking.services.booking_service import BookingError
from roombooking.services.room_service import RoomService
from roombooking.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class RoomCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    room_type: str = Field(min_length=1)
    capacity: int = Field(gt=0)
    floor: int | None = None
    has_whiteboard: bool = False
    has_screen: bool = False
    has_board: bool = False
    is_closed: bool = False


class RoomUpdateRequest(BaseModel):
    """Partial edit; only fields present in the body are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=120)
    room_type: str | None = Field(default=None, min_length=1)
    capacity: int | None = Field(default=None, gt=0)
    floor: int | None = None
    has_whiteboard: bool | None = None
    has_screen: bool | None = None
    has_board: bool | None = None
    is_closed: bool | None = None


class RoomDeleteResponse(BaseModel):
    room_id: int = Field(gt=0)
    deleted_bookings: int = Field(ge=0)


@router.get("/rooms", response_model=list[RoomResponse])
async def list_rooms(
    user: ActingUser = Depends(get_acting_user),
    service: RoomService = Depends(get_room_service),
) -> list[RoomResponse]:
    try:
        rooms = service.list_rooms(user)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return [RoomResponse.from_room(room) for room in rooms]


@router.post("/rooms", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    payload: RoomCreateRequest,
    user: ActingUser = Depends(get_acting_user),
    service: RoomService = Depends(get_room_service),
) -> RoomResponse:
    try:
        room = service.create_room(user, Room(room_id=0, **payload.model_dump()))
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected room creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create room",
        ) from exc
    return RoomResponse.from_room(room)


@router.patch("/rooms/{room_id}", response_model=RoomResponse)
async def update_room(
    room_id: int,
    payload: RoomUpdateRequest,
    user: ActingUser = Depends(get_acting_user),
    service: RoomService = Depends(get_room_service),
) -> RoomResponse:
    try:
        changes = {
            name: value
            for name, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or name == "floor"
        }
        room = service.update_room(user, room_id, changes)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return RoomResponse.from_room(room)


@router.delete("/rooms/{room_id}", response_model=RoomDeleteResponse)
async def delete_room(
    room_id: int,
    user: ActingUser = Depends(get_acting_user),
    service: RoomService = Depends(get_room_service),
) -> RoomDeleteResponse:
    try:
        removed = service.delete_room(user, room_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return RoomDeleteResponse(room_id=room_id, deleted_bookings=removed)


@router.get("/bookings", response_model=list[BookingResponse])
async def list_all_bookings(
    user: ActingUser = Depends(get_acting_user),
    service: RoomService = Depends(get_room_service),
) -> list[BookingResponse]:
    try:
        bookings = service.list_all_bookings(user)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return [BookingResponse.from_booking(booking) for booking in bookings]
