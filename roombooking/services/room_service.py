"""Administrative room management and the all-bookings overview."""

from __future__ import annotations

from dataclasses import fields, replace
from typing import Any, Optional

from roombooking.domain.catalog import normalize_room_type
from roombooking.domain.constraints import ALL_ROOM_TYPES
from roombooking.domain.models import ActingUser, Booking, Room
from roombooking.repository.data_repository import DataRepository
from roombooking.services.booking_service import (
    BookingValidationError,
    PermissionDeniedError,
    RoomNotFoundError,
)
from roombooking.utils.config import Settings, get_settings
from roombooking.utils.logger import get_logger


logger = get_logger(__name__)

_EDITABLE_FIELDS = frozenset(item.name for item in fields(Room)) - {"room_id"}


class RoomService:
    """Creates, edits, closes and deletes rooms; admin only."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    @staticmethod
    def _require_admin(user: ActingUser) -> None:
        if not user.is_admin:
            raise PermissionDeniedError("Only administrators can manage rooms")

    def _require_room(self, room_id: int) -> Room:
        room = self._repository.get_room(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} was not found")
        return room

    @staticmethod
    def _checked(room: Room) -> Room:
        if not room.name or not room.name.strip():
            raise BookingValidationError("room name must be non-empty")
        room_type = normalize_room_type(room.room_type)
        if room_type not in ALL_ROOM_TYPES:
            raise BookingValidationError(
                f"room_type must be one of: {', '.join(sorted(ALL_ROOM_TYPES))}"
            )
        if room.capacity <= 0:
            raise BookingValidationError("capacity must be > 0")
        return replace(room, name=room.name.strip(), room_type=room_type)

    def list_rooms(self, user: ActingUser) -> list[Room]:
        """Every room, closed ones included."""
        self._require_admin(user)
        return self._repository.list_rooms()

    def create_room(self, user: ActingUser, room: Room) -> Room:
        self._require_admin(user)
        created = self._repository.create_room(self._checked(room))
        logger.info("Room %s (%s) created by %s", created.room_id, created.name, user.user_id)
        return created

    def update_room(self, user: ActingUser, room_id: int, changes: dict[str, Any]) -> Room:
        """Apply a partial edit; closing a room here blocks all new bookings in it."""
        self._require_admin(user)
        unknown = sorted(set(changes) - _EDITABLE_FIELDS)
        if unknown:
            raise BookingValidationError(f"Unknown room field(s): {', '.join(unknown)}")
        updated = self._checked(replace(self._require_room(room_id), **changes))
        self._repository.update_room(updated)
        logger.info(
            "Room %s updated by %s: %s",
            room_id,
            user.user_id,
            ", ".join(sorted(changes)) or "no changes",
        )
        return updated

    def delete_room(self, user: ActingUser, room_id: int) -> int:
        """Delete the room with its series and bookings; returns the booking count."""
        self._require_admin(user)
        self._require_room(room_id)
        removed = self._repository.delete_room(room_id)
        logger.info("Room %s deleted by %s with %s bookings", room_id, user.user_id, removed)
        return removed

    def list_all_bookings(self, user: ActingUser) -> list[Booking]:
        self._require_admin(user)
        return self._repository.list_all_bookings()
