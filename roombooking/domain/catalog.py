"""Read-only room catalog with normalized room types."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Iterable, Optional

from roombooking.domain.models import Room

if TYPE_CHECKING:
    from roombooking.domain.constraints import RoleAccessPolicy


LEGACY_ROOM_TYPE_ALIASES = {"møderum": "studierum"}

FACILITY_FLAGS = ("has_whiteboard", "has_screen", "has_board")


def normalize_room_type(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    return LEGACY_ROOM_TYPE_ALIASES.get(raw, raw)


@dataclass(frozen=True)
class RoomFilters:
    """Optional narrowing applied on top of role access."""

    min_capacity: Optional[int] = None
    floor: Optional[int] = None
    room_type: Optional[str] = None
    facilities: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        unknown = [name for name in self.facilities if name not in FACILITY_FLAGS]
        if unknown:
            raise ValueError(f"Unknown facility filter(s): {', '.join(unknown)}")

    def matches(self, room: Room) -> bool:
        if self.min_capacity is not None and room.capacity < self.min_capacity:
            return False
        if self.floor is not None and room.floor != self.floor:
            return False
        if self.room_type is not None:
            if room.room_type != normalize_room_type(self.room_type):
                return False
        return all(getattr(room, name) for name in self.facilities)


class RoomCatalog:
    """Exposes rooms with their type already folded through the alias table."""

    def __init__(self, rooms: Iterable[Room]) -> None:
        self._rooms = {
            room.room_id: replace(room, room_type=normalize_room_type(room.room_type))
            for room in rooms
        }

    def __len__(self) -> int:
        return len(self._rooms)

    def rooms(self) -> list[Room]:
        return [self._rooms[room_id] for room_id in sorted(self._rooms)]

    def get(self, room_id: int) -> Optional[Room]:
        return self._rooms.get(room_id)

    def bookable_rooms(
        self,
        role: str,
        policy: RoleAccessPolicy,
        filters: Optional[RoomFilters] = None,
    ) -> list[Room]:
        """Rooms the role may book, closed rooms excluded regardless of filters."""
        active_filters = filters or RoomFilters()
        return [
            room
            for room in self.rooms()
            if not room.is_closed
            and policy.can_access_room_type(role, room.room_type)
            and active_filters.matches(room)
        ]
