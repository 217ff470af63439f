"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Optional, Sequence

from roombooking.domain.models import (
    Booking,
    BookingType,
    RecurrenceType,
    RecurringSeries,
    Room,
)
from roombooking.repository.interfaces import BookingOverlapError
from roombooking.utils.config import Settings, get_settings
from roombooking.utils.logger import get_logger


logger = get_logger(__name__)

OVERLAP_ABORT_MESSAGE = "booking overlaps an existing booking in the same room"

_BOOKING_COLUMNS = """
    id,
    room_id,
    user_id,
    title,
    start_time,
    end_time,
    booking_type,
    parent_repeating_id
"""


def _to_db_datetime(value: datetime) -> str:
    return value.replace(microsecond=0).isoformat(timespec="seconds")


def _to_db_time(value: time) -> str:
    return value.replace(microsecond=0).isoformat(timespec="seconds")


def _row_to_room(row: sqlite3.Row) -> Room:
    return Room(
        room_id=int(row["id"]),
        name=str(row["name"]),
        room_type=row["room_type"],
        capacity=int(row["capacity"]),
        floor=None if row["floor"] is None else int(row["floor"]),
        has_whiteboard=bool(row["has_whiteboard"]),
        has_screen=bool(row["has_screen"]),
        has_board=bool(row["has_board"]),
        is_closed=bool(row["is_closed"]),
    )


def _row_to_booking(row: sqlite3.Row) -> Booking:
    return Booking(
        booking_id=int(row["id"]),
        room_id=int(row["room_id"]),
        user_id=row["user_id"],
        title=row["title"],
        start_time=datetime.fromisoformat(str(row["start_time"])),
        end_time=datetime.fromisoformat(str(row["end_time"])),
        booking_type=BookingType(row["booking_type"] or BookingType.NORMAL.value),
        parent_repeating_id=(
            None if row["parent_repeating_id"] is None else int(row["parent_repeating_id"])
        ),
    )


def _row_to_series(row: sqlite3.Row) -> RecurringSeries:
    return RecurringSeries(
        series_id=int(row["id"]),
        room_id=int(row["room_id"]),
        title=str(row["title"]),
        start_date=date.fromisoformat(str(row["start_date"])),
        start_time=time.fromisoformat(str(row["start_time"])),
        end_time=time.fromisoformat(str(row["end_time"])),
        recurrence_type=RecurrenceType(row["recurrence_type"]),
        recurrence_end_date=date.fromisoformat(str(row["recurrence_end_date"])),
        is_active=bool(row["is_active"]),
        created_by=row["created_by"],
        created_at=datetime.fromisoformat(str(row["created_at"])),
    )


class DataRepository:
    """Encapsulates SQLite access so booking logic stays storage-agnostic.

    Implements the room, booking and series repository contracts. The
    ``Bookings`` table carries an overlap trigger, so two writers racing on
    the same slot cannot both commit even if both passed validation against
    a stale snapshot.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Rooms (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL,
                        room_type TEXT,
                        capacity INTEGER NOT NULL CHECK (capacity > 0),
                        floor INTEGER,
                        has_whiteboard INTEGER NOT NULL DEFAULT 0,
                        has_screen INTEGER NOT NULL DEFAULT 0,
                        has_board INTEGER NOT NULL DEFAULT 0,
                        is_closed INTEGER NOT NULL DEFAULT 0 CHECK (is_closed IN (0,1)),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS RecurringSeries (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        room_id INTEGER NOT NULL,
                        title TEXT NOT NULL,
                        start_date TEXT NOT NULL,
                        start_time TEXT NOT NULL,
                        end_time TEXT NOT NULL,
                        recurrence_type TEXT NOT NULL
                            CHECK (recurrence_type IN ('daily','weekly','biweekly','monthly')),
                        recurrence_end_date TEXT NOT NULL,
                        is_active INTEGER NOT NULL DEFAULT 1,
                        created_by TEXT,
                        created_at TEXT NOT NULL,
                        FOREIGN KEY (room_id) REFERENCES Rooms(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Bookings (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        room_id INTEGER NOT NULL,
                        user_id TEXT,
                        title TEXT,
                        start_time TEXT NOT NULL,
                        end_time TEXT NOT NULL,
                        booking_type TEXT NOT NULL DEFAULT 'normal',
                        parent_repeating_id INTEGER,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        CHECK (end_time > start_time),
                        FOREIGN KEY (room_id) REFERENCES Rooms(id),
                        FOREIGN KEY (parent_repeating_id)
                            REFERENCES RecurringSeries(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    f"""
                    CREATE TRIGGER IF NOT EXISTS trg_bookings_no_overlap
                    BEFORE INSERT ON Bookings
                    FOR EACH ROW
                    WHEN EXISTS (
                        SELECT 1
                        FROM Bookings
                        WHERE room_id = NEW.room_id
                          AND start_time < NEW.end_time
                          AND end_time > NEW.start_time
                    )
                    BEGIN
                        SELECT RAISE(ABORT, '{OVERLAP_ABORT_MESSAGE}');
                    END;
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_room_start
                    ON Bookings(room_id, start_time);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_user_start
                    ON Bookings(user_id, start_time);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_parent
                    ON Bookings(parent_repeating_id);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_rooms_if_empty(self) -> None:
        """Seed a small room set only when the Rooms table is empty."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM Rooms;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Rooms already present; skipping demo seed")
                    return

                rooms = [
                    ("Studierum 1.01", "studierum", 6, 1, 1, 1, 0, 0),
                    ("Studierum 1.02", "studierum", 4, 1, 1, 0, 0, 0),
                    ("Mødelokale 2.10", "møderum", 8, 2, 1, 1, 0, 0),
                    ("Klasse 2.01", "klasseværelse", 30, 2, 1, 1, 1, 0),
                    ("Klasse 3.01", "klasseværelse", 28, 3, 0, 1, 1, 0),
                    ("Auditorium A", "auditorium", 120, 0, 0, 1, 1, 0),
                    ("Studierum 3.05", "studierum", 6, 3, 1, 0, 0, 1),
                ]
                cursor.executemany(
                    """
                    INSERT INTO Rooms (
                        name,
                        room_type,
                        capacity,
                        floor,
                        has_whiteboard,
                        has_screen,
                        has_board,
                        is_closed
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    rooms,
                )
                conn.commit()
            logger.info("Demo room seed completed with %s rooms", len(rooms))
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo room seeding failed: {exc}") from exc

    def create_room(self, room: Room) -> Room:
        """Insert a room and return it with its assigned id."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO Rooms (
                    name,
                    room_type,
                    capacity,
                    floor,
                    has_whiteboard,
                    has_screen,
                    has_board,
                    is_closed
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    room.name,
                    room.room_type,
                    room.capacity,
                    room.floor,
                    int(room.has_whiteboard),
                    int(room.has_screen),
                    int(room.has_board),
                    int(room.is_closed),
                ),
            )
            conn.commit()
            return replace(room, room_id=int(cursor.lastrowid))

    def update_room(self, room: Room) -> bool:
        """Overwrite every editable column of an existing room."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE Rooms
                SET name = ?,
                    room_type = ?,
                    capacity = ?,
                    floor = ?,
                    has_whiteboard = ?,
                    has_screen = ?,
                    has_board = ?,
                    is_closed = ?
                WHERE id = ?;
                """,
                (
                    room.name,
                    room.room_type,
                    room.capacity,
                    room.floor,
                    int(room.has_whiteboard),
                    int(room.has_screen),
                    int(room.has_board),
                    int(room.is_closed),
                    room.room_id,
                ),
            )
            conn.commit()
            return cursor.rowcount > 0

    def delete_room(self, room_id: int) -> int:
        """Delete a room with its series and bookings in one transaction.

        Returns the number of bookings removed.
        """
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM Bookings WHERE room_id = ?;", (room_id,))
            removed = int(cursor.rowcount)
            cursor.execute("DELETE FROM RecurringSeries WHERE room_id = ?;", (room_id,))
            cursor.execute("DELETE FROM Rooms WHERE id = ?;", (room_id,))
            conn.commit()
            return removed

    def list_rooms(self) -> list[Room]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Rooms ORDER BY id ASC;")
            return [_row_to_room(row) for row in cursor.fetchall()]

    def get_room(self, room_id: int) -> Optional[Room]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Rooms WHERE id = ?;", (room_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_room(row)

    def list_for_room(self, room_id: int, day: Optional[date] = None) -> list[Booking]:
        """Return the room's bookings ordered by start, optionally for one day."""
        query = f"SELECT {_BOOKING_COLUMNS} FROM Bookings WHERE room_id = ?"
        params: list[object] = [room_id]
        if day is not None:
            day_start = datetime.combine(day, time.min)
            query += " AND start_time >= ? AND start_time < ?"
            params.extend(
                [
                    _to_db_datetime(day_start),
                    _to_db_datetime(day_start + timedelta(days=1)),
                ]
            )
        query += " ORDER BY start_time ASC, id ASC;"
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(query, tuple(params))
            return [_row_to_booking(row) for row in cursor.fetchall()]

    def list_for_user(self, user_id: str) -> list[Booking]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_BOOKING_COLUMNS}
                FROM Bookings
                WHERE user_id = ?
                ORDER BY start_time ASC, id ASC;
                """,
                (user_id,),
            )
            return [_row_to_booking(row) for row in cursor.fetchall()]

    def list_all_bookings(self) -> list[Booking]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_BOOKING_COLUMNS} FROM Bookings ORDER BY start_time ASC, id ASC;"
            )
            return [_row_to_booking(row) for row in cursor.fetchall()]

    def list_future_for_user(self, user_id: str, now: datetime) -> list[Booking]:
        """Return the user's bookings that have not started yet."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_BOOKING_COLUMNS}
                FROM Bookings
                WHERE user_id = ?
                  AND start_time >= ?
                ORDER BY start_time ASC, id ASC;
                """,
                (user_id, _to_db_datetime(now)),
            )
            return [_row_to_booking(row) for row in cursor.fetchall()]

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_BOOKING_COLUMNS} FROM Bookings WHERE id = ?;",
                (booking_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_booking(row)

    @staticmethod
    def _booking_params(booking: Booking) -> tuple[object, ...]:
        return (
            booking.room_id,
            booking.user_id,
            booking.title,
            _to_db_datetime(booking.start_time),
            _to_db_datetime(booking.end_time),
            BookingType(booking.booking_type).value,
            booking.parent_repeating_id,
        )

    def insert(self, booking: Booking) -> Booking:
        return self.insert_many([booking])[0]

    def insert_many(self, bookings: Sequence[Booking]) -> list[Booking]:
        """Insert all bookings in one transaction; any overlap rolls back the batch."""
        if not bookings:
            return []
        inserted: list[Booking] = []
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                for booking in bookings:
                    cursor.execute(
                        """
                        INSERT INTO Bookings (
                            room_id,
                            user_id,
                            title,
                            start_time,
                            end_time,
                            booking_type,
                            parent_repeating_id
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?);
                        """,
                        self._booking_params(booking),
                    )
                    inserted.append(replace(booking, booking_id=int(cursor.lastrowid)))
                conn.commit()
        except sqlite3.IntegrityError as exc:
            if OVERLAP_ABORT_MESSAGE in str(exc):
                logger.warning("Storage rejected overlapping booking insert: %s", exc)
                raise BookingOverlapError(str(exc)) from exc
            raise
        return inserted

    def delete(self, booking_id: int) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM Bookings WHERE id = ?;", (booking_id,))
            conn.commit()
            return cursor.rowcount > 0

    def delete_by_parent_series(self, series_id: int) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM Bookings WHERE parent_repeating_id = ?;",
                (series_id,),
            )
            conn.commit()
            return int(cursor.rowcount)

    def insert_series(self, series: RecurringSeries) -> RecurringSeries:
        created_at = series.created_at or datetime.now().replace(microsecond=0)
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO RecurringSeries (
                    room_id,
                    title,
                    start_date,
                    start_time,
                    end_time,
                    recurrence_type,
                    recurrence_end_date,
                    is_active,
                    created_by,
                    created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    series.room_id,
                    series.title,
                    series.start_date.isoformat(),
                    _to_db_time(series.start_time),
                    _to_db_time(series.end_time),
                    RecurrenceType(series.recurrence_type).value,
                    series.recurrence_end_date.isoformat(),
                    int(series.is_active),
                    series.created_by,
                    _to_db_datetime(created_at),
                ),
            )
            conn.commit()
            return replace(series, series_id=int(cursor.lastrowid), created_at=created_at)

    def get_series(self, series_id: int) -> Optional[RecurringSeries]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM RecurringSeries WHERE id = ?;", (series_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_series(row)

    def delete_series(self, series_id: int) -> int:
        """Delete a series and its generated bookings in one transaction.

        Returns the number of bookings removed.
        """
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM Bookings WHERE parent_repeating_id = ?;",
                (series_id,),
            )
            removed = int(cursor.rowcount)
            cursor.execute("DELETE FROM RecurringSeries WHERE id = ?;", (series_id,))
            conn.commit()
            return removed

    def count_bookings(self) -> int:
        """Return persisted booking count for diagnostics and tests."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM Bookings;")
            return int(cursor.fetchone()["count"])

    def count_series(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM RecurringSeries;")
            return int(cursor.fetchone()["count"])
