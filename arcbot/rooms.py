"""Shared Link Play room board, deduplicated by room code per source."""
from __future__ import annotations

import re
import sqlite3
from datetime import datetime
from typing import Callable, Dict, List, Optional, Pattern

from .config import logger
from .errors import (
    DuplicateRoomError,
    InvalidRoomCodeError,
    NotRoomOwnerError,
    RoomNotFoundError,
    StorageUnavailableError,
)
from .state import RoomEntry, utcnow
from .storage import transaction

ROOM_CODE_FORMATS: Dict[str, Pattern[str]] = {
    "arc": re.compile(r"[0-9A-Za-z]{6}"),
}


def _row_to_entry(row: sqlite3.Row) -> RoomEntry:
    return RoomEntry(
        source=row["source"],
        room_code=row["room_code"],
        description=row["description"],
        publisher_id=row["publisher_id"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class RoomBoard:
    def __init__(
        self,
        con: sqlite3.Connection,
        formats: Optional[Dict[str, Pattern[str]]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._con = con
        self._formats = ROOM_CODE_FORMATS if formats is None else formats
        self._clock = clock

    def validate(self, source: str, room_code: str) -> None:
        pattern = self._formats.get(source)
        if pattern is None or not pattern.fullmatch(room_code):
            raise InvalidRoomCodeError(source, room_code)

    def get(self, source: str, room_code: str) -> Optional[RoomEntry]:
        try:
            row = self._con.execute(
                "SELECT source, room_code, description, publisher_id, created_at FROM rooms "
                "WHERE source = ? AND room_code = ?",
                (source, room_code),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Database unavailable: {e}") from e
        return _row_to_entry(row) if row else None

    def publish(self, source: str, room_code: str, publisher_id: str, description: str = "") -> RoomEntry:
        self.validate(source, room_code)

        existing = self.get(source, room_code)
        if existing is not None:
            raise DuplicateRoomError(existing)

        entry = RoomEntry(source, room_code, description.strip(), publisher_id, self._clock())
        try:
            with transaction(self._con) as con:
                con.execute(
                    "INSERT INTO rooms (source, room_code, description, publisher_id, created_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (entry.source, entry.room_code, entry.description, entry.publisher_id,
                     entry.created_at.isoformat()),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateRoomError(self.get(source, room_code)) from e

        logger.info(f"Room {source}/{room_code} published by {publisher_id}")
        return entry

    def list(self, source: str) -> List[RoomEntry]:
        try:
            rows = self._con.execute(
                "SELECT source, room_code, description, publisher_id, created_at FROM rooms "
                "WHERE source = ? ORDER BY created_at, id",
                (source,),
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Database unavailable: {e}") from e
        return [_row_to_entry(r) for r in rows]

    def withdraw(self, source: str, room_code: str, publisher_id: str) -> RoomEntry:
        entry = self.get(source, room_code)
        if entry is None:
            raise RoomNotFoundError(source, room_code)
        if entry.publisher_id != publisher_id:
            raise NotRoomOwnerError(entry)
        with transaction(self._con) as con:
            con.execute(
                "DELETE FROM rooms WHERE source = ? AND room_code = ? AND publisher_id = ?",
                (source, room_code, publisher_id),
            )
        logger.info(f"Room {source}/{room_code} withdrawn by {publisher_id}")
        return entry
