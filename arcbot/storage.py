from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from .config import logger
from .errors import StorageUnavailableError


# Declared once; uniqueness is enforced by the store, not by callers.
SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS bindings (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      platform TEXT NOT NULL,
      user_id TEXT NOT NULL,
      external_id TEXT NOT NULL,
      external_name TEXT NOT NULL,
      UNIQUE (platform, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS rooms (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      source TEXT NOT NULL,
      room_code TEXT NOT NULL,
      description TEXT NOT NULL DEFAULT '',
      publisher_id TEXT NOT NULL,
      created_at TEXT NOT NULL,
      UNIQUE (source, room_code)
    )
    """,
)


def open_database(path: str) -> sqlite3.Connection:
    """Open the sqlite store and make sure the schema exists."""
    try:
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        con = sqlite3.connect(path)
        con.row_factory = sqlite3.Row
        for stmt in SCHEMA:
            con.execute(stmt)
        con.commit()
    except (sqlite3.Error, OSError) as e:
        logger.error(f"Could not open database {path}: {e}")
        raise StorageUnavailableError(f"Database unavailable: {e}") from e
    logger.info(f"Database ready at {path}")
    return con


@contextmanager
def transaction(con: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Commit on success, roll back on error.

    IntegrityError is re-raised untouched so callers can translate constraint
    violations; any other sqlite failure becomes StorageUnavailableError.
    """
    try:
        with con:
            yield con
    except sqlite3.IntegrityError:
        raise
    except sqlite3.Error as e:
        logger.error(f"Database error: {e}")
        raise StorageUnavailableError(f"Database unavailable: {e}") from e
