"""
Durable resume snapshot: the last track that successfully started playing.

Stored as catalog-shaped JSON under a single well-known key in the local
SQLite key/value table. Read once at startup, overwritten on every successful
play, never merged.
"""

import json
import sqlite3
from pathlib import Path
from typing import Optional

from loguru import logger

from encore.core import database

from ..library.models import Track
from .exceptions import PersistenceError

LAST_PLAYED_KEY = "lastPlayedTrack"


class ResumeStore:
    """save/load/clear for the last played track."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path
        try:
            database.init_database(db_path)
        except (sqlite3.Error, OSError) as e:
            # load() degrades to None and save() raises PersistenceError
            logger.warning(f"Resume store unavailable: {e}")

    def save(self, track: Track) -> None:
        """Overwrite the snapshot.

        Raises:
            PersistenceError: If the write fails
        """
        try:
            database.set_value(LAST_PLAYED_KEY, json.dumps(track.to_dict()), self.db_path)
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(f"Could not save resume snapshot: {e}") from e

    def load(self) -> Optional[Track]:
        """Read the snapshot; corrupt or unreadable data reads as None."""
        try:
            raw = database.get_value(LAST_PLAYED_KEY, self.db_path)
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"Could not read resume snapshot: {e}")
            return None

        if raw is None:
            return None

        try:
            return Track.from_dict(json.loads(raw))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Discarding unreadable resume snapshot: {e}")
            try:
                self.clear()
            except PersistenceError:
                logger.exception("Failed to clear unreadable resume snapshot")
            return None

    def clear(self) -> None:
        """Remove the snapshot.

        Raises:
            PersistenceError: If the delete fails
        """
        try:
            database.delete_value(LAST_PLAYED_KEY, self.db_path)
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(f"Could not clear resume snapshot: {e}") from e
