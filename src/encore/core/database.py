"""
SQLite database operations for Encore

Only a small key/value table lives here; the remote service owns everything else.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .config import get_data_dir

# Database schema version for migrations
SCHEMA_VERSION = 1


def get_database_path() -> Path:
    """Get the path to the SQLite database file."""
    return get_data_dir() / "encore.db"


@contextmanager
def get_db_connection(db_path: Optional[Path] = None) -> Iterator[sqlite3.Connection]:
    """Get a database connection with proper cleanup and concurrency support."""
    path = db_path or get_database_path()
    conn = sqlite3.connect(path, timeout=30.0)
    conn.row_factory = sqlite3.Row

    # WAL mode allows reads during writes
    conn.execute("PRAGMA journal_mode=WAL")

    try:
        yield conn
    finally:
        conn.close()


def init_database(db_path: Optional[Path] = None) -> None:
    """Initialize the database with required tables."""
    path = db_path or get_database_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(path) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.execute(
            "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        conn.commit()


def get_value(key: str, db_path: Optional[Path] = None) -> Optional[str]:
    """Read a value from the key/value table, or None if absent."""
    with get_db_connection(db_path) as conn:
        cursor = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row["value"] if row else None


def set_value(key: str, value: str, db_path: Optional[Path] = None) -> None:
    """Write (overwrite) a value in the key/value table."""
    with get_db_connection(db_path) as conn:
        conn.execute(
            """
            INSERT OR REPLACE INTO kv_store (key, value, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            """,
            (key, value),
        )
        conn.commit()


def delete_value(key: str, db_path: Optional[Path] = None) -> None:
    """Remove a key from the key/value table."""
    with get_db_connection(db_path) as conn:
        conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        conn.commit()
