"""
SQLite connection manager for the corpus row store.

Provides a unified interface for database operations with support for
both read-only (production) and read-write (development) modes.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Optional


class SQLiteDB:
    """
    SQLite database connection manager.

    Provides context-managed access to the corpus database with
    read-only mode support for production.
    """

    # Parameter placeholder used when compiling queries for this backend
    placeholder = "?"

    def __init__(
        self,
        db_path: Optional[Path] = None,
        read_only: bool = False,
    ):
        """
        Initialize the database connection manager.

        Args:
            db_path: Path to the SQLite database file. Defaults to the configured sqlite_path.
            read_only: If True, opens database in read-only mode (for production)
        """
        if db_path is None:
            from .core.config import get_settings

            db_path = get_settings().sqlite_path
        self.db_path = Path(db_path)
        self.read_only = read_only
        self._connection: Optional[sqlite3.Connection] = None

    def _get_connection_uri(self) -> str:
        """Build the SQLite connection URI."""
        uri = f"file:{self.db_path}"
        if self.read_only:
            uri += "?mode=ro"
        return uri

    def _create_connection(self) -> sqlite3.Connection:
        """Create a new database connection."""
        # Ensure directory exists for write mode
        if not self.read_only:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            self._get_connection_uri(),
            uri=True,
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )

        conn.execute("PRAGMA foreign_keys = ON")
        if not self.read_only:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")

        # Return dicts instead of tuples
        conn.row_factory = sqlite3.Row

        return conn

    @property
    def connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._connection is None:
            self._connection = self._create_connection()
        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def execute(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute a single query."""
        return self.connection.execute(query, params)

    def executemany(self, query: str, params_list: list[tuple]) -> sqlite3.Cursor:
        """Execute a query with multiple parameter sets."""
        return self.connection.executemany(query, params_list)

    def fetchone(self, query: str, params: tuple = ()) -> Optional[dict[str, Any]]:
        """Execute a query and fetch one result as a dict."""
        cur = self.execute(query, params)
        row = cur.fetchone()
        return dict(row) if row else None

    def fetchall(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute a query and fetch all results as dicts."""
        cur = self.execute(query, params)
        return [dict(row) for row in cur.fetchall()]

    def exists(self) -> bool:
        """Check if the database file exists."""
        return self.db_path.exists()

    def table_exists(self, table_name: str) -> bool:
        """Check whether a relation exists."""
        result = self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name = ?",
            (table_name,),
        )
        return result is not None

    def is_initialized(self) -> bool:
        """Check if the database has been initialized with schema."""
        if not self.exists():
            return False
        return self.table_exists("meta")

    def get_meta(self, key: str) -> Optional[str]:
        """Get a metadata value."""
        result = self.fetchone("SELECT value FROM meta WHERE key = ?", (key,))
        return result["value"] if result else None

    def set_meta(self, key: str, value: str) -> None:
        """Set a metadata value."""
        self.execute(
            "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
            (key, value),
        )


# Global instance
_sqlite_db: Optional[SQLiteDB] = None


def get_sqlite_db(read_only: bool = False) -> SQLiteDB:
    """
    Get the global SQLite database instance.

    Args:
        read_only: Open the database in read-only mode

    Returns:
        SQLiteDB instance
    """
    global _sqlite_db

    if _sqlite_db is None:
        _sqlite_db = SQLiteDB(read_only=read_only)

    return _sqlite_db


def close_sqlite_db() -> None:
    """Close the global SQLite database connection."""
    global _sqlite_db
    if _sqlite_db is not None:
        _sqlite_db.close()
        _sqlite_db = None
