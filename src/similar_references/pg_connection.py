"""
PostgreSQL connection manager.

Provides a unified interface matching SQLiteDB but using PostgreSQL via psycopg3.
Supports connection pooling for production workloads.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional, Union

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from .connection import SQLiteDB, close_sqlite_db, get_sqlite_db
from .core.config import get_settings


class PostgresDB:
    """
    PostgreSQL database connection manager.

    Provides the same interface as SQLiteDB for drop-in compatibility,
    with connection pooling for production performance.
    """

    # Parameter placeholder used when compiling queries for this backend
    placeholder = "%s"

    def __init__(
        self,
        connection_string: Optional[str] = None,
        min_pool_size: int = 1,
        max_pool_size: Optional[int] = None,
    ):
        """
        Initialize the PostgreSQL connection manager.

        Args:
            connection_string: PostgreSQL connection URL. Defaults to the DATABASE_URL setting.
            min_pool_size: Minimum connections to keep in pool.
            max_pool_size: Maximum connections in pool. Defaults to the DATABASE_POOL_SIZE setting.
        """
        settings = get_settings()
        self.connection_string = connection_string or settings.database_url
        if not self.connection_string:
            raise ValueError(
                "DATABASE_URL environment variable required or connection_string must be provided"
            )

        self._max_pool_size = max_pool_size or settings.database_pool_size
        self._min_pool_size = min_pool_size

        self._pool = ConnectionPool(
            self.connection_string,
            min_size=self._min_pool_size,
            max_size=self._max_pool_size,
            kwargs={"row_factory": dict_row},
            open=False,
        )

    def open(self) -> None:
        """Open the pool and wait for min_size connections."""
        self._pool.open(wait=True)

    @contextmanager
    def get_connection(self) -> Iterator[psycopg.Connection]:
        """Get a connection from the pool."""
        if self._pool.closed:
            self.open()
        with self._pool.connection() as conn:
            yield conn

    def execute(self, query: str, params: tuple = ()) -> None:
        """Execute a single query without returning results."""
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
            conn.commit()

    def executemany(self, query: str, params_list: list[tuple]) -> None:
        """Execute a query with multiple parameter sets."""
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.executemany(query, params_list)
            conn.commit()

    def fetchone(self, query: str, params: tuple = ()) -> Optional[dict[str, Any]]:
        """Execute a query and fetch one result as a dict."""
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                row = cur.fetchone()
                return dict(row) if row else None

    def fetchall(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute a query and fetch all results as dicts."""
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return [dict(row) for row in cur.fetchall()]

    def close(self) -> None:
        """Close the connection pool."""
        self._pool.close()

    def table_exists(self, table_name: str) -> bool:
        """Check whether a relation exists."""
        result = self.fetchone(
            "SELECT EXISTS(SELECT 1 FROM information_schema.tables WHERE table_name = %s) AS exists",
            (table_name,),
        )
        return bool(result and result["exists"])

    def is_initialized(self) -> bool:
        """Check if the database has been initialized with schema."""
        return self.table_exists("meta")

    def get_meta(self, key: str) -> Optional[str]:
        """Get a metadata value."""
        result = self.fetchone("SELECT value FROM meta WHERE key = %s", (key,))
        return result["value"] if result else None

    def set_meta(self, key: str, value: str) -> None:
        """Set a metadata value."""
        self.execute(
            """
            INSERT INTO meta (key, value) VALUES (%s, %s)
            ON CONFLICT (key) DO UPDATE SET value = excluded.value
            """,
            (key, value),
        )


# Global instance
_postgres_db: Optional[PostgresDB] = None


def get_postgres_db() -> PostgresDB:
    """
    Get the global PostgreSQL database instance.

    Returns:
        PostgresDB instance
    """
    global _postgres_db

    if _postgres_db is None:
        _postgres_db = PostgresDB()

    return _postgres_db


def close_postgres_db() -> None:
    """Close the global PostgreSQL database connection."""
    global _postgres_db
    if _postgres_db is not None:
        _postgres_db.close()
        _postgres_db = None


# =========================================================================
# Database Factory - Choose between SQLite and PostgreSQL
# =========================================================================


def get_db(use_postgres: Optional[bool] = None) -> Union[PostgresDB, SQLiteDB]:
    """
    Get a database instance based on configuration.

    Args:
        use_postgres: Force PostgreSQL if True, SQLite if False.
                     If None, PostgreSQL is used when DATABASE_URL is configured.

    Returns:
        Database instance (PostgresDB or SQLiteDB)
    """
    if use_postgres is None:
        use_postgres = get_settings().use_postgres

    if use_postgres:
        return get_postgres_db()
    # Fall back to SQLite for local development
    return get_sqlite_db(read_only=False)


def close_db() -> None:
    """Close whichever global database instances are open."""
    close_postgres_db()
    close_sqlite_db()
