"""
Database schema management for the corpus row store.

Creates the primary entity relation, the field catalog relation and one
value relation per reference field. DDL is kept to the subset understood by
both SQLite and PostgreSQL.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional, Union

from .core.config import get_settings
from .core.types import ENTITY_REFERENCE, FIELD_CATALOG_TABLE, TARGET_TYPE_ENTITY
from .query_builder import build_upsert, validate_identifier
from .similarity.fields import DELTA_COLUMN, OWNER_COLUMN, ReferenceField

if TYPE_CHECKING:
    from .connection import SQLiteDB
    from .pg_connection import PostgresDB

    Database = Union[SQLiteDB, PostgresDB]

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


def _core_ddl(base_table: str, base_id_column: str) -> list[str]:
    validate_identifier(base_table)
    validate_identifier(base_id_column)
    return [
        """
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {base_table} (
            {base_id_column} INTEGER PRIMARY KEY,
            type TEXT NOT NULL DEFAULT 'article',
            title TEXT,
            status BOOLEAN NOT NULL DEFAULT TRUE
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {FIELD_CATALOG_TABLE} (
            entity_type TEXT NOT NULL,
            field_name TEXT NOT NULL,
            type TEXT NOT NULL,
            target_type TEXT,
            deleted BOOLEAN NOT NULL DEFAULT FALSE,
            status BOOLEAN NOT NULL DEFAULT TRUE,
            PRIMARY KEY (entity_type, field_name)
        )
        """,
    ]


def init_database(
    db: "Database",
    base_table: Optional[str] = None,
    base_id_column: Optional[str] = None,
) -> None:
    """
    Initialize the database with the core schema.

    Args:
        db: Database connection (must be in write mode)
        base_table: Primary entity relation (defaults to settings)
        base_id_column: Entity id column (defaults to settings)
    """
    if getattr(db, "read_only", False):
        raise RuntimeError("Cannot initialize database in read-only mode")

    settings = get_settings()
    base_table = base_table or settings.base_table
    base_id_column = base_id_column or settings.base_id_column

    logger.info("Initializing corpus schema (base relation %s)", base_table)
    for statement in _core_ddl(base_table, base_id_column):
        db.execute(statement)
    db.set_meta("schema_version", SCHEMA_VERSION)


def create_reference_field(
    db: "Database",
    field: ReferenceField,
    target_type: str = TARGET_TYPE_ENTITY,
    enabled: bool = True,
) -> None:
    """
    Register a reference field in the catalog and create its value relation.

    Args:
        db: Database connection
        field: Field to create
        target_type: Entity type the field points at ("node" or "user")
        enabled: Catalog status flag
    """
    db.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {field.table} (
            {OWNER_COLUMN} INTEGER NOT NULL,
            {DELTA_COLUMN} INTEGER NOT NULL,
            {field.column} INTEGER NOT NULL,
            PRIMARY KEY ({OWNER_COLUMN}, {DELTA_COLUMN})
        )
        """
    )
    db.execute(
        f"CREATE INDEX IF NOT EXISTS {field.table}_target ON {field.table} ({field.column})"
    )
    db.execute(
        build_upsert(
            FIELD_CATALOG_TABLE,
            ["entity_type", "field_name", "type", "target_type", "deleted", "status"],
            ["entity_type", "field_name"],
            placeholder=db.placeholder,
        ),
        (field.entity_type, field.name, ENTITY_REFERENCE, target_type, False, enabled),
    )
    logger.debug("Created reference field %s -> %s", field.table, target_type)


def mark_field_deleted(db: "Database", field: ReferenceField) -> None:
    """Flag a field as deleted in the catalog, leaving its stored values in place."""
    p = db.placeholder
    db.execute(
        f"UPDATE {FIELD_CATALOG_TABLE} SET deleted = {p} WHERE entity_type = {p} AND field_name = {p}",
        (True, field.entity_type, field.name),
    )


def save_entity(
    db: "Database",
    entity_id: int,
    title: Optional[str] = None,
    bundle: str = "article",
    base_table: Optional[str] = None,
    base_id_column: Optional[str] = None,
) -> None:
    """Insert or update one row of the primary entity relation."""
    settings = get_settings()
    base_table = base_table or settings.base_table
    base_id_column = base_id_column or settings.base_id_column
    db.execute(
        build_upsert(
            base_table,
            [base_id_column, "type", "title"],
            [base_id_column],
            placeholder=db.placeholder,
        ),
        (entity_id, bundle, title),
    )


def set_reference_values(
    db: "Database",
    field: ReferenceField,
    entity_id: int,
    target_ids: Iterable[int],
) -> int:
    """
    Replace the values an entity stores in a reference field.

    Returns:
        Number of values written
    """
    p = db.placeholder
    values = [
        (entity_id, delta, int(target_id)) for delta, target_id in enumerate(target_ids)
    ]
    db.execute(f"DELETE FROM {field.table} WHERE {OWNER_COLUMN} = {p}", (entity_id,))
    if values:
        db.executemany(
            f"INSERT INTO {field.table} ({OWNER_COLUMN}, {DELTA_COLUMN}, {field.column}) "
            f"VALUES ({p}, {p}, {p})",
            values,
        )
    return len(values)


def get_schema_version(db: "Database") -> str:
    """Get the current schema version."""
    if not db.is_initialized():
        return "0.0"

    result = db.get_meta("schema_version")
    return result or "unknown"


def get_table_counts(db: "Database", tables: Iterable[str]) -> dict[str, int]:
    """Get row counts for the given tables."""
    counts = {}
    for table in tables:
        validate_identifier(table)
        result = db.fetchone(f"SELECT COUNT(*) AS count FROM {table}")
        counts[table] = result["count"] if result else 0
    return counts
