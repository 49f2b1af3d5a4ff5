"""
Corpus fixture loader.

Seeds a small corpus from a JSON document, for local development and quick
validation of a database:

    {
        "fields": [
            {"name": "field_related", "target_type": "node"},
            {"name": "field_tags", "target_type": "node"}
        ],
        "entities": [
            {"id": 1, "title": "A", "references": {"field_related": [5, 7]}},
            {"id": 2, "title": "B", "references": {"field_related": [7, 9]}}
        ]
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

from .core.config import get_settings
from .core.types import TARGET_TYPE_ENTITY
from .schema import create_reference_field, init_database, save_entity, set_reference_values
from .similarity.fields import ReferenceField

if TYPE_CHECKING:
    from .connection import SQLiteDB
    from .pg_connection import PostgresDB

logger = logging.getLogger(__name__)


def load_corpus(
    db: Union["SQLiteDB", "PostgresDB"],
    data: dict[str, Any],
    entity_type: str | None = None,
) -> dict[str, int]:
    """
    Create the schema, fields and entities described by a fixture document.

    Args:
        db: Database connection (write mode)
        data: Parsed fixture document
        entity_type: Entity type owning the fields (defaults to settings)

    Returns:
        Summary counts: fields, entities, values
    """
    entity_type = entity_type or get_settings().entity_type
    init_database(db)

    fields: dict[str, ReferenceField] = {}
    for spec in data.get("fields", []):
        field = ReferenceField(spec["name"], entity_type)
        create_reference_field(
            db,
            field,
            target_type=spec.get("target_type", TARGET_TYPE_ENTITY),
            enabled=spec.get("enabled", True),
        )
        fields[field.name] = field

    values = 0
    entities = data.get("entities", [])
    for entity in entities:
        save_entity(db, int(entity["id"]), title=entity.get("title"), bundle=entity.get("type", "article"))
        for name, target_ids in (entity.get("references") or {}).items():
            if name not in fields:
                raise KeyError(f"Entity {entity['id']} references undeclared field {name}")
            values += set_reference_values(db, fields[name], int(entity["id"]), target_ids)

    summary = {"fields": len(fields), "entities": len(entities), "values": values}
    logger.info("Loaded corpus fixture: %s", summary)
    return summary


def load_corpus_file(db: Union["SQLiteDB", "PostgresDB"], path: Path) -> dict[str, int]:
    """Load a corpus fixture from a JSON file."""
    with open(path) as f:
        data = json.load(f)
    return load_corpus(db, data)
