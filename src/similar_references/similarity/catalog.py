"""
Reference field catalog lookups.

The catalog answers one question: which reference fields are active on an
entity type for a given target type. Similarity evaluation consumes it to
default the field selection and to prune fields that no longer exist.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Protocol, runtime_checkable

from ..core.types import ENTITY_REFERENCE, FIELD_CATALOG_TABLE
from ..query_builder import Column, Condition, OrderBy, SelectQuery

logger = logging.getLogger(__name__)


@runtime_checkable
class ReferenceFieldCatalog(Protocol):
    """Lookup of active reference field names."""

    def reference_fields(self, entity_type: str, target_type: str) -> list[str]:
        """Return names of enabled, non-deleted reference fields on entity_type pointing at target_type."""
        ...


class DatabaseFieldCatalog:
    """Catalog backed by the field_storage_config relation."""

    def __init__(self, db: Any):
        """
        Args:
            db: Database connection (SQLiteDB or PostgresDB)
        """
        self.db = db

    def reference_fields(self, entity_type: str, target_type: str) -> list[str]:
        cfg = Column("cfg", "field_name")
        query = SelectQuery(FIELD_CATALOG_TABLE, "cfg", columns=(cfg,))
        query.where(Condition.eq(Column("cfg", "entity_type"), entity_type))
        query.where(Condition.eq(Column("cfg", "type"), ENTITY_REFERENCE))
        query.where(Condition.eq(Column("cfg", "target_type"), target_type))
        query.where(Condition.eq(Column("cfg", "deleted"), False))
        query.where(Condition.eq(Column("cfg", "status"), True))
        query.order(OrderBy(cfg))

        sql, params = query.compile(self.db.placeholder)
        rows = self.db.fetchall(sql, tuple(params))
        return [row["field_name"] for row in rows]


class StaticFieldCatalog:
    """
    Catalog from a fixed mapping of target type to field names.

    Useful when the field configuration lives outside the row store.
    """

    def __init__(self, fields_by_target: Mapping[str, Iterable[str]], entity_type: str = "node"):
        self.entity_type = entity_type
        self._fields = {target: list(names) for target, names in fields_by_target.items()}

    def reference_fields(self, entity_type: str, target_type: str) -> list[str]:
        if entity_type != self.entity_type:
            return []
        return list(self._fields.get(target_type, []))


def collect_reference_fields(
    catalog: ReferenceFieldCatalog,
    entity_type: str,
    target_types: Iterable[str],
) -> list[str]:
    """Union of field names across target types, in first-seen order."""
    names: dict[str, None] = {}
    for target_type in target_types:
        for name in catalog.reference_fields(entity_type, target_type):
            names.setdefault(name, None)
    logger.debug("Catalog fields for %s: %s", entity_type, list(names))
    return list(names)
