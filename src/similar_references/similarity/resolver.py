"""
Target id resolution for a single source entity.
"""

from __future__ import annotations

import logging
from typing import Any

from ..query_builder import Column, Condition, SelectQuery
from .fields import ReferenceField

logger = logging.getLogger(__name__)


class TargetIdResolver:
    """Reads the ids a source entity references through one field."""

    def __init__(self, db: Any):
        self.db = db

    def resolve(self, field: ReferenceField, source_entity_id: int) -> frozenset[int]:
        """
        Get the distinct non-zero target ids stored for an entity in a field.

        Zero means "no reference" and is never returned, even when stored.
        An entity with no values yields an empty set.
        """
        target = Column("fd", field.column)
        query = SelectQuery(field.table, "fd", columns=(target,), distinct=True)
        query.where(Condition.eq(Column("fd", field.owner_column), source_entity_id))

        sql, params = query.compile(self.db.placeholder)
        rows = self.db.fetchall(sql, tuple(params))

        target_ids = frozenset(
            int(row[field.column]) for row in rows if row[field.column]
        )
        logger.debug(
            "Resolved %d target ids for entity %s via %s",
            len(target_ids), source_entity_id, field.name,
        )
        return target_ids
