"""
Per-field overlap search.

Finds every entity that references at least one of a set of target ids
through a given field.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Iterable, Mapping

from ..query_builder import Column, Condition, SelectQuery
from .fields import ReferenceField

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldOverlapResult:
    """
    Overlap found through one field.

    shared_targets maps each matching entity to the source targets it also
    references. Entities that share nothing are absent, never present with
    an empty set.
    """

    field: ReferenceField
    target_ids: frozenset[int]
    shared_targets: Mapping[int, frozenset[int]] = dataclass_field(default_factory=dict)

    @property
    def entity_ids(self) -> frozenset[int]:
        return frozenset(self.shared_targets)

    def __len__(self) -> int:
        return len(self.shared_targets)

    def __bool__(self) -> bool:
        return bool(self.shared_targets)

    @property
    def is_material(self) -> bool:
        """Both the source targets and the overlap are non-empty."""
        return bool(self.target_ids) and bool(self.shared_targets)


class OverlapFinder:
    """Finds entities sharing target ids through one field."""

    def __init__(self, db: Any):
        self.db = db

    def find_overlap(self, field: ReferenceField, target_ids: Iterable[int]) -> FieldOverlapResult:
        """
        Get the entities referencing any of target_ids through field.

        An empty target set returns an empty result without querying: an
        unconstrained membership filter must never turn into "match everything".
        """
        target_ids = frozenset(target_ids)
        if not target_ids:
            return FieldOverlapResult(field, target_ids)

        owner = Column("fd", field.owner_column)
        target = Column("fd", field.column)
        query = SelectQuery(field.table, "fd", columns=(owner, target), distinct=True)
        query.where(Condition.is_in(target, sorted(target_ids)))

        sql, params = query.compile(self.db.placeholder)
        rows = self.db.fetchall(sql, tuple(params))

        shared: dict[int, set[int]] = {}
        for row in rows:
            shared.setdefault(int(row[field.owner_column]), set()).add(int(row[field.column]))

        logger.debug(
            "Field %s: %d entities share %d target ids",
            field.name, len(shared), len(target_ids),
        )
        return FieldOverlapResult(
            field,
            target_ids,
            {entity_id: frozenset(targets) for entity_id, targets in shared.items()},
        )
