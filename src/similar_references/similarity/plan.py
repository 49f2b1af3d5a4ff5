"""
Translation of a similarity result into a listing query fragment.

The fragment joins each material field's value relation onto the primary
entity relation, restricts rows to entities that overlapped, optionally
drops the source entities, groups back to one row per entity and selects
the similarity score so listings can sort and display it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from ..core.types import MatchMode, SortOrder
from ..query_builder import (
    JOIN_INNER,
    JOIN_LEFT,
    Column,
    Condition,
    DistinctCountSum,
    Join,
    OrderBy,
    QueryFragment,
)
from .overlap import FieldOverlapResult

logger = logging.getLogger(__name__)

SCORE_ALIAS = "similarity"


@dataclass(frozen=True)
class BaseRelation:
    """The primary entity relation a plan is joined onto."""

    alias: str = "base"
    id_column: str = "nid"

    @property
    def id(self) -> Column:
        return Column(self.alias, self.id_column)


class QueryPlanBuilder:
    """Builds the similarity query fragment from material fields."""

    def __init__(self, base: Optional[BaseRelation] = None):
        self.base = base or BaseRelation()

    def build_plan(
        self,
        material_fields: Sequence[FieldOverlapResult],
        source_entity_ids: Iterable[int],
        include_source: bool = False,
        match: MatchMode = MatchMode.any,
        order: Optional[SortOrder] = SortOrder.DESC,
    ) -> QueryFragment:
        """
        Build joins, filters, grouping, score and sort for a listing query.

        match=any: each field is LEFT JOINed with its matched entities in the
        ON clause, and one inclusion filter keeps entities that matched any
        field. match=all: each field is INNER JOINed and filtered to its own
        matched entities, so only entities matching every field survive.

        Args:
            material_fields: Fields that survived pruning, in evaluation order
            source_entity_ids: Source entities of the evaluation
            include_source: Keep the sources eligible for their own rows
            match: How multiple fields combine
            order: Sort direction on the score, or None for no sort

        Returns:
            Immutable fragment to merge into the listing query
        """
        match = MatchMode(match)
        base_id = self.base.id
        joins: list[Join] = []
        conditions: list[Condition] = []
        matched: dict[int, None] = {}

        for overlap in material_fields:
            field = overlap.field
            entity_ids = sorted(overlap.entity_ids)
            owner = Column(field.alias, field.owner_column)
            membership = Condition.is_in(owner, entity_ids)

            if match == MatchMode.all:
                joins.append(Join(field.table, field.alias, base_id, field.owner_column, JOIN_INNER))
                conditions.append(membership)
            else:
                joins.append(
                    Join(field.table, field.alias, base_id, field.owner_column, JOIN_LEFT, (membership,))
                )
            matched.update(dict.fromkeys(entity_ids))

        if match == MatchMode.any:
            # Empty when no field is material, which compiles to a false predicate
            conditions.append(Condition.is_in(base_id, sorted(matched)))

        if not include_source:
            conditions.append(Condition.not_in(base_id, sorted(set(source_entity_ids))))

        score = DistinctCountSum(
            tuple(Column(overlap.field.alias, overlap.field.owner_column) for overlap in material_fields),
            SCORE_ALIAS,
        )
        order_by = (OrderBy(SCORE_ALIAS, SortOrder(order)),) if order else ()

        logger.debug(
            "Built %s-match plan over %d fields (%d candidate entities)",
            match.value, len(joins), len(matched),
        )
        return QueryFragment(
            joins=tuple(joins),
            conditions=tuple(conditions),
            group_by=(base_id,),
            aggregates=(score,),
            order_by=order_by,
        )
