"""
Tests for translating a similarity result into a listing query fragment.
"""

import pytest

from similar_references.core.types import MatchMode, SortOrder
from similar_references.query_builder import JOIN_INNER, JOIN_LEFT, Column, Condition, SelectQuery
from similar_references.similarity import (
    SCORE_ALIAS,
    BaseRelation,
    FieldOverlapResult,
    QueryPlanBuilder,
    ReferenceField,
)

RELATED = ReferenceField("field_related")
TAGS = ReferenceField("field_tags")


def overlap(field, targets, shared):
    return FieldOverlapResult(
        field,
        frozenset(targets),
        {entity_id: frozenset(ids) for entity_id, ids in shared.items()},
    )


MATERIAL = (
    overlap(RELATED, {5, 7}, {1: {5, 7}, 2: {7}, 3: {5}}),
    overlap(TAGS, {2}, {1: {2}, 3: {2}}),
)


def listing(fragment):
    query = SelectQuery("node_field_data", "base", columns=((Column("base", "nid"), "entity_id"),))
    return query.merge(fragment).compile("?")


class TestAnyMatch:
    """Default plan: entities matching at least one field."""

    def test_left_joins_each_field(self):
        fragment = QueryPlanBuilder().build_plan(MATERIAL, [1])

        assert [join.alias for join in fragment.joins] == ["sr_field_related", "sr_field_tags"]
        assert all(join.kind == JOIN_LEFT for join in fragment.joins)

    def test_compiled_sql(self):
        sql, params = listing(QueryPlanBuilder().build_plan(MATERIAL, [1]))

        assert sql == (
            "SELECT base.nid AS entity_id, "
            "COUNT(DISTINCT sr_field_related.entity_id) + COUNT(DISTINCT sr_field_tags.entity_id) AS similarity "
            "FROM node_field_data base "
            "LEFT JOIN node__field_related sr_field_related ON base.nid = sr_field_related.entity_id "
            "AND sr_field_related.entity_id IN (?, ?, ?) "
            "LEFT JOIN node__field_tags sr_field_tags ON base.nid = sr_field_tags.entity_id "
            "AND sr_field_tags.entity_id IN (?, ?) "
            "WHERE base.nid IN (?, ?, ?) AND base.nid NOT IN (?) "
            "GROUP BY base.nid "
            "ORDER BY similarity DESC"
        )
        assert params == [1, 2, 3, 1, 3, 1, 2, 3, 1]

    def test_include_source_drops_exclusion(self):
        fragment = QueryPlanBuilder().build_plan(MATERIAL, [1], include_source=True)
        sql, params = listing(fragment)

        assert "NOT IN" not in sql
        assert params[-3:] == [1, 2, 3]


class TestAllMatch:
    """Every field must match."""

    def test_inner_joins_and_filters(self):
        fragment = QueryPlanBuilder().build_plan(MATERIAL, [1], match=MatchMode.all)
        sql, params = listing(fragment)

        assert all(join.kind == JOIN_INNER for join in fragment.joins)
        assert (
            "WHERE sr_field_related.entity_id IN (?, ?, ?) "
            "AND sr_field_tags.entity_id IN (?, ?) "
            "AND base.nid NOT IN (?)"
        ) in sql
        assert params == [1, 2, 3, 1, 3, 1]

    def test_accepts_string_mode(self):
        fragment = QueryPlanBuilder().build_plan(MATERIAL, [1], match="all")
        assert all(join.kind == JOIN_INNER for join in fragment.joins)


class TestPlanShape:
    def test_groups_by_base_id(self):
        fragment = QueryPlanBuilder().build_plan(MATERIAL, [1])
        assert fragment.group_by == (Column("base", "nid"),)

    def test_score_alias(self):
        fragment = QueryPlanBuilder().build_plan(MATERIAL, [1])
        assert fragment.aggregates[0].alias == SCORE_ALIAS == "similarity"

    def test_ascending_order(self):
        sql, _ = listing(QueryPlanBuilder().build_plan(MATERIAL, [1], order=SortOrder.ASC))
        assert sql.endswith("ORDER BY similarity ASC")

    def test_no_order(self):
        fragment = QueryPlanBuilder().build_plan(MATERIAL, [1], order=None)
        assert fragment.order_by == ()

    def test_custom_base_relation(self):
        builder = QueryPlanBuilder(BaseRelation(alias="base", id_column="uid"))
        fragment = builder.build_plan(MATERIAL[:1], [1])
        assert fragment.joins[0].left == Column("base", "uid")

    def test_nothing_material_matches_nothing(self):
        sql, params = listing(QueryPlanBuilder().build_plan((), [1]))

        assert "WHERE 1 = 0 AND base.nid NOT IN (?)" in sql
        assert "0 AS similarity" in sql
        assert params == [1]

    def test_merges_with_host_query_without_clobbering(self):
        published = Condition.eq(Column("base", "status"), True)
        query = SelectQuery("node_field_data", "base", columns=(Column("base", "nid"),))
        query.where(published)
        query.merge(QueryPlanBuilder().build_plan(MATERIAL, [1]))
        sql, params = query.compile("?")

        assert query.fragment.conditions[0] == published
        assert sql.count("LEFT JOIN") == 2
        assert "WHERE base.status = ? AND base.nid IN (?, ?, ?)" in sql
        assert params[5:7] == [True, 1]

    def test_same_field_twice_is_rejected(self):
        fragment = QueryPlanBuilder().build_plan(MATERIAL[:1], [1])
        query = SelectQuery("node_field_data", "base").merge(fragment)
        with pytest.raises(ValueError):
            query.merge(fragment)
