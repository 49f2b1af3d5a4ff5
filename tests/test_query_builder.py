"""
Tests for the typed SELECT builder.

These verify the SQL text and parameter order produced for both
placeholder styles, and that fragments compose without clobbering.
"""

import pytest

from similar_references.core.types import SortOrder
from similar_references.query_builder import (
    JOIN_LEFT,
    Column,
    Condition,
    DistinctCountSum,
    Join,
    OrderBy,
    QueryFragment,
    SelectQuery,
    build_upsert,
    validate_identifier,
)


class TestIdentifiers:
    """Only plain identifiers may reach the SQL text."""

    @pytest.mark.parametrize("name", ["nid", "node__field_tags", "_x1"])
    def test_valid(self, name):
        assert validate_identifier(name) == name

    @pytest.mark.parametrize("name", ["", "1abc", "nid; DROP TABLE x", "a.b", "a-b", None])
    def test_invalid(self, name):
        with pytest.raises(ValueError, match="Invalid SQL identifier"):
            validate_identifier(name)

    def test_column_validates(self):
        with pytest.raises(ValueError):
            Column("base", "nid OR 1=1")


class TestConditions:
    """Conditions compile to bound parameters."""

    def test_eq(self):
        sql, params = Condition.eq(Column("fd", "entity_id"), 7).compile("?")
        assert sql == "fd.entity_id = ?"
        assert params == [7]

    def test_in_expands_placeholders(self):
        sql, params = Condition.is_in(Column("fd", "entity_id"), [1, 2, 3]).compile("%s")
        assert sql == "fd.entity_id IN (%s, %s, %s)"
        assert params == [1, 2, 3]

    def test_empty_in_matches_nothing(self):
        sql, params = Condition.is_in(Column("fd", "entity_id"), []).compile("?")
        assert sql == "1 = 0"
        assert params == []

    def test_empty_not_in_excludes_nothing(self):
        sql, params = Condition.not_in(Column("fd", "entity_id"), []).compile("?")
        assert sql == "1 = 1"
        assert params == []

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            Condition(Column("fd", "entity_id"), "LIKE", ("x",))


class TestSelectQuery:
    """Full query compilation."""

    def test_simple_select(self):
        query = SelectQuery("node__field_tags", "fd", columns=(Column("fd", "entity_id"),))
        query.where(Condition.eq(Column("fd", "entity_id"), 7))
        assert query.compile("?") == (
            "SELECT fd.entity_id FROM node__field_tags fd WHERE fd.entity_id = ?",
            [7],
        )

    def test_distinct(self):
        query = SelectQuery("t", "fd", columns=(Column("fd", "x"),), distinct=True)
        sql, _ = query.compile("?")
        assert sql.startswith("SELECT DISTINCT fd.x")

    def test_join_params_precede_where_params(self):
        base_id = Column("base", "nid")
        join = Join(
            "node__field_tags", "sr_field_tags", base_id, "entity_id", JOIN_LEFT,
            (Condition.is_in(Column("sr_field_tags", "entity_id"), [3, 4]),),
        )
        query = SelectQuery("node_field_data", "base", columns=((base_id, "entity_id"),))
        query.merge(QueryFragment(
            joins=(join,),
            conditions=(Condition.not_in(base_id, [1]),),
            group_by=(base_id,),
            aggregates=(DistinctCountSum((Column("sr_field_tags", "entity_id"),), "similarity"),),
            order_by=(OrderBy("similarity", SortOrder.DESC),),
        ))
        sql, params = query.compile("?")

        assert sql == (
            "SELECT base.nid AS entity_id, COUNT(DISTINCT sr_field_tags.entity_id) AS similarity "
            "FROM node_field_data base "
            "LEFT JOIN node__field_tags sr_field_tags ON base.nid = sr_field_tags.entity_id "
            "AND sr_field_tags.entity_id IN (?, ?) "
            "WHERE base.nid NOT IN (?) "
            "GROUP BY base.nid "
            "ORDER BY similarity DESC"
        )
        assert params == [3, 4, 1]

    def test_merge_is_additive(self):
        base_id = Column("base", "nid")
        query = SelectQuery("node_field_data", "base", columns=(base_id,))
        query.where(Condition.eq(Column("base", "type"), "article"))
        query.order(OrderBy(Column("base", "title")))
        query.merge(QueryFragment(
            conditions=(Condition.not_in(base_id, [9]),),
            order_by=(OrderBy(base_id, "desc"),),
        ))
        sql, params = query.compile("?")

        assert "WHERE base.type = ? AND base.nid NOT IN (?)" in sql
        assert sql.endswith("ORDER BY base.title ASC, base.nid DESC")
        assert params == ["article", 9]

    def test_merge_rejects_duplicate_alias(self):
        base_id = Column("base", "nid")
        join = Join("node__field_tags", "sr_field_tags", base_id, "entity_id")
        query = SelectQuery("node_field_data", "base")
        query.merge(QueryFragment(joins=(join,)))
        with pytest.raises(ValueError, match="Duplicate relation alias"):
            query.merge(QueryFragment(joins=(join,)))

    def test_merge_rejects_base_alias(self):
        query = SelectQuery("node_field_data", "base")
        join = Join("node__field_tags", "base", Column("base", "nid"), "entity_id")
        with pytest.raises(ValueError):
            query.merge(QueryFragment(joins=(join,)))

    def test_fragments_are_not_mutated(self):
        fragment = QueryFragment(conditions=(Condition.eq(Column("base", "nid"), 1),))
        query = SelectQuery("node_field_data", "base")
        query.merge(fragment)
        query.where(Condition.eq(Column("base", "type"), "page"))
        assert len(fragment.conditions) == 1

    def test_pagination_and_count(self):
        query = SelectQuery("node_field_data", "base", columns=(Column("base", "nid"),))
        query.paginate(10, 20)
        sql, _ = query.compile("%s")
        assert sql.endswith("LIMIT 10 OFFSET 20")

        count_sql, _ = query.compile_count("%s")
        assert count_sql == "SELECT COUNT(*) AS count FROM (SELECT base.nid FROM node_field_data base) t"

    def test_negative_pagination(self):
        with pytest.raises(ValueError):
            SelectQuery("t", "a").paginate(-1)

    def test_select_star_without_columns(self):
        sql, _ = SelectQuery("node_field_data", "base").compile("?")
        assert sql == "SELECT base.* FROM node_field_data base"


class TestDistinctCountSum:
    def test_sums_terms(self):
        expr = DistinctCountSum((Column("a", "entity_id"), Column("b", "entity_id")), "similarity")
        assert expr.sql() == "COUNT(DISTINCT a.entity_id) + COUNT(DISTINCT b.entity_id) AS similarity"

    def test_empty(self):
        assert DistinctCountSum((), "similarity").sql() == "0 AS similarity"


class TestUpsert:
    def test_build_upsert(self):
        sql = build_upsert("meta", ["key", "value"], ["key"], placeholder="?")
        assert sql == (
            "INSERT INTO meta (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value"
        )

    def test_only_keys_does_nothing_on_conflict(self):
        sql = build_upsert("t", ["a"], ["a"], placeholder="%s")
        assert sql.endswith("ON CONFLICT(a) DO NOTHING")
