"""
SQL query builder for row-store reads.

Builds SELECT queries from typed join/filter/order primitives instead of
hand-assembled SQL strings. Values are always bound parameters; only
validated identifiers (tables, aliases, columns) are placed in the SQL text.

Design: Supports both SQLite (?) and PostgreSQL (%s) placeholders.
Query fragments are immutable and purely additive, so a fragment produced by
one component can be merged into a query built by another without either
clobbering the other's joins, filters or sorts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from .core.types import SortOrder

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

JOIN_INNER = "INNER"
JOIN_LEFT = "LEFT"

OP_EQ = "="
OP_IN = "IN"
OP_NOT_IN = "NOT IN"
_OPERATORS = (OP_EQ, OP_IN, OP_NOT_IN)


def validate_identifier(name: str) -> str:
    """
    Ensure a table, alias or column name is safe to place in SQL text.

    Args:
        name: Identifier to check

    Returns:
        The identifier, unchanged

    Raises:
        ValueError: If the identifier contains anything but letters, digits and underscores
    """
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


@dataclass(frozen=True)
class Column:
    """A column qualified by its table alias."""

    table: str
    name: str

    def __post_init__(self) -> None:
        validate_identifier(self.table)
        validate_identifier(self.name)

    def sql(self) -> str:
        return f"{self.table}.{self.name}"


@dataclass(frozen=True)
class Condition:
    """
    A single predicate on a column.

    IN with no values compiles to a false predicate and NOT IN with no values
    to a true one, so an empty membership list can never widen a query.
    """

    column: Column
    operator: str
    values: tuple[Any, ...]

    def __post_init__(self) -> None:
        if self.operator not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {self.operator}")
        if self.operator == OP_EQ and len(self.values) != 1:
            raise ValueError("Equality conditions take exactly one value")

    @classmethod
    def eq(cls, column: Column, value: Any) -> "Condition":
        return cls(column, OP_EQ, (value,))

    @classmethod
    def is_in(cls, column: Column, values: Iterable[Any]) -> "Condition":
        return cls(column, OP_IN, tuple(values))

    @classmethod
    def not_in(cls, column: Column, values: Iterable[Any]) -> "Condition":
        return cls(column, OP_NOT_IN, tuple(values))

    def compile(self, placeholder: str) -> tuple[str, list[Any]]:
        if self.operator == OP_EQ:
            return f"{self.column.sql()} = {placeholder}", [self.values[0]]
        if not self.values:
            return ("1 = 0" if self.operator == OP_IN else "1 = 1"), []
        placeholders = ", ".join(placeholder for _ in self.values)
        return f"{self.column.sql()} {self.operator} ({placeholders})", list(self.values)


@dataclass(frozen=True)
class Join:
    """
    A join from an already-present column to another relation.

    Extra conditions are compiled into the ON clause.
    """

    table: str
    alias: str
    left: Column
    right_column: str
    kind: str = JOIN_INNER
    conditions: tuple[Condition, ...] = ()

    def __post_init__(self) -> None:
        validate_identifier(self.table)
        validate_identifier(self.alias)
        validate_identifier(self.right_column)
        if self.kind not in (JOIN_INNER, JOIN_LEFT):
            raise ValueError(f"Unsupported join type: {self.kind}")

    def compile(self, placeholder: str) -> tuple[str, list[Any]]:
        clauses = [f"{self.left.sql()} = {self.alias}.{self.right_column}"]
        params: list[Any] = []
        for condition in self.conditions:
            sql, values = condition.compile(placeholder)
            clauses.append(sql)
            params.extend(values)
        on = " AND ".join(clauses)
        return f"{self.kind} JOIN {self.table} {self.alias} ON {on}", params


@dataclass(frozen=True)
class DistinctCountSum:
    """Sum of COUNT(DISTINCT column) terms, selected under an alias."""

    columns: tuple[Column, ...]
    alias: str

    def __post_init__(self) -> None:
        validate_identifier(self.alias)

    def sql(self) -> str:
        if not self.columns:
            return f"0 AS {self.alias}"
        terms = " + ".join(f"COUNT(DISTINCT {column.sql()})" for column in self.columns)
        return f"{terms} AS {self.alias}"


@dataclass(frozen=True)
class OrderBy:
    """Sort on a qualified column or on a selected alias."""

    target: Union[Column, str]
    direction: SortOrder = SortOrder.ASC

    def __post_init__(self) -> None:
        if isinstance(self.target, str):
            validate_identifier(self.target)
        # Accept plain strings like "desc" from callers
        direction = self.direction.value if isinstance(self.direction, SortOrder) else str(self.direction).upper()
        object.__setattr__(self, "direction", SortOrder(direction))

    def sql(self) -> str:
        target = self.target.sql() if isinstance(self.target, Column) else self.target
        return f"{target} {self.direction.value}"


@dataclass(frozen=True)
class QueryFragment:
    """
    Additive query pieces produced by one component for another's query.

    Every member is a tuple of immutable primitives; merging never mutates a fragment.
    """

    joins: tuple[Join, ...] = ()
    conditions: tuple[Condition, ...] = ()
    group_by: tuple[Column, ...] = ()
    aggregates: tuple[DistinctCountSum, ...] = ()
    order_by: tuple[OrderBy, ...] = ()

    @property
    def aliases(self) -> tuple[str, ...]:
        return tuple(join.alias for join in self.joins)

    def __add__(self, other: "QueryFragment") -> "QueryFragment":
        return QueryFragment(
            joins=self.joins + other.joins,
            conditions=self.conditions + other.conditions,
            group_by=self.group_by + other.group_by,
            aggregates=self.aggregates + other.aggregates,
            order_by=self.order_by + other.order_by,
        )


@dataclass
class SelectQuery:
    """
    A SELECT over one base relation that fragments are merged into.

    Example:
        >>> query = SelectQuery("node__field_tags", "fd", columns=(Column("fd", "entity_id"),))
        >>> query = query.where(Condition.eq(Column("fd", "entity_id"), 7))
        >>> query.compile("?")
        ('SELECT fd.entity_id FROM node__field_tags fd WHERE fd.entity_id = ?', [7])
    """

    table: str
    alias: str
    columns: tuple[Union[Column, tuple[Column, str]], ...] = ()
    distinct: bool = False
    fragment: QueryFragment = field(default_factory=QueryFragment)
    limit: Optional[int] = None
    offset: Optional[int] = None

    def __post_init__(self) -> None:
        validate_identifier(self.table)
        validate_identifier(self.alias)

    @property
    def aliases(self) -> tuple[str, ...]:
        return (self.alias,) + self.fragment.aliases

    def merge(self, fragment: QueryFragment) -> "SelectQuery":
        """
        Append a fragment's joins, filters, groupings and sorts.

        Raises:
            ValueError: If the fragment reuses a relation alias already in the query
        """
        clashes = set(self.aliases) & set(fragment.aliases)
        if clashes or len(set(fragment.aliases)) != len(fragment.aliases):
            raise ValueError(f"Duplicate relation alias in query: {sorted(clashes) or fragment.aliases}")
        self.fragment = self.fragment + fragment
        return self

    def where(self, condition: Condition) -> "SelectQuery":
        """Add a single filter."""
        return self.merge(QueryFragment(conditions=(condition,)))

    def order(self, *orders: OrderBy) -> "SelectQuery":
        """Append sorts after any already present."""
        return self.merge(QueryFragment(order_by=orders))

    def paginate(self, limit: Optional[int], offset: Optional[int] = None) -> "SelectQuery":
        """Set LIMIT/OFFSET."""
        if (limit is not None and limit < 0) or (offset is not None and offset < 0):
            raise ValueError("LIMIT and OFFSET must be non-negative")
        self.limit = limit
        self.offset = offset
        return self

    def _select_list(self) -> str:
        parts = []
        for column in self.columns:
            if isinstance(column, tuple):
                column, label = column
                parts.append(f"{column.sql()} AS {validate_identifier(label)}")
            else:
                parts.append(column.sql())
        parts.extend(aggregate.sql() for aggregate in self.fragment.aggregates)
        if not parts:
            parts.append(f"{self.alias}.*")
        return ", ".join(parts)

    def compile(self, placeholder: str = "%s", paginate: bool = True) -> tuple[str, list[Any]]:
        """
        Render the query as SQL text plus ordered parameters.

        Args:
            placeholder: '%s' for PostgreSQL, '?' for SQLite
            paginate: Include LIMIT/OFFSET when set

        Returns:
            (sql, params) tuple ready for cursor.execute
        """
        params: list[Any] = []
        select = "SELECT DISTINCT" if self.distinct else "SELECT"
        sql = [f"{select} {self._select_list()}", f"FROM {self.table} {self.alias}"]

        for join in self.fragment.joins:
            join_sql, join_params = join.compile(placeholder)
            sql.append(join_sql)
            params.extend(join_params)

        if self.fragment.conditions:
            clauses = []
            for condition in self.fragment.conditions:
                clause, values = condition.compile(placeholder)
                clauses.append(clause)
                params.extend(values)
            sql.append("WHERE " + " AND ".join(clauses))

        if self.fragment.group_by:
            group_by = list(dict.fromkeys(column.sql() for column in self.fragment.group_by))
            sql.append("GROUP BY " + ", ".join(group_by))

        if self.fragment.order_by:
            sql.append("ORDER BY " + ", ".join(order.sql() for order in self.fragment.order_by))

        if paginate and self.limit is not None:
            sql.append(f"LIMIT {int(self.limit)}")
        if paginate and self.offset:
            sql.append(f"OFFSET {int(self.offset)}")

        return " ".join(sql), params

    def compile_count(self, placeholder: str = "%s") -> tuple[str, list[Any]]:
        """Render a COUNT(*) over the unpaginated query."""
        sql, params = self.compile(placeholder, paginate=False)
        return f"SELECT COUNT(*) AS count FROM ({sql}) t", params


def build_upsert(
    table: str,
    columns: list[str],
    conflict_keys: list[str],
    placeholder: str = "%s",
) -> str:
    """Generate an UPSERT query from a column list.

    All columns outside ``conflict_keys`` are replaced on conflict. The
    ON CONFLICT ... DO UPDATE SET form is understood by both SQLite and
    PostgreSQL.

    Args:
        table: Table name
        columns: List of all column names (including conflict keys)
        conflict_keys: List of columns that define uniqueness (for ON CONFLICT)
        placeholder: '%s' for PostgreSQL, '?' for SQLite

    Returns:
        Complete SQL UPSERT query string
    """
    validate_identifier(table)
    for column in columns:
        validate_identifier(column)

    update_assignments = [
        f"{col} = excluded.{col}" for col in columns if col not in conflict_keys
    ]
    columns_str = ", ".join(columns)
    placeholders_str = ", ".join(placeholder for _ in columns)
    conflict_keys_str = ", ".join(conflict_keys)

    if update_assignments:
        action = "DO UPDATE SET " + ", ".join(update_assignments)
    else:
        action = "DO NOTHING"

    return (
        f"INSERT INTO {table} ({columns_str}) VALUES ({placeholders_str}) "
        f"ON CONFLICT({conflict_keys_str}) {action}"
    )
