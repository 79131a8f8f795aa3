"""
Data models for the SQL text analyzer.

QueryInfo is the structured decomposition of one SQL statement. It is
built once per parse call and never mutated; nested subqueries are
QueryInfo instances themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StatementType(str, Enum):
    """Statement kind, taken from the first token."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    OTHER = "OTHER"


class JoinType(str, Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"
    CROSS = "CROSS"


@dataclass(frozen=True)
class JoinInfo:
    """One explicit JOIN: its kind, joined table, ON condition and alias."""

    type: JoinType
    table: str
    condition: str
    alias: str | None = None

    @property
    def names(self) -> set[str]:
        """Names a WHERE predicate can use to refer to this table."""
        names = {self.table, self.table.rsplit(".", 1)[-1]}
        if self.alias:
            names.add(self.alias)
        return names

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "table": self.table,
            "condition": self.condition,
            "alias": self.alias,
        }


@dataclass(frozen=True)
class WhereCondition:
    """
    A simple `column operator value` predicate from the WHERE clause.

    Attributes:
        column: Bare column name
        operator: =, !=, <>, <, >, <=, >=, LIKE, IN or NOT IN
        value: Literal text: quoted string, number or parenthesised list
        conjunction: AND or OR, the connective preceding this condition
        table: Table or alias qualifier written before the column, if any
    """

    column: str
    operator: str
    value: str
    conjunction: str = "AND"
    table: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "column": self.column,
            "operator": self.operator,
            "value": self.value,
            "conjunction": self.conjunction,
            "table": self.table,
        }


@dataclass(frozen=True)
class OrderByInfo:
    column: str
    direction: str = "ASC"

    def to_dict(self) -> dict[str, Any]:
        return {"column": self.column, "direction": self.direction}


@dataclass(frozen=True)
class QueryInfo:
    """
    Complete decomposition of a SQL statement.

    Attributes:
        type: Statement kind
        tables: Tables in order of discovery, deduplicated
        columns: SELECT list entries with aliases stripped; empty for SELECT *
        joins: Explicit joins, grouped INNER, LEFT, RIGHT, FULL, CROSS
        where_conditions: Simple predicates from the WHERE clause
        order_by: ORDER BY columns with direction
        group_by: GROUP BY expressions
        having: Raw HAVING clause text
        limit: LIMIT row count
        subqueries: Parsed nested SELECT statements
        select_all: True when the SELECT list is `*`
    """

    type: StatementType = StatementType.OTHER
    tables: list[str] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    joins: list[JoinInfo] = field(default_factory=list)
    where_conditions: list[WhereCondition] = field(default_factory=list)
    order_by: list[OrderByInfo] = field(default_factory=list)
    group_by: list[str] = field(default_factory=list)
    having: str | None = None
    limit: int | None = None
    subqueries: list[QueryInfo] = field(default_factory=list)
    select_all: bool = False

    @property
    def where_columns(self) -> list[str]:
        return [c.column for c in self.where_conditions]

    @property
    def primary_table(self) -> str | None:
        return self.tables[0] if self.tables else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "tables": list(self.tables),
            "columns": list(self.columns),
            "joins": [j.to_dict() for j in self.joins],
            "where_conditions": [c.to_dict() for c in self.where_conditions],
            "order_by": [o.to_dict() for o in self.order_by],
            "group_by": list(self.group_by),
            "having": self.having,
            "limit": self.limit,
            "subqueries": [s.to_dict() for s in self.subqueries],
            "select_all": self.select_all,
        }
