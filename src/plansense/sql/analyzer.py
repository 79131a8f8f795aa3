"""
Query-text tuning rules.

Applies heuristic checks to a parsed QueryInfo and returns suggestions
ordered by level, then impact. Each check is independent; ordering is a
single stable sort applied at the end.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any

from plansense.explain.suggestions import Severity
from plansense.sql.models import JoinType, QueryInfo, StatementType

logger = logging.getLogger(__name__)

_JOIN_EQUALITY = re.compile(r"(\w+\.\w+)\s*=\s*(\w+\.\w+)", re.IGNORECASE)


class Impact(str, Enum):
    """Expected impact of applying a suggestion."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {Impact.HIGH: 3, Impact.MEDIUM: 2, Impact.LOW: 1}[self]


@dataclass(frozen=True)
class QueryTuningSuggestion:
    """
    A suggestion derived from the SQL text.

    Attributes:
        level: critical, warning or info
        type: Category label (e.g. "Full scan", "Index")
        description: One-line summary
        suggestion: What to do about it
        impact: Expected impact, if estimated
        example: Example SQL, if one can be generated
    """

    level: Severity
    type: str
    description: str
    suggestion: str
    impact: Impact | None = None
    example: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "type": self.type,
            "description": self.description,
            "suggestion": self.suggestion,
            "impact": self.impact.value if self.impact else None,
            "example": self.example,
        }


# Query-text checks, in evaluation order
QUERY_RULES: tuple[tuple[str, Severity, str], ...] = (
    ("N+1 query", Severity.WARNING, "LIMIT 1 lookup by an id column"),
    ("Cartesian product", Severity.CRITICAL, "JOIN without a join condition"),
    ("Index optimization", Severity.INFO, "WHERE column used in several conditions"),
    ("Composite index", Severity.INFO, "Several distinct WHERE columns"),
    ("Sort optimization", Severity.INFO, "ORDER BY columns without a supporting index"),
    ("Join order", Severity.INFO, "More than 2 JOINs"),
    ("LEFT JOIN", Severity.WARNING, "WHERE filters on a LEFT JOINed table"),
    ("Join index", Severity.INFO, "Equality join condition a.b = c.d"),
    ("Column list", Severity.WARNING, "SELECT *"),
    ("Join complexity", Severity.WARNING, "More than 3 JOINs"),
    ("Full scan", Severity.CRITICAL, "SELECT without WHERE"),
    ("Index usage", Severity.WARNING, "LIKE pattern with a leading wildcard"),
    ("Performance", Severity.INFO, "ORDER BY without LIMIT"),
    ("Index", Severity.INFO, "GROUP BY, or ORDER BY over more than 2 columns"),
    ("Optimization", Severity.INFO, "Subqueries that could be JOIN or EXISTS"),
    ("Safety", Severity.CRITICAL, "UPDATE or DELETE without WHERE"),
    ("Optimization", Severity.WARNING, "IN condition combined with a subquery"),
)


def suggestion_sort_key(suggestion: QueryTuningSuggestion) -> tuple[int, int]:
    """Sort key: critical before warning before info, then high impact first."""
    impact_rank = suggestion.impact.rank if suggestion.impact else 0
    return (-suggestion.level.rank, -impact_rank)


class QueryTuningAnalyzer:
    """Rule engine over QueryInfo."""

    MAX_JOINS = 3
    MAX_ORDER_BY_COLUMNS = 2
    COMPOSITE_INDEX_COLUMNS = 3

    def analyze(self, info: QueryInfo) -> list[QueryTuningSuggestion]:
        suggestions: list[QueryTuningSuggestion] = []

        suggestions.extend(self._query_patterns(info))
        suggestions.extend(self._index_optimization(info))
        suggestions.extend(self._join_optimization(info))
        suggestions.extend(self._basic_checks(info))

        logger.debug("Query analysis produced %d suggestion(s)", len(suggestions))
        return sorted(suggestions, key=suggestion_sort_key)

    # -------------------------------------------------------------------------
    # Query patterns
    # -------------------------------------------------------------------------

    def _query_patterns(self, info: QueryInfo) -> list[QueryTuningSuggestion]:
        found: list[QueryTuningSuggestion] = []

        if (
            info.type == StatementType.SELECT
            and info.limit == 1
            and any("id" in c.column.lower() for c in info.where_conditions)
        ):
            found.append(
                QueryTuningSuggestion(
                    level=Severity.WARNING,
                    type="N+1 query",
                    description="Single-row lookups may be issued repeatedly",
                    suggestion=(
                        "Fetch rows in batches with an IN list or a JOIN to cut "
                        "the number of queries."
                    ),
                    impact=Impact.HIGH,
                    example=(
                        f"SELECT * FROM {info.primary_table} WHERE id IN (1, 2, 3, ...)"
                        if info.primary_table
                        else None
                    ),
                )
            )

        if any(not j.condition.strip() for j in info.joins):
            found.append(
                QueryTuningSuggestion(
                    level=Severity.CRITICAL,
                    type="Cartesian product",
                    description="A JOIN has no join condition",
                    suggestion=(
                        "Add a join condition. A cartesian product multiplies the "
                        "row counts of both tables."
                    ),
                    impact=Impact.HIGH,
                )
            )

        return found

    # -------------------------------------------------------------------------
    # Index optimization
    # -------------------------------------------------------------------------

    def _index_optimization(self, info: QueryInfo) -> list[QueryTuningSuggestion]:
        found: list[QueryTuningSuggestion] = []
        table = info.primary_table
        where_columns = info.where_columns
        frequency = Counter(where_columns)
        unique_columns = list(frequency)

        for column, count in frequency.items():
            if count > 1:
                found.append(
                    QueryTuningSuggestion(
                        level=Severity.INFO,
                        type="Index optimization",
                        description=f"Column {column} is used in several conditions",
                        suggestion=f"An index on {column} may speed up this query.",
                        impact=Impact.MEDIUM,
                        example=_index_example(table, column, column),
                    )
                )

        if len(unique_columns) > 1:
            composite = ", ".join(unique_columns[: self.COMPOSITE_INDEX_COLUMNS])
            found.append(
                QueryTuningSuggestion(
                    level=Severity.INFO,
                    type="Composite index",
                    description="Several columns are used in the WHERE clause",
                    suggestion="A composite index over the filtered columns can improve performance further.",
                    impact=Impact.HIGH,
                    example=_index_example(table, "composite", composite),
                )
            )

        if info.order_by:
            order_columns = ", ".join(o.column for o in info.order_by)
            found.append(
                QueryTuningSuggestion(
                    level=Severity.INFO,
                    type="Sort optimization",
                    description="ORDER BY sorts the result",
                    suggestion=f"An index on the ORDER BY columns ({order_columns}) lets rows be read in order.",
                    impact=Impact.MEDIUM,
                    example=_index_example(table, "sort", order_columns),
                )
            )

        return found

    # -------------------------------------------------------------------------
    # Join optimization
    # -------------------------------------------------------------------------

    def _join_optimization(self, info: QueryInfo) -> list[QueryTuningSuggestion]:
        found: list[QueryTuningSuggestion] = []
        if not info.joins:
            return found

        if len(info.joins) > 2:
            found.append(
                QueryTuningSuggestion(
                    level=Severity.INFO,
                    type="Join order",
                    description="Several JOINs are used",
                    suggestion=(
                        "Join from the smallest table to the largest to keep "
                        "intermediate results small."
                    ),
                    impact=Impact.MEDIUM,
                )
            )

        left_names = set().union(*(j.names for j in info.joins if j.type == JoinType.LEFT))
        if any(c.table in left_names for c in info.where_conditions if c.table):
            found.append(
                QueryTuningSuggestion(
                    level=Severity.WARNING,
                    type="LEFT JOIN",
                    description="A WHERE condition applies to a LEFT JOINed table",
                    suggestion=(
                        "Filtering on the LEFT JOINed table in WHERE makes it behave "
                        "like an INNER JOIN. Consider writing INNER JOIN."
                    ),
                    impact=Impact.LOW,
                )
            )

        for join in info.joins:
            if _JOIN_EQUALITY.search(join.condition):
                found.append(
                    QueryTuningSuggestion(
                        level=Severity.INFO,
                        type="Join index",
                        description=f"Join condition on table {join.table}",
                        suggestion="Index the columns used in the join condition.",
                        impact=Impact.HIGH,
                        example=f"CREATE INDEX idx_{join.table}_join ON {join.table}(<join_column>);",
                    )
                )

        return found

    # -------------------------------------------------------------------------
    # Basic checks
    # -------------------------------------------------------------------------

    def _basic_checks(self, info: QueryInfo) -> list[QueryTuningSuggestion]:
        found: list[QueryTuningSuggestion] = []
        is_select = info.type == StatementType.SELECT

        if is_select and not info.columns:
            found.append(
                QueryTuningSuggestion(
                    level=Severity.WARNING,
                    type="Column list",
                    description="Avoid SELECT *",
                    suggestion=(
                        "Name only the columns you need to reduce the data "
                        "transferred and allow covering indexes."
                    ),
                )
            )

        if len(info.joins) > self.MAX_JOINS:
            found.append(
                QueryTuningSuggestion(
                    level=Severity.WARNING,
                    type="Join complexity",
                    description="Many JOINs are used",
                    suggestion=(
                        "Queries with many JOINs can run long. Consider splitting "
                        "the query or denormalising."
                    ),
                )
            )

        if is_select and info.tables and not info.where_conditions:
            found.append(
                QueryTuningSuggestion(
                    level=Severity.CRITICAL,
                    type="Full scan",
                    description="No WHERE clause",
                    suggestion="Add a WHERE clause to narrow the rows read and avoid a full table scan.",
                )
            )

        for condition in info.where_conditions:
            if condition.operator == "LIKE" and condition.value.startswith("'%"):
                found.append(
                    QueryTuningSuggestion(
                        level=Severity.WARNING,
                        type="Index usage",
                        description="LIKE pattern starts with a wildcard",
                        suggestion=(
                            f"A LIKE pattern on {condition.column} starting with '%' "
                            "cannot use an index. Use a prefix match if possible."
                        ),
                    )
                )

        if info.order_by and info.limit is None:
            found.append(
                QueryTuningSuggestion(
                    level=Severity.INFO,
                    type="Performance",
                    description="ORDER BY without LIMIT",
                    suggestion="When sorting large results, LIMIT the rows you actually need.",
                )
            )

        if info.group_by:
            found.append(
                QueryTuningSuggestion(
                    level=Severity.INFO,
                    type="Index",
                    description="GROUP BY is used",
                    suggestion=(
                        f"An index on the GROUP BY columns ({', '.join(info.group_by)}) "
                        "can speed up grouping."
                    ),
                )
            )

        if info.subqueries:
            found.append(
                QueryTuningSuggestion(
                    level=Severity.INFO,
                    type="Optimization",
                    description="Subqueries are used",
                    suggestion=(
                        "Rewriting subqueries as JOIN or EXISTS is often faster. "
                        "Check the execution plan."
                    ),
                )
            )

        if info.type in (StatementType.UPDATE, StatementType.DELETE) and not info.where_conditions:
            found.append(
                QueryTuningSuggestion(
                    level=Severity.CRITICAL,
                    type="Safety",
                    description=f"{info.type.value} without WHERE",
                    suggestion=(
                        "Without a WHERE clause every row in the table is affected. "
                        "Always restrict UPDATE and DELETE with a condition."
                    ),
                )
            )

        if len(info.order_by) > self.MAX_ORDER_BY_COLUMNS:
            found.append(
                QueryTuningSuggestion(
                    level=Severity.INFO,
                    type="Index",
                    description="ORDER BY on several columns",
                    suggestion=(
                        "Consider a composite index whose column order matches "
                        "the ORDER BY clause."
                    ),
                )
            )

        if info.subqueries and any(c.operator == "IN" for c in info.where_conditions):
            found.append(
                QueryTuningSuggestion(
                    level=Severity.WARNING,
                    type="Optimization",
                    description="IN subquery is used",
                    suggestion="IN (SELECT ...) is often faster rewritten as EXISTS or a JOIN.",
                )
            )

        return found


def _index_example(table: str | None, name: str, columns: str) -> str | None:
    if table is None:
        return None
    return f"CREATE INDEX idx_{table}_{name} ON {table}({columns});"
