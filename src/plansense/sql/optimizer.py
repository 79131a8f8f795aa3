"""
Textual query rewriter.

Applies independent rewrite passes to the original SQL text in a fixed
order. Later passes see the output of earlier ones; the join-order pass
is advisory and never changes the text. The estimated improvement is the
sum of all pass scores, capped at 100.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from plansense.sql.models import QueryInfo, StatementType

logger = logging.getLogger(__name__)

_IN_SUBQUERY_START = re.compile(r"(\w+)\s+IN\s*(\()\s*(?=SELECT\b)", re.IGNORECASE)
_SUBQUERY_BODY = re.compile(
    r"SELECT\s+([^()]+?)\s+FROM\s+(\w+)\s+WHERE\s+(.+)",
    re.IGNORECASE | re.DOTALL,
)
_SCALAR_SUBQUERY = re.compile(
    r"SELECT\s+(.*?)\s*,\s*\(\s*SELECT\s+(\w+)\s+FROM\s+(\w+)\s+WHERE\s+(\w+)\s*=\s*(\w+)\.(\w+)\s*\)\s+AS\s+(\w+)",
    re.IGNORECASE | re.DOTALL,
)
_IN_LIST = re.compile(r"(\w+)\s+IN\s*\(([^)]+)\)", re.IGNORECASE)

MAX_IN_LIST_VALUES = 10
MAX_IMPROVEMENT = 100


class ChangeKind(str, Enum):
    REWRITE = "rewrite"
    INDEX_HINT = "index_hint"
    JOIN_ORDER = "join_order"
    SUBQUERY_OPTIMIZATION = "subquery_optimization"


@dataclass(frozen=True)
class OptimizationChange:
    """One applied (or advised) change with before/after snippets."""

    kind: ChangeKind
    description: str
    before: str
    after: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "description": self.description,
            "before": self.before,
            "after": self.after,
        }


@dataclass(frozen=True)
class OptimizedQuery:
    """
    Result of a rewrite run.

    Attributes:
        original: Input text, unchanged
        optimized: Text after all passes
        changes: Changes in pass order
        estimated_improvement: Percentage score, 0-100
    """

    original: str
    optimized: str
    changes: list[OptimizationChange] = field(default_factory=list)
    estimated_improvement: int = 0

    @property
    def changed(self) -> bool:
        return self.optimized != self.original

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original,
            "optimized": self.optimized,
            "changes": [c.to_dict() for c in self.changes],
            "estimated_improvement": self.estimated_improvement,
        }


@dataclass
class _PassResult:
    query: str
    changes: list[OptimizationChange] = field(default_factory=list)
    improvement: int = 0


def _closing_paren(text: str, open_at: int) -> int | None:
    """Index of the parenthesis that closes the one at open_at, skipping quoted text."""
    depth = 0
    quote = None
    for index in range(open_at, len(text)):
        char = text[index]
        if quote:
            if char == quote:
                quote = None
        elif char in "'\"":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
    return None


class QueryOptimizer:
    """
    Rule-based SQL text rewriter.

    Example:
        >>> sql = "SELECT * FROM users WHERE email = 'a@b.c'"
        >>> QueryOptimizer().optimize(sql, QueryParser().parse(sql)).optimized
        "SELECT * FROM users USE INDEX (idx_USERS_EMAIL) WHERE email = 'a@b.c'"
    """

    def optimize(self, query: str, info: QueryInfo) -> OptimizedQuery:
        passes = []
        if info.subqueries:
            passes.append(self._optimize_subqueries)
        passes.append(self._optimize_in_lists)
        passes.append(self._advise_join_order)
        passes.append(self._add_index_hint)

        optimized = query
        changes: list[OptimizationChange] = []
        total = 0
        for run_pass in passes:
            result = run_pass(optimized, info)
            optimized = result.query
            changes.extend(result.changes)
            total += result.improvement

        logger.debug("Rewrite produced %d change(s), raw score %d", len(changes), total)
        return OptimizedQuery(
            original=query,
            optimized=optimized,
            changes=changes,
            estimated_improvement=min(total, MAX_IMPROVEMENT),
        )

    def _optimize_subqueries(self, query: str, info: QueryInfo) -> _PassResult:
        result = _PassResult(query)
        pieces: list[str] = []
        position = 0

        for match in _IN_SUBQUERY_START.finditer(query):
            # Inside a subquery already rewritten, or NOT IN
            if match.start() < position or match.group(1).upper() == "NOT":
                continue
            open_at = match.start(2)
            close_at = _closing_paren(query, open_at)
            if close_at is None:
                continue
            body = _SUBQUERY_BODY.fullmatch(query[open_at + 1 : close_at].strip())
            if body is None:
                continue

            column = match.group(1)
            _, table, where = body.groups()
            exists = f"EXISTS (SELECT 1 FROM {table} WHERE {where.strip()} AND {table}.id = {column})"
            result.changes.append(
                OptimizationChange(
                    kind=ChangeKind.SUBQUERY_OPTIMIZATION,
                    description="Rewrite IN subquery as EXISTS",
                    before=query[match.start() : close_at + 1],
                    after=exists,
                )
            )
            result.improvement += 20
            pieces.append(query[position : match.start()])
            pieces.append(exists)
            position = close_at + 1

        pieces.append(query[position:])
        result.query = "".join(pieces)

        # Flagged only; the JOIN form depends on the schema.
        if _SCALAR_SUBQUERY.search(result.query):
            result.changes.append(
                OptimizationChange(
                    kind=ChangeKind.SUBQUERY_OPTIMIZATION,
                    description="Convert scalar subquery in SELECT list to a JOIN",
                    before="scalar subquery",
                    after="JOIN",
                )
            )
            result.improvement += 15

        return result

    def _optimize_in_lists(self, query: str, info: QueryInfo) -> _PassResult:
        result = _PassResult(query)

        def to_temp_values(match: re.Match[str]) -> str:
            column, values = match.groups()
            count = len(values.split(","))
            if count <= MAX_IN_LIST_VALUES:
                return match.group(0)
            replacement = f"{column} IN (SELECT value FROM temp_values)"
            result.changes.append(
                OptimizationChange(
                    kind=ChangeKind.REWRITE,
                    description=f"Move large IN list ({count} values) to a temporary table",
                    before=f"{match.group(0)[:50]}...",
                    after=replacement,
                )
            )
            result.improvement += 10
            return replacement

        result.query = _IN_LIST.sub(to_temp_values, query)
        return result

    def _advise_join_order(self, query: str, info: QueryInfo) -> _PassResult:
        result = _PassResult(query)
        if len(info.joins) >= 2:
            result.changes.append(
                OptimizationChange(
                    kind=ChangeKind.JOIN_ORDER,
                    description="Reorder joins",
                    before="current join order",
                    after="join from the smallest table to the largest",
                )
            )
            result.improvement += 15
        return result

    def _add_index_hint(self, query: str, info: QueryInfo) -> _PassResult:
        result = _PassResult(query)
        table = info.primary_table
        if info.type != StatementType.SELECT or table is None or not info.where_columns:
            return result

        index_name = f"idx_{table}_{info.where_columns[0]}"
        from_table = re.compile(rf"FROM\s+{re.escape(table)}\s+", re.IGNORECASE)
        match = from_table.search(query)
        if match is None:
            logger.debug("No FROM %s in query text; index hint skipped", table)
            return result

        written = match.group(0).rstrip()
        hint = f"{written} USE INDEX ({index_name})"
        result.query = f"{query[:match.start()]}{hint} {query[match.end():]}"
        result.changes.append(
            OptimizationChange(
                kind=ChangeKind.INDEX_HINT,
                description="Add index hint",
                before=written,
                after=hint,
            )
        )
        result.improvement += 10
        return result
