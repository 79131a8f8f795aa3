"""
Plan detection rules.

Per-row rules look at one ExplainRow at a time; HighJoinCost looks at
the whole plan. Each rule maps to exactly one TuningSuggestion factory.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from plansense.explain.models import ExplainRow
from plansense.explain.suggestions import Severity, TuningSuggestion


class PlanRule(ABC):
    """Base class for per-row plan rules."""

    rule_id: str
    description: str
    severity: Severity

    @abstractmethod
    def check(self, row: ExplainRow) -> bool:
        """Check if this rule applies to the given row."""

    @abstractmethod
    def suggest(self, row: ExplainRow) -> TuningSuggestion:
        """Build the suggestion for a row that passed check()."""


class FullTableScan(PlanRule):
    """
    Detect full table scans (type='ALL') on large tables.

    type='ALL' means reading every row; on a large table it is the worst
    access type there is.

    Fix: Add an index on the WHERE clause columns.
    """

    rule_id = "FULL_TABLE_SCAN"
    description = "Full table scan (type='ALL') on a large table"
    severity = Severity.CRITICAL

    def __init__(self, min_rows: int = 5000) -> None:
        self.min_rows = min_rows

    def check(self, row: ExplainRow) -> bool:
        rows = row.rows.value
        return row.is_full_table_scan and rows is not None and rows > self.min_rows

    def suggest(self, row: ExplainRow) -> TuningSuggestion:
        return TuningSuggestion.full_table_scan(row.table, row.rows.value or 0)


class UnusedIndex(PlanRule):
    """
    Detect when possible_keys exists but key is NULL.

    MySQL found indexes that could help but decided not to use any of them,
    usually because the predicate doesn't match the index or statistics
    are stale.
    """

    rule_id = "UNUSED_INDEX"
    description = "Possible index not used"
    severity = Severity.WARNING

    def check(self, row: ExplainRow) -> bool:
        return row.has_unused_index

    def suggest(self, row: ExplainRow) -> TuningSuggestion:
        return TuningSuggestion.unused_index(row.table, row.possible_keys or "")


class UsingFilesort(PlanRule):
    """'Using filesort' in Extra: ORDER BY resolved without an index."""

    rule_id = "USING_FILESORT"
    description = "Query requires filesort"
    severity = Severity.WARNING

    def check(self, row: ExplainRow) -> bool:
        return row.has_filesort

    def suggest(self, row: ExplainRow) -> TuningSuggestion:
        return TuningSuggestion.filesort(row.table)


class UsingTemporary(PlanRule):
    """
    Detect temporary table usage.

    Common with GROUP BY or DISTINCT on non-indexed columns, ORDER BY on
    columns other than the GROUP BY columns, and UNION.
    """

    rule_id = "USING_TEMPORARY"
    description = "Query creates temporary table"
    severity = Severity.CRITICAL

    def check(self, row: ExplainRow) -> bool:
        return row.has_temporary_table

    def suggest(self, row: ExplainRow) -> TuningSuggestion:
        return TuningSuggestion.temporary_table(row.table)


class LowFilteredPercentage(PlanRule):
    """Most rows read are thrown away by the WHERE condition."""

    rule_id = "LOW_FILTERED"
    description = "Low filtered percentage"
    severity = Severity.WARNING

    def __init__(self, threshold: float = 30.0) -> None:
        self.threshold = threshold

    def check(self, row: ExplainRow) -> bool:
        return row.filtered is not None and row.filtered < self.threshold

    def suggest(self, row: ExplainRow) -> TuningSuggestion:
        return TuningSuggestion.low_filtered_percentage(row.table, row.filtered or 0.0)


def join_cost(rows: Sequence[ExplainRow]) -> int:
    """
    Running product of each row's estimated cost.

    The product starts at 0; whenever it is 0 the next row's cost seeds it,
    otherwise the row's cost multiplies in.
    """
    cost = 0
    for row in rows:
        row_cost = row.estimated_cost
        cost = row_cost if cost == 0 else cost * row_cost
    return cost


class HighJoinCost:
    """Multi-table plans whose combined row estimate explodes."""

    rule_id = "HIGH_JOIN_COST"
    description = "Estimated join cost above threshold"
    severity = Severity.CRITICAL

    def __init__(self, threshold: int = 50000) -> None:
        self.threshold = threshold

    def check(self, rows: Sequence[ExplainRow]) -> bool:
        return len(rows) > 1 and join_cost(rows) > self.threshold

    def suggest(self, rows: Sequence[ExplainRow]) -> TuningSuggestion:
        return TuningSuggestion.high_join_cost(join_cost(rows))
