"""
Plan-based tuning suggestions.

Each detected condition has exactly one factory, which fixes the title,
severity and recommendation text for that condition.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """
    Severity levels for suggestions.

    CRITICAL: Severe performance impact, fix first
    WARNING: Significant performance issue that should be addressed
    INFO: Optimization opportunity, nice-to-have improvement
    """

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """3 for critical down to 1 for info."""
        return {Severity.CRITICAL: 3, Severity.WARNING: 2, Severity.INFO: 1}[self]


def _on_table(table: str | None) -> str:
    return f' "{table}"' if table else ""


@dataclass(frozen=True)
class TuningSuggestion:
    """A suggestion derived from EXPLAIN rows."""

    title: str
    description: str
    severity: Severity
    recommendation: str | None = None

    @classmethod
    def full_table_scan(cls, table: str | None, row_count: int | float) -> TuningSuggestion:
        return cls(
            title="Full table scan detected",
            description=f"Table{_on_table(table)} is read in full ({row_count} rows).",
            severity=Severity.CRITICAL,
            recommendation=(
                "Create an index on the columns used in the WHERE clause. Indexing "
                "frequently searched columns avoids reading every row."
            ),
        )

    @classmethod
    def unused_index(cls, table: str | None, possible_keys: str) -> TuningSuggestion:
        return cls(
            title="Available index is not used",
            description=(
                f"Table{_on_table(table)} has candidate indexes ({possible_keys}) "
                "but none of them is used."
            ),
            severity=Severity.WARNING,
            recommendation=(
                "Use an index hint, or rewrite the query so the optimizer can use "
                "one of the candidate indexes. Run ANALYZE TABLE if statistics are stale."
            ),
        )

    @classmethod
    def filesort(cls, table: str | None) -> TuningSuggestion:
        return cls(
            title="Filesort in use",
            description=f"Rows from table{_on_table(table)} are sorted without an index.",
            severity=Severity.WARNING,
            recommendation=(
                "Index the ORDER BY columns, or rewrite the query so an existing "
                "index can deliver rows in order."
            ),
        )

    @classmethod
    def temporary_table(cls, table: str | None) -> TuningSuggestion:
        return cls(
            title="Temporary table in use",
            description=f"Processing table{_on_table(table)} creates a temporary table.",
            severity=Severity.CRITICAL,
            recommendation=(
                "Review GROUP BY and DISTINCT so they can be resolved through an index."
            ),
        )

    @classmethod
    def high_join_cost(cls, total_cost: int | float) -> TuningSuggestion:
        return cls(
            title="Expensive join detected",
            description=f"The join is estimated to process {total_cost} rows.",
            severity=Severity.CRITICAL,
            recommendation=(
                "Index the join columns and join from the smallest table to the largest."
            ),
        )

    @classmethod
    def low_filtered_percentage(cls, table: str | None, filtered: float) -> TuningSuggestion:
        return cls(
            title="Low filtering efficiency",
            description=f"Only {filtered:g}% of the rows read from table{_on_table(table)} are kept.",
            severity=Severity.WARNING,
            recommendation=(
                "Review the WHERE clause so the most selective conditions can use an index."
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "recommendation": self.recommendation,
        }
