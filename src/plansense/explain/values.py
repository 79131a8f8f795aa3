"""
Validated value objects for MySQL EXPLAIN fields.

MySQL EXPLAIN columns with a fixed domain:
- type: Access type (ALL, index, range, ref, eq_ref, const, system, ...)
- select_type: SIMPLE, PRIMARY, UNION, SUBQUERY, etc.
- rows: Estimated rows to examine

Each wrapper rejects values outside its domain at construction time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

from plansense.exceptions import InvalidValueError

Number = Union[int, float]


@dataclass(frozen=True)
class AccessType:
    """Access strategy of one plan step, or None when MySQL shows NULL."""

    value: str | None

    VALID_TYPES: ClassVar[tuple[str, ...]] = (
        "system",
        "const",
        "eq_ref",
        "ref",
        "fulltext",
        "ref_or_null",
        "index_merge",
        "unique_subquery",
        "index_subquery",
        "range",
        "index",
        "ALL",
    )

    # Best (10) to worst (1)
    PERFORMANCE_SCORES: ClassVar[dict[str, int]] = {
        "system": 10,
        "const": 9,
        "eq_ref": 8,
        "ref": 7,
        "fulltext": 6,
        "ref_or_null": 6,
        "index_merge": 5,
        "unique_subquery": 5,
        "index_subquery": 4,
        "range": 3,
        "index": 2,
        "ALL": 1,
    }

    def __post_init__(self) -> None:
        if self.value is not None and self.value not in self.VALID_TYPES:
            raise InvalidValueError("access type", self.value)

    @property
    def is_full_table_scan(self) -> bool:
        return self.value == "ALL"

    @property
    def is_index_scan(self) -> bool:
        return self.value == "index"

    @property
    def is_optimal(self) -> bool:
        return self.value in ("system", "const", "eq_ref")

    @property
    def requires_optimization(self) -> bool:
        return self.value in ("ALL", "index")

    @property
    def performance_score(self) -> int:
        """Relative performance, 10 (system) down to 1 (ALL); 0 when absent."""
        if self.value is None:
            return 0
        return self.PERFORMANCE_SCORES.get(self.value, 0)

    def __str__(self) -> str:
        return self.value if self.value is not None else "NULL"


@dataclass(frozen=True)
class QueryType:
    """The select_type of a plan row."""

    value: str

    VALID_TYPES: ClassVar[tuple[str, ...]] = (
        "SIMPLE",
        "PRIMARY",
        "SUBQUERY",
        "DERIVED",
        "UNION",
        "UNION RESULT",
        "DEPENDENT UNION",
        "DEPENDENT SUBQUERY",
        "MATERIALIZED",
        "UNCACHEABLE SUBQUERY",
        "UNCACHEABLE UNION",
    )

    def __post_init__(self) -> None:
        if self.value not in self.VALID_TYPES:
            raise InvalidValueError("query type", self.value)

    @property
    def is_simple(self) -> bool:
        return self.value == "SIMPLE"

    @property
    def is_subquery(self) -> bool:
        return "SUBQUERY" in self.value

    @property
    def is_union(self) -> bool:
        return "UNION" in self.value

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RowCount:
    """Estimated row count; None means unknown."""

    value: Number | None

    SMALL_LIMIT: ClassVar[int] = 1000
    LARGE_LIMIT: ClassVar[int] = 10000

    def __post_init__(self) -> None:
        if self.value is not None and self.value < 0:
            raise InvalidValueError(
                "row count", self.value, "Row count cannot be negative"
            )

    @property
    def is_small(self) -> bool:
        return self.value is not None and self.value < self.SMALL_LIMIT

    @property
    def is_medium(self) -> bool:
        return self.value is not None and self.SMALL_LIMIT <= self.value <= self.LARGE_LIMIT

    @property
    def is_large(self) -> bool:
        return self.value is not None and self.value > self.LARGE_LIMIT

    def multiply(self, other: RowCount) -> RowCount:
        """Product of two counts; unknown if either side is unknown."""
        if self.value is None or other.value is None:
            return RowCount(None)
        return RowCount(self.value * other.value)

    def __str__(self) -> str:
        return str(self.value) if self.value is not None else "NULL"
