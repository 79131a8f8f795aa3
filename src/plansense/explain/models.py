"""
Canonical model for one line of MySQL EXPLAIN output.

MySQL EXPLAIN fields:
- id: SELECT identifier
- select_type: SIMPLE, PRIMARY, UNION, SUBQUERY, etc.
- table: Table name
- partitions: Matching partitions
- type: Access type (ALL, index, range, ref, eq_ref, const, system, NULL)
- possible_keys: Indexes that could be used
- key: Index actually used
- key_len: Length of key used
- ref: Columns compared to index
- rows: Estimated rows to examine
- filtered: Percentage of rows filtered by condition
- Extra: Additional information

Every supported text format is normalised into a list of ExplainRow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from plansense.explain.values import AccessType, QueryType, RowCount


@dataclass(frozen=True)
class ExplainRow:
    """Represents a single row in MySQL EXPLAIN output."""

    id: Union[int, float] = 0
    select_type: QueryType = field(default_factory=lambda: QueryType("SIMPLE"))
    table: str | None = None
    partitions: str | None = None
    type: AccessType = field(default_factory=lambda: AccessType(None))
    possible_keys: str | None = None
    key: str | None = None
    key_len: str | None = None
    ref: str | None = None
    rows: RowCount = field(default_factory=lambda: RowCount(None))
    filtered: float | None = None
    extra: str | None = None

    @property
    def is_full_table_scan(self) -> bool:
        """Check if this is a full table scan (type='ALL')."""
        return self.type.is_full_table_scan

    @property
    def has_unused_index(self) -> bool:
        """Check if possible index exists but isn't used."""
        return self.possible_keys is not None and self.key is None

    @property
    def has_filesort(self) -> bool:
        """Check if query requires filesort."""
        return self.extra is not None and "Using filesort" in self.extra

    @property
    def has_temporary_table(self) -> bool:
        """Check if query requires temporary table."""
        return self.extra is not None and "Using temporary" in self.extra

    @property
    def estimated_cost(self) -> int:
        """Rows expected to survive filtering: rows x filtered%, rounded."""
        if self.rows.value is None:
            return 0
        factor = self.filtered / 100 if self.filtered is not None else 1
        # Half-up; round() would send 2.5 to 2
        return int(self.rows.value * factor + 0.5)

    @property
    def possible_keys_list(self) -> list[str]:
        if not self.possible_keys:
            return []
        return [k.strip() for k in self.possible_keys.split(",")]

    def to_dict(self) -> dict[str, Any]:
        """Column-keyed mapping using MySQL's EXPLAIN column names."""
        return {
            "id": self.id,
            "select_type": self.select_type.value,
            "table": self.table,
            "partitions": self.partitions,
            "type": self.type.value,
            "possible_keys": self.possible_keys,
            "key": self.key,
            "key_len": self.key_len,
            "ref": self.ref,
            "rows": self.rows.value,
            "filtered": self.filtered,
            "Extra": self.extra,
        }
