"""
MySQL EXPLAIN analyzer.

Runs the plan rules over parsed ExplainRow lists and collects suggestions.
"""

from __future__ import annotations

import logging
from typing import Sequence

from plansense.config import Config, get_config
from plansense.explain.models import ExplainRow
from plansense.explain.rules import (
    FullTableScan,
    HighJoinCost,
    LowFilteredPercentage,
    PlanRule,
    UnusedIndex,
    UsingFilesort,
    UsingTemporary,
)
from plansense.explain.suggestions import TuningSuggestion

logger = logging.getLogger(__name__)


class ExplainAnalyzer:
    """
    Analyzer for MySQL EXPLAIN rows.

    Detects common MySQL performance issues:
    - Full table scans (type='ALL') on large tables
    - Possible indexes that aren't used
    - Filesort operations
    - Temporary table usage
    - Low filtered percentage
    - Expensive multi-table joins
    """

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or get_config()
        row_rules: list[PlanRule] = [
            FullTableScan(min_rows=self.config.large_table_rows),
            UnusedIndex(),
            UsingFilesort(),
            UsingTemporary(),
            LowFilteredPercentage(threshold=self.config.low_filtered_percent),
        ]
        self.row_rules = [r for r in row_rules if self.config.is_rule_enabled(r.rule_id)]
        self.join_rule: HighJoinCost | None = None
        if self.config.is_rule_enabled(HighJoinCost.rule_id):
            self.join_rule = HighJoinCost(threshold=self.config.high_join_cost)

    def analyze(self, rows: Sequence[ExplainRow]) -> list[TuningSuggestion]:
        """
        Detect performance issues in EXPLAIN rows.

        Per-row rules run in a fixed order for every row; the join rule runs
        once afterwards.
        """
        suggestions: list[TuningSuggestion] = []

        for row in rows:
            for rule in self.row_rules:
                if rule.check(row):
                    suggestions.append(rule.suggest(row))

        if self.join_rule is not None and self.join_rule.check(rows):
            suggestions.append(self.join_rule.suggest(rows))

        logger.debug("Plan analysis: %d row(s), %d suggestion(s)", len(rows), len(suggestions))
        return suggestions

    @property
    def rules(self) -> list[PlanRule | HighJoinCost]:
        """All active rules, per-row first."""
        active: list[PlanRule | HighJoinCost] = list(self.row_rules)
        if self.join_rule is not None:
            active.append(self.join_rule)
        return active
