"""
MySQL EXPLAIN text analysis.

Supports:
- CSV, TSV, bordered table, vertical (\\G) and plain-table dumps
- Plan rules for full scans, unused indexes, filesort, temporary tables,
  low filtering and expensive joins
"""

from plansense.explain.analyzer import ExplainAnalyzer
from plansense.explain.models import ExplainRow
from plansense.explain.parser import (
    ExplainParser,
    ParsedExplain,
    PlainTableStyle,
    classify_plain_table,
)
from plansense.explain.suggestions import Severity, TuningSuggestion
from plansense.explain.values import AccessType, QueryType, RowCount

__all__ = [
    "AccessType",
    "ExplainAnalyzer",
    "ExplainParser",
    "ExplainRow",
    "ParsedExplain",
    "PlainTableStyle",
    "QueryType",
    "RowCount",
    "Severity",
    "TuningSuggestion",
    "classify_plain_table",
]
