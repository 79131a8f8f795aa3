"""
SQL text analysis.

Regex-based decomposition of a statement into QueryInfo, a heuristic rule
engine over it, and a textual rewriter.
"""

from plansense.sql.analyzer import (
    Impact,
    QueryTuningAnalyzer,
    QueryTuningSuggestion,
    suggestion_sort_key,
)
from plansense.sql.models import (
    JoinInfo,
    JoinType,
    OrderByInfo,
    QueryInfo,
    StatementType,
    WhereCondition,
)
from plansense.sql.optimizer import (
    ChangeKind,
    OptimizationChange,
    OptimizedQuery,
    QueryOptimizer,
)
from plansense.sql.parser import QueryParser, normalize_query

__all__ = [
    "ChangeKind",
    "Impact",
    "JoinInfo",
    "JoinType",
    "OptimizationChange",
    "OptimizedQuery",
    "OrderByInfo",
    "QueryInfo",
    "QueryOptimizer",
    "QueryParser",
    "QueryTuningAnalyzer",
    "QueryTuningSuggestion",
    "StatementType",
    "WhereCondition",
    "normalize_query",
    "suggestion_sort_key",
]
