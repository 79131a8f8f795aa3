"""PlanSense - MySQL EXPLAIN and SQL text tuning advisor."""

__version__ = "0.1.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from plansense.exceptions import (
    PlanSenseError,
    ParseError,
    EmptyInputError,
    UnsupportedFormatError,
    MalformedExplainError,
    InputTooLargeError,
    InvalidValueError,
    ConfigurationError,
)

from plansense.config import Config, get_config, reset_config

# EXPLAIN analysis
from plansense.explain import (
    AccessType,
    ExplainAnalyzer,
    ExplainParser,
    ExplainRow,
    QueryType,
    RowCount,
    Severity,
    TuningSuggestion,
)

# SQL text analysis
from plansense.sql import (
    Impact,
    OptimizationChange,
    OptimizedQuery,
    QueryInfo,
    QueryOptimizer,
    QueryParser,
    QueryTuningAnalyzer,
    QueryTuningSuggestion,
)

from plansense.engine import AnalysisService, ExplainReport, QueryReport

__all__ = [
    "__version__",
    # Exceptions
    "PlanSenseError",
    "ParseError",
    "EmptyInputError",
    "UnsupportedFormatError",
    "MalformedExplainError",
    "InputTooLargeError",
    "InvalidValueError",
    "ConfigurationError",
    # Config
    "Config",
    "get_config",
    "reset_config",
    # EXPLAIN
    "AccessType",
    "ExplainAnalyzer",
    "ExplainParser",
    "ExplainRow",
    "QueryType",
    "RowCount",
    "Severity",
    "TuningSuggestion",
    # SQL
    "Impact",
    "OptimizationChange",
    "OptimizedQuery",
    "QueryInfo",
    "QueryOptimizer",
    "QueryParser",
    "QueryTuningAnalyzer",
    "QueryTuningSuggestion",
    # Orchestration
    "AnalysisService",
    "ExplainReport",
    "QueryReport",
]
