"""
AnalysisService - orchestration layer for PlanSense.

Single entry point for both use cases. The CLI (and any other delivery
mechanism) calls this service instead of wiring parsers and rule engines
together itself.

Usage:
    from plansense.engine import AnalysisService

    service = AnalysisService()

    # EXPLAIN text
    report = service.analyze_explain(explain_text)
    for suggestion in report.suggestions:
        print(suggestion.title)

    # SQL text
    report = service.analyze_query("SELECT * FROM users")
    print(report.optimized.optimized)
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from plansense.config import Config, get_config
from plansense.explain.analyzer import ExplainAnalyzer
from plansense.explain.models import ExplainRow
from plansense.explain.parser import ExplainParser
from plansense.explain.suggestions import Severity, TuningSuggestion
from plansense.sql.analyzer import QueryTuningAnalyzer, QueryTuningSuggestion
from plansense.sql.models import QueryInfo
from plansense.sql.optimizer import OptimizedQuery, QueryOptimizer
from plansense.sql.parser import QueryParser

logger = logging.getLogger(__name__)


def _severity_counts(levels: list[Severity]) -> dict[str, int]:
    counter = Counter(levels)
    return {
        "total": len(levels),
        "critical": counter[Severity.CRITICAL],
        "warning": counter[Severity.WARNING],
        "info": counter[Severity.INFO],
    }


@dataclass(frozen=True)
class ExplainReport:
    """Parsed EXPLAIN rows, the detected format and plan suggestions."""

    rows: list[ExplainRow]
    suggestions: list[TuningSuggestion]
    format: str

    @property
    def has_critical(self) -> bool:
        return any(s.severity == Severity.CRITICAL for s in self.suggestions)

    @property
    def has_warnings(self) -> bool:
        return any(s.severity == Severity.WARNING for s in self.suggestions)

    def counts(self) -> dict[str, int]:
        """Suggestion counts: total, critical, warning, info."""
        return _severity_counts([s.severity for s in self.suggestions])

    def at_or_above(self, severity: Severity) -> list[TuningSuggestion]:
        return [s for s in self.suggestions if s.severity.rank >= severity.rank]


@dataclass(frozen=True)
class QueryReport:
    """
    Result of analysing one SQL statement.

    `optimized` is None when rewriting was not requested.
    """

    sql: str
    query_info: QueryInfo
    suggestions: list[QueryTuningSuggestion] = field(default_factory=list)
    optimized: OptimizedQuery | None = None

    @property
    def has_critical(self) -> bool:
        return any(s.level == Severity.CRITICAL for s in self.suggestions)

    @property
    def has_warnings(self) -> bool:
        return any(s.level == Severity.WARNING for s in self.suggestions)

    def counts(self) -> dict[str, int]:
        """Suggestion counts: total, critical, warning, info."""
        return _severity_counts([s.level for s in self.suggestions])

    def at_or_above(self, severity: Severity) -> list[QueryTuningSuggestion]:
        return [s for s in self.suggestions if s.level.rank >= severity.rank]


class AnalysisService:
    """
    Orchestrates parsing, rule evaluation and rewriting.

    Stateless apart from the configuration it was built with, so one
    instance can serve any number of analyses.
    """

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or get_config()
        self.explain_parser = ExplainParser(self.config)
        self.explain_analyzer = ExplainAnalyzer(self.config)
        self.query_parser = QueryParser(self.config)
        self.query_analyzer = QueryTuningAnalyzer()
        self.query_optimizer = QueryOptimizer()

    def analyze_explain(self, text: str) -> ExplainReport:
        """
        Parse EXPLAIN text and run the plan rules.

        Parse errors propagate unchanged; there is no partial result.

        Raises:
            ParseError: Empty, unrecognised, malformed or oversized input
            InvalidValueError: A field holds a value outside its domain
        """
        parsed = self.explain_parser.parse_detailed(text)
        suggestions = self.explain_analyzer.analyze(parsed.rows)
        logger.info(
            "Analyzed %d EXPLAIN row(s) (%s): %d suggestion(s)",
            len(parsed.rows), parsed.format, len(suggestions),
        )
        return ExplainReport(rows=parsed.rows, suggestions=suggestions, format=parsed.format)

    def analyze_query(self, sql: str, rewrite: bool = True) -> QueryReport:
        """Parse SQL text, run the query rules and optionally rewrite it. Never raises."""
        info = self.query_parser.parse(sql)
        suggestions = self.query_analyzer.analyze(info)
        optimized = self.query_optimizer.optimize(sql, info) if rewrite else None
        logger.info(
            "Analyzed %s statement on %d table(s): %d suggestion(s)",
            info.type.value, len(info.tables), len(suggestions),
        )
        return QueryReport(
            sql=sql,
            query_info=info,
            suggestions=suggestions,
            optimized=optimized,
        )
