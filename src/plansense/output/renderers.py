"""
Output renderers for different formats.

Separates presentation logic from analysis logic.
Uses schema.py Pydantic models as the single source of truth
for JSON serialization.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from plansense.engine import ExplainReport, QueryReport
from plansense.output.schema import (
    ExplainReportSchema,
    ExplainRowSchema,
    OptimizedQuerySchema,
    QueryInfoSchema,
    QueryReportSchema,
    QuerySuggestionSchema,
    SummarySchema,
    TuningSuggestionSchema,
)

if TYPE_CHECKING:
    from plansense.explain.models import ExplainRow

Report = Union[ExplainReport, QueryReport]


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


def render(report: Report, format: OutputFormat = OutputFormat.TEXT) -> str:
    """
    Render an EXPLAIN or query report in the specified format.

    Args:
        report: ExplainReport or QueryReport
        format: Output format (text, json, markdown)

    Returns:
        Formatted string
    """
    is_explain = isinstance(report, ExplainReport)
    if format == OutputFormat.TEXT:
        return render_explain_text(report) if is_explain else render_query_text(report)
    elif format == OutputFormat.JSON:
        return render_json(report)
    elif format == OutputFormat.MARKDOWN:
        return render_explain_markdown(report) if is_explain else render_query_markdown(report)
    else:
        raise ValueError(f"Unknown output format: {format}")


# =============================================================================
# Schema-based serialization (single source of truth)
# =============================================================================


def explain_report_to_schema(report: ExplainReport) -> ExplainReportSchema:
    return ExplainReportSchema(
        format=report.format,
        summary=SummarySchema(**report.counts()),
        rows=[ExplainRowSchema.model_validate(row.to_dict()) for row in report.rows],
        suggestions=[TuningSuggestionSchema(**s.to_dict()) for s in report.suggestions],
    )


def query_report_to_schema(report: QueryReport) -> QueryReportSchema:
    return QueryReportSchema(
        sql=report.sql,
        summary=SummarySchema(**report.counts()),
        query_info=QueryInfoSchema.model_validate(report.query_info.to_dict()),
        suggestions=[QuerySuggestionSchema(**s.to_dict()) for s in report.suggestions],
        optimized=(
            OptimizedQuerySchema.model_validate(report.optimized.to_dict())
            if report.optimized
            else None
        ),
    )


def render_json(report: Report, indent: int = 2) -> str:
    """
    Render a report as stable JSON.

    Uses Pydantic schema models for guaranteed consistency.
    """
    if isinstance(report, ExplainReport):
        data = explain_report_to_schema(report).model_dump(mode="json", by_alias=True)
    else:
        data = query_report_to_schema(report).model_dump(mode="json")
    return json.dumps(data, indent=indent, ensure_ascii=False)


# =============================================================================
# Text renderers (terminal)
# =============================================================================


def _summary_lines(counts: dict[str, int]) -> list[str]:
    lines = ["Summary:", f"  Total Suggestions: {counts['total']}"]
    if counts["critical"]:
        lines.append(f"  🔴 Critical: {counts['critical']}")
    if counts["warning"]:
        lines.append(f"  🟡 Warnings: {counts['warning']}")
    if counts["info"]:
        lines.append(f"  🔵 Info: {counts['info']}")
    return lines


def render_explain_text(report: ExplainReport) -> str:
    """Render an EXPLAIN report as plain terminal text."""
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append("PlanSense EXPLAIN Report")
    lines.append("=" * 60)
    lines.append("")
    lines.append(f"Format: {report.format}")
    lines.append(f"Rows: {len(report.rows)}")
    lines.append("")
    lines.extend(_summary_lines(report.counts()))
    lines.append("")

    if report.suggestions:
        lines.append("-" * 60)
        lines.append("SUGGESTIONS")
        lines.append("-" * 60)

        for i, suggestion in enumerate(report.suggestions, 1):
            lines.append("")
            lines.append(f"[{i}] {_severity_icon(suggestion.severity)} {suggestion.title}")
            lines.append(f"    {suggestion.description}")
            if suggestion.recommendation:
                lines.append("")
                lines.append("    Recommendation:")
                lines.append(f"      {suggestion.recommendation}")
    else:
        lines.append("✓ No issues found")

    lines.append("")
    lines.append("=" * 60)

    return "\n".join(lines)


def render_query_text(report: QueryReport) -> str:
    """Render a query report as plain terminal text."""
    lines: list[str] = []
    info = report.query_info

    lines.append("=" * 60)
    lines.append("PlanSense Query Report")
    lines.append("=" * 60)
    lines.append("")
    lines.append(f"Statement: {info.type.value}")
    lines.append(f"Tables: {', '.join(info.tables) or '-'}")
    if info.joins:
        lines.append(f"Joins: {len(info.joins)}")
    if info.subqueries:
        lines.append(f"Subqueries: {len(info.subqueries)}")
    lines.append("")
    lines.extend(_summary_lines(report.counts()))
    lines.append("")

    if report.suggestions:
        lines.append("-" * 60)
        lines.append("SUGGESTIONS")
        lines.append("-" * 60)

        for i, suggestion in enumerate(report.suggestions, 1):
            lines.append("")
            lines.append(
                f"[{i}] {_severity_icon(suggestion.level)} {suggestion.type}: {suggestion.description}"
            )
            if suggestion.impact:
                lines.append(f"    Impact: {suggestion.impact.value}")
            lines.append(f"    {suggestion.suggestion}")
            if suggestion.example:
                lines.append(f"      {suggestion.example}")
    else:
        lines.append("✓ No issues found")

    optimized = report.optimized
    if optimized and optimized.changes:
        lines.append("")
        lines.append("-" * 60)
        lines.append(f"REWRITE (estimated improvement {optimized.estimated_improvement}%)")
        lines.append("-" * 60)
        for change in optimized.changes:
            lines.append(f"  • [{change.kind.value}] {change.description}")
        lines.append("")
        lines.append(optimized.optimized.strip())

    lines.append("")
    lines.append("=" * 60)

    return "\n".join(lines)


# =============================================================================
# Markdown renderers
# =============================================================================


def _status_line(counts: dict[str, int]) -> str:
    if counts["critical"]:
        return "🔴 **Critical issues found**"
    if counts["warning"]:
        return "🟡 **Warnings found**"
    return "✅ **No issues found**"


def _cell(value: Any) -> str:
    if value is None:
        return "NULL"
    return str(value).replace("|", "\\|")


def _rows_table(rows: list["ExplainRow"]) -> list[str]:
    columns = list(rows[0].to_dict()) if rows else []
    lines = [
        "| " + " | ".join(columns) + " |",
        "|" + "|".join("---" for _ in columns) + "|",
    ]
    for row in rows:
        lines.append("| " + " | ".join(_cell(v) for v in row.to_dict().values()) + " |")
    return lines


def render_explain_markdown(report: ExplainReport) -> str:
    """
    Render an EXPLAIN report as Markdown.

    Suitable for GitHub comments/issues and documentation.
    """
    counts = report.counts()
    lines: list[str] = []

    lines.append("# PlanSense EXPLAIN Report")
    lines.append("")
    lines.append(_status_line(counts))
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| Format | `{report.format}` |")
    lines.append(f"| Rows | {len(report.rows)} |")
    lines.append(f"| Critical | {counts['critical']} |")
    lines.append(f"| Warnings | {counts['warning']} |")
    lines.append(f"| Info | {counts['info']} |")
    lines.append("")

    if report.rows:
        lines.append("## Plan")
        lines.append("")
        lines.extend(_rows_table(report.rows))
        lines.append("")

    if report.suggestions:
        lines.append("## Suggestions")
        lines.append("")
        for i, suggestion in enumerate(report.suggestions, 1):
            lines.append(f"### {i}. {_severity_icon(suggestion.severity)} {suggestion.title}")
            lines.append("")
            lines.append(suggestion.description)
            lines.append("")
            if suggestion.recommendation:
                lines.append(f"**Recommendation:** {suggestion.recommendation}")
                lines.append("")

    return "\n".join(lines)


def render_query_markdown(report: QueryReport) -> str:
    """Render a query report as Markdown."""
    counts = report.counts()
    info = report.query_info
    lines: list[str] = []

    lines.append("# PlanSense Query Report")
    lines.append("")
    lines.append(_status_line(counts))
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| Statement | `{info.type.value}` |")
    lines.append(f"| Tables | {', '.join(f'`{t}`' for t in info.tables) or '-'} |")
    lines.append(f"| Critical | {counts['critical']} |")
    lines.append(f"| Warnings | {counts['warning']} |")
    lines.append(f"| Info | {counts['info']} |")
    lines.append("")

    if report.suggestions:
        lines.append("## Suggestions")
        lines.append("")
        for i, suggestion in enumerate(report.suggestions, 1):
            lines.append(
                f"### {i}. {_severity_icon(suggestion.level)} {suggestion.type}: {suggestion.description}"
            )
            lines.append("")
            if suggestion.impact:
                lines.append(f"**Expected Impact:** {suggestion.impact.value}")
                lines.append("")
            lines.append(suggestion.suggestion)
            lines.append("")
            if suggestion.example:
                lines.append("```sql")
                lines.append(suggestion.example)
                lines.append("```")
                lines.append("")

    optimized = report.optimized
    if optimized and optimized.changes:
        lines.append("## Rewritten Query")
        lines.append("")
        lines.append(f"Estimated improvement: **{optimized.estimated_improvement}%**")
        lines.append("")
        for change in optimized.changes:
            lines.append(f"- `{change.kind.value}`: {change.description}")
        lines.append("")
        lines.append("```sql")
        lines.append(optimized.optimized.strip())
        lines.append("```")
        lines.append("")

    return "\n".join(lines)


# =============================================================================
# Helpers
# =============================================================================


def _severity_icon(severity: Any) -> str:
    """Get icon for severity level."""
    severity_str = severity.value if hasattr(severity, "value") else str(severity)
    return {
        "critical": "🔴",
        "warning": "🟡",
        "info": "🔵",
    }.get(severity_str, "⚪")
