"""
Output module - Separates rendering from analysis.

Provides multiple output formats:
- render_*_text: Plain terminal output for the CLI
- render_json: Stable JSON schema for CI pipelines
- render_*_markdown: GitHub-friendly format

Usage:
    from plansense.output import OutputFormat, render

    report = AnalysisService().analyze_explain(text)
    print(render(report, OutputFormat.MARKDOWN))
"""

from plansense.output.renderers import (
    OutputFormat,
    render,
    render_explain_markdown,
    render_explain_text,
    render_json,
    render_query_markdown,
    render_query_text,
)
from plansense.output.schema import (
    ExplainReportSchema,
    QueryReportSchema,
    get_json_schema,
)

__all__ = [
    "OutputFormat",
    "render",
    "render_explain_text",
    "render_explain_markdown",
    "render_query_text",
    "render_query_markdown",
    "render_json",
    "ExplainReportSchema",
    "QueryReportSchema",
    "get_json_schema",
]
