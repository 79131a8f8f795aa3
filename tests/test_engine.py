"""
Integration tests for the PlanSense pipeline.

These tests verify the full flow from text to rendered report:
- test_explain_*: EXPLAIN text through the service and renderers
- test_query_*: SQL text through the service and renderers
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from plansense.config import Config
from plansense.engine import AnalysisService, ExplainReport, QueryReport
from plansense.exceptions import EmptyInputError, UnsupportedFormatError
from plansense.explain.suggestions import Severity
from plansense.output import OutputFormat, get_json_schema, render

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "mysql"


@pytest.fixture
def service() -> AnalysisService:
    return AnalysisService(Config())


@pytest.fixture
def explain_report(service: AnalysisService) -> ExplainReport:
    return service.analyze_explain((FIXTURES_DIR / "bordered.txt").read_text(encoding="utf-8"))


@pytest.fixture
def query_report(service: AnalysisService) -> QueryReport:
    return service.analyze_query("SELECT * FROM users WHERE email = 'a@b.c'")


# =============================================================================
# EXPLAIN pipeline
# =============================================================================


class TestExplainPipeline:
    def test_report_contents(self, explain_report: ExplainReport) -> None:
        assert explain_report.format == "table"
        assert len(explain_report.rows) == 2
        assert explain_report.counts() == {"total": 4, "critical": 1, "warning": 3, "info": 0}
        assert explain_report.has_critical
        assert explain_report.has_warnings

    def test_at_or_above(self, explain_report: ExplainReport) -> None:
        assert len(explain_report.at_or_above(Severity.CRITICAL)) == 1
        assert len(explain_report.at_or_above(Severity.WARNING)) == 4
        assert len(explain_report.at_or_above(Severity.INFO)) == 4

    def test_parse_errors_propagate(self, service: AnalysisService) -> None:
        with pytest.raises(EmptyInputError):
            service.analyze_explain("")
        with pytest.raises(UnsupportedFormatError):
            service.analyze_explain("hello world")

    def test_overflowing_row_estimate(self, service: AnalysisService) -> None:
        text = "id,select_type,table,type,rows\n1,SIMPLE,users,ALL,1e400\n"
        report = service.analyze_explain(text)
        assert report.format == "csv"
        assert report.rows[0].rows.value is None
        json.loads(render(report, OutputFormat.JSON))

    def test_json_output(self, explain_report: ExplainReport) -> None:
        data = json.loads(render(explain_report, OutputFormat.JSON))
        assert data["version"] == "1.0"
        assert data["format"] == "table"
        assert data["summary"]["critical"] == 1
        assert data["rows"][0]["Extra"] == "Using where; Using filesort"
        assert data["rows"][1]["key"] == "idx_user_id"
        assert data["suggestions"][0]["severity"] == "critical"

    def test_text_output(self, explain_report: ExplainReport) -> None:
        text = render(explain_report, OutputFormat.TEXT)
        assert "PlanSense EXPLAIN Report" in text
        assert "Full table scan detected" in text

    def test_markdown_output(self, explain_report: ExplainReport) -> None:
        markdown = render(explain_report, OutputFormat.MARKDOWN)
        assert markdown.startswith("# PlanSense EXPLAIN Report")
        assert "## Plan" in markdown
        assert "| Using where; Using filesort |" in markdown


# =============================================================================
# Query pipeline
# =============================================================================


class TestQueryPipeline:
    def test_report_contents(self, query_report: QueryReport) -> None:
        assert query_report.sql == "SELECT * FROM users WHERE email = 'a@b.c'"
        assert query_report.query_info.tables == ["USERS"]
        assert [s.description for s in query_report.suggestions] == ["Avoid SELECT *"]
        assert query_report.optimized is not None
        assert "USE INDEX (idx_USERS_EMAIL)" in query_report.optimized.optimized

    def test_rewrite_can_be_skipped(self, service: AnalysisService) -> None:
        report = service.analyze_query("SELECT * FROM users", rewrite=False)
        assert report.optimized is None
        assert report.has_critical

    @pytest.mark.parametrize("sql", ["", "((((", "not sql at all", "SELECT * FROM"])
    def test_never_raises(self, service: AnalysisService, sql: str) -> None:
        report = service.analyze_query(sql)
        assert isinstance(report.suggestions, list)

    def test_json_output(self, query_report: QueryReport) -> None:
        data = json.loads(render(query_report, OutputFormat.JSON))
        assert data["sql"] == query_report.sql
        assert data["query_info"]["type"] == "SELECT"
        assert data["query_info"]["select_all"] is True
        assert data["suggestions"][0]["level"] == "warning"
        assert data["optimized"]["changes"][0]["kind"] == "index_hint"
        assert data["optimized"]["estimated_improvement"] == 10

    def test_json_without_rewrite(self, service: AnalysisService) -> None:
        report = service.analyze_query("SELECT id FROM t WHERE id = 1", rewrite=False)
        data = json.loads(render(report, OutputFormat.JSON))
        assert data["optimized"] is None

    def test_text_output(self, query_report: QueryReport) -> None:
        text = render(query_report, OutputFormat.TEXT)
        assert "PlanSense Query Report" in text
        assert "REWRITE (estimated improvement 10%)" in text

    def test_markdown_output(self, query_report: QueryReport) -> None:
        markdown = render(query_report, OutputFormat.MARKDOWN)
        assert "## Suggestions" in markdown
        assert "## Rewritten Query" in markdown
        assert "```sql" in markdown


def test_json_schema_covers_both_reports() -> None:
    schemas = get_json_schema()
    assert set(schemas) == {"explain", "query"}
    assert "Extra" in json.dumps(schemas["explain"])
    assert "query_info" in schemas["query"]["properties"]
