"""
JSON Schema definitions for stable output.

Provides versioned schema for:
- CI/CD integration (--json output)
- Documentation generation

The schema is stable across minor versions.
Breaking changes only in major versions.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SummarySchema(BaseModel):
    """Suggestion counts by severity."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(0, description="Total suggestions")
    critical: int = Field(0, description="Critical suggestions")
    warning: int = Field(0, description="Warnings")
    info: int = Field(0, description="Informational suggestions")


class ExplainRowSchema(BaseModel):
    """Schema for one EXPLAIN row, keyed like MySQL's own columns."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int | float = Field(0, description="SELECT identifier")
    select_type: str = Field("SIMPLE", description="SELECT type")
    table: str | None = Field(None, description="Table accessed")
    partitions: str | None = Field(None, description="Matching partitions")
    type: str | None = Field(None, description="Access type")
    possible_keys: str | None = Field(None, description="Candidate indexes")
    key: str | None = Field(None, description="Chosen index")
    key_len: str | None = Field(None, description="Length of the chosen key")
    ref: str | None = Field(None, description="Columns compared to the index")
    rows: int | float | None = Field(None, description="Estimated rows examined")
    filtered: int | float | None = Field(None, description="Percentage of rows kept by the condition")
    extra: str | None = Field(None, alias="Extra", description="Additional information")


class TuningSuggestionSchema(BaseModel):
    """Schema for a plan-based suggestion."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="One-line summary")
    description: str = Field(..., description="What was detected")
    severity: str = Field(..., description="Severity level (critical/warning/info)")
    recommendation: str | None = Field(None, description="Actionable fix")


class ExplainReportSchema(BaseModel):
    """
    Complete EXPLAIN analysis output.

    This schema is stable across minor versions.
    """

    model_config = ConfigDict(frozen=True)

    version: str = Field("1.0", description="Schema version")
    format: str = Field(..., description="Detected EXPLAIN format")
    summary: SummarySchema
    rows: list[ExplainRowSchema] = Field(default_factory=list)
    suggestions: list[TuningSuggestionSchema] = Field(default_factory=list)


class JoinSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    table: str
    condition: str
    alias: str | None = None


class WhereConditionSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    column: str
    operator: str
    value: str
    conjunction: str = "AND"
    table: str | None = None


class OrderBySchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    column: str
    direction: str = "ASC"


class QueryInfoSchema(BaseModel):
    """Schema for the structured decomposition of a statement."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Statement type")
    tables: list[str] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)
    select_all: bool = Field(False, description="SELECT list is *")
    joins: list[JoinSchema] = Field(default_factory=list)
    where_conditions: list[WhereConditionSchema] = Field(default_factory=list)
    order_by: list[OrderBySchema] = Field(default_factory=list)
    group_by: list[str] = Field(default_factory=list)
    having: str | None = None
    limit: int | None = None
    subqueries: list[QueryInfoSchema] = Field(default_factory=list)


class QuerySuggestionSchema(BaseModel):
    """Schema for a query-text suggestion."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(..., description="Severity level (critical/warning/info)")
    type: str = Field(..., description="Category")
    description: str = Field(..., description="One-line summary")
    suggestion: str = Field(..., description="What to do")
    impact: str | None = Field(None, description="Expected impact (high/medium/low)")
    example: str | None = Field(None, description="Example SQL")


class OptimizationChangeSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., description="rewrite, index_hint, join_order or subquery_optimization")
    description: str
    before: str
    after: str


class OptimizedQuerySchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    original: str
    optimized: str
    changes: list[OptimizationChangeSchema] = Field(default_factory=list)
    estimated_improvement: int = Field(0, ge=0, le=100, description="Estimated improvement in percent")


class QueryReportSchema(BaseModel):
    """
    Complete SQL analysis output.

    This schema is stable across minor versions.
    """

    model_config = ConfigDict(frozen=True)

    version: str = Field("1.0", description="Schema version")
    sql: str = Field(..., description="Statement as submitted")
    summary: SummarySchema
    query_info: QueryInfoSchema
    suggestions: list[QuerySuggestionSchema] = Field(default_factory=list)
    optimized: OptimizedQuerySchema | None = None


def get_json_schema() -> dict[str, Any]:
    """JSON Schemas for both report kinds, keyed by report name."""
    return {
        "explain": ExplainReportSchema.model_json_schema(),
        "query": QueryReportSchema.model_json_schema(),
    }


# Schema version - increment on breaking changes
SCHEMA_VERSION = "1.0"
