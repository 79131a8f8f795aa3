"""
Tests for the query-text rule engine.

Queries go through the real parser so the rules are tested against the
QueryInfo shapes they actually see.
"""

from __future__ import annotations

import pytest

from plansense.config import Config
from plansense.explain.suggestions import Severity
from plansense.sql.analyzer import (
    QUERY_RULES,
    Impact,
    QueryTuningAnalyzer,
    QueryTuningSuggestion,
    suggestion_sort_key,
)
from plansense.sql.parser import QueryParser


@pytest.fixture
def analyze():
    parser = QueryParser(Config())
    analyzer = QueryTuningAnalyzer()

    def run(sql: str) -> list[QueryTuningSuggestion]:
        return analyzer.analyze(parser.parse(sql))

    return run


def types_of(suggestions: list[QueryTuningSuggestion]) -> list[str]:
    return [s.type for s in suggestions]


class TestBasicRules:
    def test_select_star_without_where(self, analyze) -> None:
        suggestions = analyze("SELECT * FROM users")
        assert [(s.level, s.description) for s in suggestions] == [
            (Severity.CRITICAL, "No WHERE clause"),
            (Severity.WARNING, "Avoid SELECT *"),
        ]

    def test_update_without_where(self, analyze) -> None:
        suggestions = analyze("UPDATE users SET status = 'inactive'")
        critical = [s for s in suggestions if s.level == Severity.CRITICAL]
        assert len(critical) == 1
        assert critical[0].type == "Safety"
        assert critical[0].description == "UPDATE without WHERE"

    def test_delete_without_where(self, analyze) -> None:
        suggestions = analyze("DELETE FROM sessions")
        assert [s.description for s in suggestions] == ["DELETE without WHERE"]

    def test_delete_with_where_is_quiet(self, analyze) -> None:
        assert analyze("DELETE FROM sessions WHERE expires < 100") == []

    def test_leading_wildcard_like(self, analyze) -> None:
        suggestions = analyze("SELECT id FROM users WHERE email LIKE '%@example.com'")
        assert types_of(suggestions) == ["Index usage"]
        assert "EMAIL" in suggestions[0].suggestion

    def test_trailing_wildcard_like_is_fine(self, analyze) -> None:
        assert analyze("SELECT id FROM users WHERE email LIKE 'bob%'") == []

    def test_join_complexity(self, analyze) -> None:
        suggestions = analyze(
            "SELECT a.id FROM a "
            "JOIN b ON b.a_id = a.id JOIN c ON c.b_id = b.id "
            "JOIN d ON d.c_id = c.id JOIN e ON e.d_id = d.id WHERE a.id = 1"
        )
        assert "Join complexity" in types_of(suggestions)

    def test_group_by_lists_columns(self, analyze) -> None:
        suggestions = analyze(
            "SELECT status, region, COUNT(*) FROM orders WHERE total > 10 GROUP BY status, region LIMIT 50"
        )
        group = [s for s in suggestions if s.description == "GROUP BY is used"]
        assert len(group) == 1
        assert "STATUS, REGION" in group[0].suggestion

    def test_many_order_by_columns(self, analyze) -> None:
        suggestions = analyze("SELECT id FROM t WHERE x = 1 ORDER BY a, b, c LIMIT 5")
        assert "ORDER BY on several columns" in [s.description for s in suggestions]

    def test_in_subquery_reported_once(self, analyze) -> None:
        suggestions = analyze(
            "SELECT * FROM users WHERE id IN (SELECT user_id FROM orders WHERE status = 'active') "
            "AND team_id IN (SELECT id FROM teams WHERE active = 1)"
        )
        in_subquery = [s for s in suggestions if s.description == "IN subquery is used"]
        assert len(in_subquery) == 1
        assert "Subqueries are used" in [s.description for s in suggestions]

    def test_minimal_query_is_quiet(self, analyze) -> None:
        assert analyze("SELECT id, name FROM users WHERE id = 5") == []


class TestQueryPatterns:
    def test_n_plus_one(self, analyze) -> None:
        suggestions = analyze("SELECT name FROM users WHERE id = 5 LIMIT 1")
        assert len(suggestions) == 1
        n_plus_one = suggestions[0]
        assert n_plus_one.type == "N+1 query"
        assert n_plus_one.level == Severity.WARNING
        assert n_plus_one.impact == Impact.HIGH
        assert n_plus_one.example == "SELECT * FROM USERS WHERE id IN (1, 2, 3, ...)"

    def test_cartesian_product_first(self, analyze) -> None:
        suggestions = analyze("SELECT a.x FROM a CROSS JOIN b WHERE a.id = 1")
        assert suggestions[0].type == "Cartesian product"
        assert suggestions[0].level == Severity.CRITICAL
        assert suggestions[0].impact == Impact.HIGH


class TestIndexOptimization:
    def test_index_suggestions_and_ordering(self, analyze) -> None:
        suggestions = analyze(
            "SELECT id FROM orders WHERE status = 'a' OR status = 'b' AND region = 'eu' "
            "ORDER BY created_at"
        )
        assert types_of(suggestions) == [
            "Composite index",
            "Index optimization",
            "Sort optimization",
            "Performance",
        ]
        composite, single, sort, _ = suggestions
        assert composite.example == "CREATE INDEX idx_ORDERS_composite ON ORDERS(STATUS, REGION);"
        assert single.example == "CREATE INDEX idx_ORDERS_STATUS ON ORDERS(STATUS);"
        assert sort.example == "CREATE INDEX idx_ORDERS_sort ON ORDERS(CREATED_AT);"

    def test_composite_uses_first_three_distinct_columns(self, analyze) -> None:
        suggestions = analyze("SELECT id FROM t WHERE a = 1 AND b = 2 AND c = 3 AND d = 4")
        (composite,) = [s for s in suggestions if s.type == "Composite index"]
        assert composite.example == "CREATE INDEX idx_T_composite ON T(A, B, C);"

    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT 1 WHERE a = 1 AND a = 2 AND b = 3 ORDER BY c",
            "SELECT name WHERE id = 5 LIMIT 1",
        ],
    )
    def test_no_example_without_table(self, analyze, sql: str) -> None:
        suggestions = analyze(sql)
        assert suggestions
        assert all(s.example is None for s in suggestions)


class TestJoinOptimization:
    def test_three_joins(self, analyze) -> None:
        suggestions = analyze(
            "SELECT u.id FROM users u "
            "JOIN orders o ON o.user_id = u.id "
            "JOIN items i ON i.order_id = o.id "
            "JOIN products p ON p.id = i.product_id "
            "WHERE u.id = 1"
        )
        assert types_of(suggestions) == ["Join index", "Join index", "Join index", "Join order"]
        assert suggestions[0].example == "CREATE INDEX idx_ORDERS_join ON ORDERS(<join_column>);"

    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT u.id FROM users u LEFT JOIN orders ON orders.user_id = u.id "
            "WHERE orders.status = 'paid'",
            "SELECT u.id FROM users u LEFT JOIN orders o ON o.user_id = u.id "
            "WHERE o.status = 'paid'",
        ],
    )
    def test_left_join_filtered_in_where(self, analyze, sql: str) -> None:
        suggestions = analyze(sql)
        left = [s for s in suggestions if s.type == "LEFT JOIN"]
        assert len(left) == 1
        assert left[0].level == Severity.WARNING
        assert left[0].impact == Impact.LOW

    def test_where_on_driving_table_is_not_left_join_filter(self, analyze) -> None:
        suggestions = analyze(
            "SELECT u.id FROM users u LEFT JOIN orders o ON o.user_id = u.id "
            "WHERE u.status = 'active'"
        )
        assert "LEFT JOIN" not in types_of(suggestions)

    def test_unqualified_column_is_not_attributed(self, analyze) -> None:
        suggestions = analyze(
            "SELECT u.id FROM users u LEFT JOIN orders ON orders.user_id = u.id "
            "WHERE orders_status = 'paid'"
        )
        assert "LEFT JOIN" not in types_of(suggestions)


class TestSortKey:
    def test_level_then_impact(self) -> None:
        def make(level: Severity, impact: Impact | None) -> QueryTuningSuggestion:
            return QueryTuningSuggestion(level=level, type="t", description="d", suggestion="s", impact=impact)

        unsorted = [
            make(Severity.INFO, Impact.HIGH),
            make(Severity.WARNING, None),
            make(Severity.WARNING, Impact.LOW),
            make(Severity.CRITICAL, None),
            make(Severity.INFO, None),
            make(Severity.INFO, Impact.MEDIUM),
        ]
        ordered = sorted(unsorted, key=suggestion_sort_key)
        assert [(s.level, s.impact) for s in ordered] == [
            (Severity.CRITICAL, None),
            (Severity.WARNING, Impact.LOW),
            (Severity.WARNING, None),
            (Severity.INFO, Impact.HIGH),
            (Severity.INFO, Impact.MEDIUM),
            (Severity.INFO, None),
        ]

    def test_to_dict(self) -> None:
        suggestion = QueryTuningSuggestion(
            level=Severity.WARNING, type="Index", description="d", suggestion="s", impact=Impact.MEDIUM
        )
        assert suggestion.to_dict() == {
            "level": "warning",
            "type": "Index",
            "description": "d",
            "suggestion": "s",
            "impact": "medium",
            "example": None,
        }


class TestRuleCatalogue:
    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT * FROM users",
            "SELECT name FROM users WHERE id = 5 LIMIT 1",
            "SELECT a.x FROM a CROSS JOIN b WHERE a.id = 1",
            "SELECT id FROM orders WHERE status = 'a' OR status = 'b' AND region = 'eu' ORDER BY x, y, z",
            "SELECT u.id FROM users u LEFT JOIN orders o ON o.user_id = u.id "
            "JOIN items i ON i.order_id = o.id JOIN a ON a.id = u.id JOIN b ON b.id = u.id "
            "WHERE o.name LIKE '%x'",
            "SELECT region, COUNT(*) FROM t WHERE id IN (SELECT id FROM s WHERE k = 1) GROUP BY region",
            "DELETE FROM sessions",
        ],
    )
    def test_every_suggestion_is_listed(self, analyze, sql: str) -> None:
        listed = {(name, level) for name, level, _ in QUERY_RULES}
        for suggestion in analyze(sql):
            assert (suggestion.type, suggestion.level) in listed
