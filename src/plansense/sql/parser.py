"""
Heuristic SQL text parser.

This is not a SQL grammar. The statement is normalised (comments stripped,
whitespace collapsed, upper-cased) and then decomposed with regular
expressions into a QueryInfo:
- Statement type from the first token
- Tables from FROM, JOIN, UPDATE, INSERT INTO and DELETE FROM
- SELECT list columns (aliases stripped)
- Explicit joins with their ON conditions
- Simple WHERE predicates
- ORDER BY, GROUP BY, HAVING and LIMIT
- Nested SELECTs, parsed recursively

Malformed or partial input never raises; unmatched clauses simply come
back empty. Upper-casing the whole statement means case inside string
literals is lost.
"""

from __future__ import annotations

import logging
import re

import sqlparse
from sqlparse.exceptions import SQLParseError

from plansense.config import Config, get_config
from plansense.sql.models import (
    JoinInfo,
    JoinType,
    OrderByInfo,
    QueryInfo,
    StatementType,
    WhereCondition,
)

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

_FROM = re.compile(r"\bFROM\s+([^\s,();]+(?:\s*,\s*[^\s,();]+)*)")
_JOIN_TABLE = re.compile(r"\bJOIN\s+([^\s,();]+)")
_UPDATE_TABLE = re.compile(r"^UPDATE\s+([^\s;]+)")
_INSERT_TABLE = re.compile(r"\bINSERT\s+INTO\s+([^\s(;]+)")
_DELETE_TABLE = re.compile(r"\bDELETE\s+FROM\s+([^\s;]+)")

_SELECT_LIST = re.compile(r"\bSELECT\s+(.*?)\s+FROM\b")

_JOIN_END = (
    r"(?=\s+(?:(?:INNER|LEFT|RIGHT|FULL|CROSS)\s+(?:OUTER\s+)?)?JOIN\b"
    r"|\s+(?:WHERE|GROUP|ORDER|HAVING|LIMIT)\b|$)"
)
_JOIN_ALIAS = (
    r"(?:\s+(?:AS\s+)?"
    r"(?!(?:ON|USING|WHERE|GROUP|ORDER|HAVING|LIMIT|INNER|LEFT|RIGHT|FULL|CROSS|NATURAL|JOIN)\b)(\w+))?"
)
_JOIN_BODY = r"\s+([\w.]+)" + _JOIN_ALIAS + r"(?:\s+ON\s+(.+?))?" + _JOIN_END

# Bare JOIN is an inner join; the lookbehinds keep it from matching LEFT JOIN etc.
_JOIN_PATTERNS: tuple[tuple[JoinType, re.Pattern[str]], ...] = (
    (
        JoinType.INNER,
        re.compile(
            r"(?:\bINNER\s+|(?<!LEFT )(?<!RIGHT )(?<!FULL )(?<!CROSS )(?<!OUTER )(?<!NATURAL )\b)JOIN"
            + _JOIN_BODY
        ),
    ),
    (JoinType.LEFT, re.compile(r"\bLEFT\s+(?:OUTER\s+)?JOIN" + _JOIN_BODY)),
    (JoinType.RIGHT, re.compile(r"\bRIGHT\s+(?:OUTER\s+)?JOIN" + _JOIN_BODY)),
    (JoinType.FULL, re.compile(r"\bFULL\s+(?:OUTER\s+)?JOIN" + _JOIN_BODY)),
    (JoinType.CROSS, re.compile(r"\bCROSS\s+JOIN" + _JOIN_BODY)),
)

_WHERE = re.compile(r"\bWHERE\s+(.*?)(?=\s+(?:GROUP\s+BY|ORDER\s+BY|HAVING|LIMIT)\b|$)")
_CONDITION = re.compile(
    r"(?:(\w+)\.)?(\w+)\s*(NOT\s+IN|LIKE|IN|<=|>=|<>|!=|=|<|>)\s*"
    r"('[^']*'|\"[^\"]*\"|\d+(?:\.\d+)?|\([^)]+\))"
)
_OR = re.compile(r"\bOR\b")

_ORDER_BY = re.compile(r"\bORDER\s+BY\s+(.*?)(?=\s+LIMIT\b|$)")
_GROUP_BY = re.compile(r"\bGROUP\s+BY\s+(.*?)(?=\s+(?:HAVING|ORDER\s+BY|LIMIT)\b|$)")
_HAVING = re.compile(r"\bHAVING\s+(.*?)(?=\s+(?:ORDER\s+BY|LIMIT)\b|$)")
_LIMIT = re.compile(r"\bLIMIT\s+(\d+)(?:\s*,\s*(\d+))?")
_MAX_LIMIT_DIGITS = 20


def normalize_query(query: str) -> str:
    """Strip comments, collapse whitespace, upper-case, drop trailing ';'."""
    try:
        query = sqlparse.format(query, strip_comments=True)
    except (SQLParseError, RecursionError) as e:
        logger.debug("Comment stripping skipped: %s", e)
    collapsed = _WHITESPACE.sub(" ", query).strip().upper()
    return collapsed.rstrip(";").rstrip()


class QueryParser:
    """
    Decomposes SQL text into a QueryInfo.

    Example:
        >>> info = QueryParser().parse("SELECT * FROM users WHERE id = 1")
        >>> info.tables
        ['USERS']
    """

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or get_config()

    def parse(self, query: str) -> QueryInfo:
        """Parse a SQL statement. Never raises for string input."""
        if not isinstance(query, str) or not query.strip():
            return QueryInfo()
        return self._parse(normalize_query(query), depth=0)

    def _parse(self, query: str, depth: int) -> QueryInfo:
        columns, select_all = self._extract_columns(query)
        return QueryInfo(
            type=self._statement_type(query),
            tables=self._extract_tables(query),
            columns=columns,
            joins=self._extract_joins(query),
            where_conditions=self._extract_where_conditions(query),
            order_by=self._extract_order_by(query),
            group_by=self._extract_group_by(query),
            having=self._extract_having(query),
            limit=self._extract_limit(query),
            subqueries=self._extract_subqueries(query, depth),
            select_all=select_all,
        )

    def _statement_type(self, query: str) -> StatementType:
        first_word = query.split(" ", 1)[0]
        try:
            return StatementType(first_word)
        except ValueError:
            return StatementType.OTHER

    def _extract_tables(self, query: str) -> list[str]:
        tables: list[str] = []

        from_match = _FROM.search(query)
        if from_match:
            tables.extend(t.strip() for t in from_match.group(1).split(","))

        tables.extend(m.group(1) for m in _JOIN_TABLE.finditer(query))

        for pattern in (_UPDATE_TABLE, _INSERT_TABLE, _DELETE_TABLE):
            match = pattern.search(query)
            if match:
                tables.append(match.group(1))

        # dict preserves discovery order
        return list(dict.fromkeys(t for t in tables if t))

    def _extract_columns(self, query: str) -> tuple[list[str], bool]:
        match = _SELECT_LIST.search(query)
        if not match:
            return [], False

        select_part = match.group(1).strip()
        if select_part == "*":
            return [], True

        columns: list[str] = []
        for col in select_part.split(","):
            col = col.strip()
            alias_at = col.rfind(" AS ")
            columns.append(col[:alias_at].strip() if alias_at > -1 else col)
        return columns, False

    def _extract_joins(self, query: str) -> list[JoinInfo]:
        joins: list[JoinInfo] = []
        for join_type, pattern in _JOIN_PATTERNS:
            for match in pattern.finditer(query):
                joins.append(
                    JoinInfo(
                        type=join_type,
                        table=match.group(1),
                        condition=(match.group(3) or "").strip(),
                        alias=match.group(2),
                    )
                )
        return joins

    def _extract_where_conditions(self, query: str) -> list[WhereCondition]:
        where_match = _WHERE.search(query)
        if not where_match:
            return []

        where_part = where_match.group(1)
        conditions: list[WhereCondition] = []
        previous_end = 0

        for match in _CONDITION.finditer(where_part):
            between = where_part[previous_end:match.start()]
            conditions.append(
                WhereCondition(
                    column=match.group(2),
                    operator=_WHITESPACE.sub(" ", match.group(3)),
                    value=match.group(4),
                    conjunction="OR" if conditions and _OR.search(between) else "AND",
                    table=match.group(1),
                )
            )
            previous_end = match.end()

        return conditions

    def _extract_order_by(self, query: str) -> list[OrderByInfo]:
        match = _ORDER_BY.search(query)
        if not match:
            return []

        order_by: list[OrderByInfo] = []
        for item in match.group(1).split(","):
            parts = item.split()
            if not parts:
                continue
            direction = "DESC" if len(parts) > 1 and parts[1] == "DESC" else "ASC"
            order_by.append(OrderByInfo(column=parts[0], direction=direction))
        return order_by

    def _extract_group_by(self, query: str) -> list[str]:
        match = _GROUP_BY.search(query)
        if not match:
            return []
        return [g.strip() for g in match.group(1).split(",") if g.strip()]

    def _extract_having(self, query: str) -> str | None:
        match = _HAVING.search(query)
        return match.group(1).strip() if match else None

    def _extract_limit(self, query: str) -> int | None:
        match = _LIMIT.search(query)
        if not match:
            return None
        # LIMIT offset, count
        value = match.group(2) or match.group(1)
        # MySQL row counts are unsigned 64-bit
        if len(value) > _MAX_LIMIT_DIGITS:
            logger.debug("LIMIT value of %d digits ignored", len(value))
            return None
        return int(value)

    def _extract_subqueries(self, query: str, depth: int) -> list[QueryInfo]:
        """Parse each top-level parenthesised span that starts with SELECT."""
        subqueries: list[QueryInfo] = []
        level = 0
        start = -1

        for i, char in enumerate(query):
            if char == "(":
                if level == 0:
                    start = i + 1
                level += 1
            elif char == ")" and level > 0:
                level -= 1
                if level == 0 and start != -1:
                    candidate = query[start:i].strip()
                    start = -1
                    if not candidate.startswith("SELECT"):
                        continue
                    if depth + 1 > self.config.max_subquery_depth:
                        logger.debug(
                            "Subquery at depth %d dropped (max %d)",
                            depth + 1, self.config.max_subquery_depth,
                        )
                        continue
                    try:
                        subqueries.append(self._parse(candidate, depth + 1))
                    except RecursionError:
                        logger.debug("Subquery skipped: nesting too deep to parse")

        return subqueries
