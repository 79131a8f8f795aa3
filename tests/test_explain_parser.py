"""
Tests for the MySQL EXPLAIN text parser.

Test philosophy:
- Every supported encoding of the same plan parses to identical rows
- Each plain-table sub-parser is tested on its own, apart from the classifier
- Structural problems raise a specific ParseError subclass
"""

from __future__ import annotations

from pathlib import Path

import pytest

from plansense.config import Config
from plansense.exceptions import (
    EmptyInputError,
    InputTooLargeError,
    InvalidValueError,
    MalformedExplainError,
    ParseError,
    UnsupportedFormatError,
)
from plansense.explain.models import ExplainRow
from plansense.explain.parser import (
    ExplainParser,
    PlainTableStyle,
    build_row,
    classify_plain_table,
    parse_aligned,
    parse_csv_line,
    parse_single_space,
    parse_space_separated,
)
from plansense.explain.values import AccessType, QueryType, RowCount


# =============================================================================
# Fixtures
# =============================================================================

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "mysql"

FORMAT_FIXTURES = [
    ("bordered.txt", "table"),
    ("quoted.csv", "csv"),
    ("workbench.tsv", "tsv"),
    ("vertical.txt", "vertical"),
    ("aligned.txt", "plain"),
    ("single_space.txt", "plain"),
    ("space_separated.txt", "plain"),
]

EXPECTED_ROWS = [
    ExplainRow(
        id=1,
        select_type=QueryType("SIMPLE"),
        table="users",
        partitions=None,
        type=AccessType("ALL"),
        possible_keys="idx_email",
        key=None,
        key_len=None,
        ref=None,
        rows=RowCount(10000),
        filtered=10.0,
        extra="Using where; Using filesort",
    ),
    ExplainRow(
        id=1,
        select_type=QueryType("SIMPLE"),
        table="orders",
        partitions=None,
        type=AccessType("ref"),
        possible_keys="idx_user_id",
        key="idx_user_id",
        key_len="4",
        ref="test.users.id",
        rows=RowCount(5),
        filtered=100.0,
        extra=None,
    ),
]


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def parser() -> ExplainParser:
    return ExplainParser(Config())


# =============================================================================
# Format invariance
# =============================================================================


class TestFormatInvariance:
    """The same logical plan gives the same rows in every encoding."""

    @pytest.mark.parametrize("fixture,fmt", FORMAT_FIXTURES)
    def test_rows_identical(self, parser: ExplainParser, fixture: str, fmt: str) -> None:
        assert parser.parse(load_fixture(fixture)) == EXPECTED_ROWS

    @pytest.mark.parametrize("fixture,fmt", FORMAT_FIXTURES)
    def test_detected_format(self, parser: ExplainParser, fixture: str, fmt: str) -> None:
        assert parser.parse_detailed(load_fixture(fixture)).format == fmt

    def test_crlf_line_endings(self, parser: ExplainParser) -> None:
        text = load_fixture("bordered.txt").replace("\n", "\r\n")
        assert parser.parse(text) == EXPECTED_ROWS


# =============================================================================
# Individual formats
# =============================================================================


class TestCSV:
    def test_parse_csv_line_quotes_and_escapes(self) -> None:
        assert parse_csv_line('"a","b,c",NULL,"say ""hi"""') == ["a", "b,c", "NULL", 'say "hi"']

    def test_parse_csv_line_empty_fields(self) -> None:
        assert parse_csv_line('1,"x",,3') == ["1", "x", "", "3"]

    def test_empty_quoted_field_is_empty_string(self, parser: ExplainParser) -> None:
        text = '"id","select_type","table","key"\n"1","SIMPLE","users",""\n'
        (row,) = parser.parse(text)
        assert row.key == ""

    def test_unquoted_header(self, parser: ExplainParser) -> None:
        text = "id,select_type,table,type,rows\n1,SIMPLE,users,ALL,42\n"
        (row,) = parser.parse(text)
        assert row.table == "users"
        assert row.rows.value == 42

    def test_mismatched_row_is_skipped(self, parser: ExplainParser) -> None:
        text = (
            '"id","select_type","table","type"\n'
            '"1","SIMPLE","users"\n'
            '"2","SIMPLE","orders","ref"\n'
        )
        rows = parser.parse(text)
        assert [r.table for r in rows] == ["orders"]

    def test_header_only_is_malformed(self, parser: ExplainParser) -> None:
        with pytest.raises(MalformedExplainError, match="CSV"):
            parser.parse('"id","select_type","table"\n')


class TestTSV:
    def test_requires_more_than_five_columns(self, parser: ExplainParser) -> None:
        text = "id\tselect_type\ttable\ttype\trows\n1\tSIMPLE\tusers\tALL\t10\n"
        with pytest.raises(UnsupportedFormatError):
            parser.parse(text)

    def test_header_only_is_malformed(self, parser: ExplainParser) -> None:
        header = "id\tselect_type\ttable\ttype\tkey\trows\n"
        with pytest.raises(MalformedExplainError, match="TSV"):
            parser.parse(header)


class TestVertical:
    def test_value_with_colon_kept_whole(self, parser: ExplainParser) -> None:
        text = (
            "*************************** 1. row ***************************\n"
            "           id: 1\n"
            "  select_type: SIMPLE\n"
            "        table: events\n"
            "         type: ALL\n"
            "         rows: 20\n"
            "        Extra: Using where: ts > '10:00'\n"
        )
        (row,) = parser.parse(text)
        assert row.extra == "Using where: ts > '10:00'"

    def test_missing_select_type_defaults_to_simple(self, parser: ExplainParser) -> None:
        text = (
            "*************************** 1. row ***************************\n"
            "           id: 1\n"
            "        table: users\n"
            "         type: const\n"
        )
        (row,) = parser.parse(text)
        assert row.select_type.is_simple
        assert row.type.is_optimal


class TestBorderedTable:
    def test_missing_header_is_malformed(self, parser: ExplainParser) -> None:
        text = "+----+------+\n|  1 | ALL  |\n+----+------+\n"
        with pytest.raises(MalformedExplainError, match=r"\| id \|"):
            parser.parse(text)


# =============================================================================
# Plain table classifier and sub-parsers
# =============================================================================

HEADER = "id select_type table type rows Extra"


class TestClassifyPlainTable:
    def test_wide_gap_is_aligned(self) -> None:
        assert classify_plain_table(HEADER, "1    SIMPLE users ALL 10 x") == PlainTableStyle.ALIGNED

    def test_single_spaces_are_single_space(self) -> None:
        assert (
            classify_plain_table(HEADER, "1 SIMPLE users ALL 10 Using where")
            == PlainTableStyle.SINGLE_SPACE
        )

    def test_double_space_empty_value_is_single_space(self) -> None:
        assert classify_plain_table(HEADER, "1 SIMPLE users  10 x") == PlainTableStyle.SINGLE_SPACE

    def test_three_space_gap_is_space_separated(self) -> None:
        assert (
            classify_plain_table(HEADER, "1   SIMPLE   users   ALL   10   x")
            == PlainTableStyle.SPACE_SEPARATED
        )

    def test_token_count_far_off_is_space_separated(self) -> None:
        data = "1 SIMPLE users ALL 10 Using where; Using temporary; Using filesort"
        assert classify_plain_table(HEADER, data) == PlainTableStyle.SPACE_SEPARATED


class TestPlainSubParsers:
    def test_aligned_slices_by_header_offsets(self) -> None:
        lines = [
            "id  select_type  table   type  rows   Extra",
            "1   SIMPLE       users   ALL   500    Using where",
            "2   SUBQUERY     orders        7",
        ]
        first, second = parse_aligned(lines)
        assert first.table == "users"
        assert first.extra == "Using where"
        assert second.select_type.is_subquery
        assert second.type.value is None
        assert second.extra is None

    def test_single_space_extra_takes_remaining_tokens(self) -> None:
        lines = [HEADER, "1 SIMPLE users ALL 10 Using where; Using filesort"]
        (row,) = parse_single_space(lines)
        assert row.rows.value == 10
        assert row.extra == "Using where; Using filesort"

    def test_single_space_empty_value(self) -> None:
        lines = [HEADER, "1 SIMPLE users  10 Using index"]
        (row,) = parse_single_space(lines)
        assert row.type.value is None
        assert row.rows.value == 10

    def test_space_separated_missing_values_are_null(self) -> None:
        lines = ["id select_type table type rows filtered", "1 SIMPLE users ALL"]
        (row,) = parse_space_separated(lines)
        assert row.rows.value is None
        assert row.filtered is None

    def test_header_only_is_malformed(self, parser: ExplainParser) -> None:
        with pytest.raises(MalformedExplainError, match="plain table"):
            parser.parse("id select_type table type rows Extra\n")


# =============================================================================
# Row construction
# =============================================================================


class TestBuildRow:
    def test_keys_are_case_insensitive(self) -> None:
        row = build_row({"ID": "3", "Select_Type": "PRIMARY", "TABLE": "t", "extra": "Using index"})
        assert row.id == 3
        assert row.select_type.value == "PRIMARY"
        assert row.extra == "Using index"

    def test_lenient_numbers(self) -> None:
        row = build_row({"id": "1", "select_type": "SIMPLE", "rows": "12abc", "filtered": "33.33"})
        assert row.rows.value == 12
        assert row.filtered == pytest.approx(33.33)

    def test_garbage_number_is_null(self) -> None:
        row = build_row({"id": "x", "select_type": "SIMPLE", "rows": "n/a"})
        assert row.id == 0
        assert row.rows.value is None

    def test_overflowing_number_is_null(self) -> None:
        row = build_row({"id": "1e400", "select_type": "SIMPLE", "rows": "1e400", "filtered": "1e400"})
        assert row.id == 0
        assert row.rows.value is None
        assert row.filtered is None
        assert row.estimated_cost == 0

    def test_unknown_access_type_propagates(self) -> None:
        with pytest.raises(InvalidValueError):
            build_row({"id": "1", "select_type": "SIMPLE", "type": "seqscan"})

    def test_negative_rows_propagates(self) -> None:
        with pytest.raises(InvalidValueError):
            build_row({"id": "1", "select_type": "SIMPLE", "rows": "-5"})


# =============================================================================
# Error cases
# =============================================================================


class TestErrors:
    @pytest.mark.parametrize("text", ["", "   ", "\n\n\t  \n"])
    def test_empty_input(self, parser: ExplainParser, text: str) -> None:
        with pytest.raises(EmptyInputError) as exc_info:
            parser.parse(text)
        assert exc_info.value.source == "input"

    def test_unsupported_format_lists_formats(self, parser: ExplainParser) -> None:
        with pytest.raises(UnsupportedFormatError) as exc_info:
            parser.parse("this is not an explain plan")
        message = exc_info.value.message
        assert message.startswith("Unsupported EXPLAIN format.")
        for label in ("CSV", "vertical (\\G)", "table with borders (+----+)", "TSV", "plain table"):
            assert label in message

    def test_errors_share_base_class(self, parser: ExplainParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("nonsense")

    def test_size_limit(self) -> None:
        parser = ExplainParser(Config(max_explain_bytes=64))
        with pytest.raises(InputTooLargeError) as exc_info:
            parser.parse(load_fixture("bordered.txt"))
        assert exc_info.value.limit == 64

    def test_to_dict(self, parser: ExplainParser) -> None:
        with pytest.raises(EmptyInputError) as exc_info:
            parser.parse("")
        data = exc_info.value.to_dict()
        assert data["error_type"] == "EmptyInputError"
        assert data["source"] == "input"
