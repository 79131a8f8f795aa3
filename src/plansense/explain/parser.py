"""
MySQL EXPLAIN text parser.

Supports the text dumps people actually paste:
- CSV with quoted (or plain) headers: "id","select_type","table",...
- Vertical output from the mysql client (EXPLAIN ... \\G)
- Bordered ASCII tables from the mysql client (+----+ / | id |)
- TSV exported from MySQL Workbench
- Plain unbordered tables copied from MySQL Workbench, in three styles:
  aligned (fixed column offsets), single-space, and space-separated

Format detection is an ordered list of (name, predicate, parse function);
the first predicate that matches wins. Every format is normalised into the
same ExplainRow model via build_row().

Error handling philosophy: fail fast with clear messages. Rows that don't
line up with their header are skipped; anything structurally wrong with
the input as a whole raises a ParseError subclass.
"""

from __future__ import annotations

import csv
import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, NamedTuple

from plansense.config import Config, get_config
from plansense.exceptions import (
    EmptyInputError,
    InputTooLargeError,
    MalformedExplainError,
    UnsupportedFormatError,
)
from plansense.explain.models import ExplainRow
from plansense.explain.values import AccessType, QueryType, RowCount

logger = logging.getLogger(__name__)

MIN_ALIGNED_FORMAT_SPACES = 3
MAX_SINGLE_SPACE_FORMAT_SPACES = 2
MAX_HEADER_COLUMN_DIFFERENCE = 2
MIN_TSV_COLUMNS = 5

VERTICAL_SEPARATOR = "*" * 27
BORDER_MARKER = "+----+"
BORDERED_HEADER_MARKER = "| id |"

COLUMN_ORDER = (
    "id",
    "select_type",
    "table",
    "partitions",
    "type",
    "possible_keys",
    "key",
    "key_len",
    "ref",
    "rows",
    "filtered",
    "Extra",
)

_REQUIRED_HEADERS = ("id", "select_type", "table")
_KNOWN_COLUMNS = frozenset(c.lower() for c in COLUMN_ORDER)

_COLUMN_PATTERNS = {
    name: re.compile(rf"\b{name}\b", re.IGNORECASE) for name in COLUMN_ORDER
}
_LEADING_NUMBER = re.compile(r"^\s*[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_WHITESPACE_RUN = re.compile(r"\s+")


class PlainTableStyle(str, Enum):
    """Sub-styles of the unbordered plain-table format."""

    ALIGNED = "aligned"
    SINGLE_SPACE = "single-space"
    SPACE_SEPARATED = "space-separated"


class ExplainFormat(NamedTuple):
    """A recognised EXPLAIN text format."""

    name: str
    label: str
    detect: Callable[[str], bool]
    parse: Callable[[str], list[ExplainRow]]


@dataclass(frozen=True)
class ParsedExplain:
    """Rows parsed from EXPLAIN text plus the format they were read from."""

    format: str
    rows: list[ExplainRow]


# =============================================================================
# Row construction (shared by every format)
# =============================================================================


def _nullable_string(value: str | None) -> str | None:
    """None for NULL/null/missing; an explicit empty string stays empty."""
    if value is None or value in ("NULL", "null"):
        return None
    return value


def _parse_number(value: str | None) -> int | float | None:
    """Lenient leading-number parse; NULL, empty and garbage give None."""
    if not value or value in ("NULL", "null"):
        return None
    match = _LEADING_NUMBER.match(value)
    if match is None:
        return None
    number = float(match.group(0))
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def build_row(record: Mapping[str, str | None]) -> ExplainRow:
    """
    Build an ExplainRow from a column-name -> raw-text mapping.

    Column names are matched case-insensitively, so both ``Extra`` and
    ``extra`` resolve to the Extra column.

    Raises:
        InvalidValueError: If a field holds a value outside its domain
            (unknown access type or select_type, negative rows).
    """
    data = {str(k).strip().lower(): v for k, v in record.items()}

    row_id = _parse_number(data.get("id"))
    filtered = _parse_number(data.get("filtered"))

    return ExplainRow(
        id=row_id if row_id is not None else 0,
        select_type=QueryType(_nullable_string(data.get("select_type")) or "SIMPLE"),
        table=_nullable_string(data.get("table")),
        partitions=_nullable_string(data.get("partitions")),
        type=AccessType(_nullable_string(data.get("type")) or None),
        possible_keys=_nullable_string(data.get("possible_keys")),
        key=_nullable_string(data.get("key")),
        key_len=_nullable_string(data.get("key_len")),
        ref=_nullable_string(data.get("ref")),
        rows=RowCount(_parse_number(data.get("rows"))),
        filtered=float(filtered) if filtered is not None else None,
        extra=_nullable_string(data.get("extra")),
    )


def _non_blank_lines(text: str) -> list[str]:
    return [line for line in text.split("\n") if line.strip()]


def _first_line(text: str) -> str:
    return text.split("\n", 1)[0]


def _zip_rows(
    headers: list[str],
    value_rows: list[list[str]],
    fmt: str,
) -> list[ExplainRow]:
    rows: list[ExplainRow] = []
    for line_no, values in enumerate(value_rows, start=2):
        if len(values) != len(headers):
            logger.debug(
                "%s line %d skipped: %d values for %d columns",
                fmt, line_no, len(values), len(headers),
            )
            continue
        rows.append(build_row(dict(zip(headers, values))))
    return rows


# =============================================================================
# CSV
# =============================================================================


def parse_csv_line(line: str) -> list[str]:
    """Split one CSV line, honouring quotes and "" escapes."""
    return next(csv.reader([line]), [""])


def is_csv(text: str) -> bool:
    first = _first_line(text)
    if all(f'"{name}"' in first for name in _REQUIRED_HEADERS):
        return True
    # Unquoted header: id,select_type,table,...
    if "," not in first or "\t" in first or "|" in first:
        return False
    tokens = {t.strip().lower() for t in first.split(",")}
    return all(name in tokens for name in _REQUIRED_HEADERS)


def parse_csv(text: str) -> list[ExplainRow]:
    lines = _non_blank_lines(text)
    if len(lines) < 2:
        raise MalformedExplainError(
            "Invalid CSV format: missing data rows after header",
            source="csv",
        )

    headers = [h.strip() for h in parse_csv_line(lines[0].rstrip("\r"))]
    values = [parse_csv_line(line.rstrip("\r")) for line in lines[1:]]
    return _zip_rows(headers, values, "CSV")


# =============================================================================
# Vertical (\G)
# =============================================================================


def is_vertical(text: str) -> bool:
    return VERTICAL_SEPARATOR in text


def parse_vertical(text: str) -> list[ExplainRow]:
    rows: list[ExplainRow] = []

    for block in text.split(VERTICAL_SEPARATOR):
        if not block.strip():
            continue

        record: dict[str, str] = {}
        for line in block.split("\n"):
            if ":" not in line:
                continue
            key, _, value = line.partition(":")
            key = key.strip()
            if key:
                record[key] = value.strip()

        # Blocks like "mysql> EXPLAIN ... \G" carry no EXPLAIN columns
        if not any(k.lower() in _KNOWN_COLUMNS for k in record):
            continue

        rows.append(build_row(record))

    return rows


# =============================================================================
# Bordered table (mysql client)
# =============================================================================


def is_bordered_table(text: str) -> bool:
    return BORDER_MARKER in text


def _split_bordered(line: str) -> list[str]:
    inner = line.strip()
    if inner.startswith("|"):
        inner = inner[1:]
    if inner.endswith("|"):
        inner = inner[:-1]
    return [cell.strip() for cell in inner.split("|")]


def parse_bordered_table(text: str) -> list[ExplainRow]:
    lines = _non_blank_lines(text)

    header_index = next(
        (i for i, line in enumerate(lines) if BORDERED_HEADER_MARKER in line),
        None,
    )
    if header_index is None:
        raise MalformedExplainError(
            'Invalid table format: header line with "| id |" not found',
            source="table",
        )

    headers = _split_bordered(lines[header_index])
    values = [
        _split_bordered(line)
        for line in lines[header_index + 1:]
        if "|" in line and not line.strip().startswith("+")
    ]
    return _zip_rows(headers, values, "Table")


# =============================================================================
# TSV (MySQL Workbench export)
# =============================================================================


def is_tsv(text: str) -> bool:
    columns = [c.strip().lower() for c in _first_line(text).split("\t")]
    return len(columns) > MIN_TSV_COLUMNS and all(
        name in columns for name in _REQUIRED_HEADERS
    )


def parse_tsv(text: str) -> list[ExplainRow]:
    lines = _non_blank_lines(text)
    if len(lines) < 2:
        raise MalformedExplainError(
            "Invalid TSV format: missing data rows after tab-separated header",
            source="tsv",
        )

    headers = [h.strip() for h in lines[0].split("\t")]
    values = [[v.strip() for v in line.rstrip("\r").split("\t")] for line in lines[1:]]
    return _zip_rows(headers, values, "TSV")


# =============================================================================
# Plain table (MySQL Workbench copy without borders)
# =============================================================================


def is_plain_table(text: str) -> bool:
    first = _first_line(text).lower()
    return (
        all(name in first for name in _REQUIRED_HEADERS)
        and "|" not in first
        and "\t" not in first
    )


def classify_plain_table(header_line: str, first_data_line: str) -> PlainTableStyle:
    """
    Decide which plain-table style a header/data pair is written in.

    - aligned: some whitespace run in the data line is longer than 3
    - single-space: no run longer than 2 and the token counts of header
      and data differ by at most 2 (Extra may hold spaces)
    - space-separated: anything else
    """
    runs = _WHITESPACE_RUN.findall(first_data_line)
    longest_run = max((len(run) for run in runs), default=0)

    if longest_run > MIN_ALIGNED_FORMAT_SPACES:
        return PlainTableStyle.ALIGNED

    header_parts = header_line.split()
    data_parts = first_data_line.split(" ")
    while data_parts and data_parts[-1] == "":
        data_parts.pop()

    difference = abs(len(data_parts) - len(header_parts))
    if (
        difference <= MAX_HEADER_COLUMN_DIFFERENCE
        and longest_run <= MAX_SINGLE_SPACE_FORMAT_SPACES
    ):
        return PlainTableStyle.SINGLE_SPACE

    return PlainTableStyle.SPACE_SEPARATED


def parse_aligned(lines: list[str]) -> list[ExplainRow]:
    """Slice each data line by the character offsets of the header words."""
    header_line = lines[0]
    spans: list[tuple[str, int]] = []

    for name in COLUMN_ORDER:
        match = _COLUMN_PATTERNS[name].search(header_line)
        if match is not None:
            spans.append((name, match.start()))

    spans.sort(key=lambda span: span[1])

    rows: list[ExplainRow] = []
    for line in lines[1:]:
        record: dict[str, str] = {}
        for i, (name, start) in enumerate(spans):
            end = spans[i + 1][1] if i + 1 < len(spans) else len(line)
            record[name] = line[start:end].strip() or "NULL"
        rows.append(build_row(record))

    return rows


def parse_single_space(lines: list[str]) -> list[ExplainRow]:
    """
    Parse values separated by exactly one space.

    An empty value shows up as two adjacent spaces, so the line is split on
    single spaces without collapsing. When the count doesn't match the
    header, leftover tokens belong to a trailing Extra column.
    """
    headers = lines[0].split()
    last = len(headers) - 1
    rows: list[ExplainRow] = []

    for line in lines[1:]:
        parts = line.split(" ")
        while parts and parts[-1] == "":
            parts.pop()

        if len(parts) == len(headers):
            rows.append(build_row(dict(zip(headers, parts))))
            continue

        record = {
            headers[j]: parts[j] if j < len(parts) else ""
            for j in range(last)
        }
        if headers[last].lower() == "extra":
            record[headers[last]] = " ".join(parts[last:])
        else:
            record[headers[last]] = parts[last] if last < len(parts) else ""
        rows.append(build_row(record))

    return rows


def parse_space_separated(lines: list[str]) -> list[ExplainRow]:
    """Split header and data on whitespace runs; Extra takes the rest."""
    headers = lines[0].split()
    rows: list[ExplainRow] = []

    for line in lines[1:]:
        values = line.split()
        record: dict[str, str] = {}
        for j, header in enumerate(headers):
            if header.lower() == "extra" and j == len(headers) - 1:
                record[header] = " ".join(values[j:])
            else:
                record[header] = values[j] if j < len(values) else "NULL"
        rows.append(build_row(record))

    return rows


_PLAIN_TABLE_PARSERS: dict[PlainTableStyle, Callable[[list[str]], list[ExplainRow]]] = {
    PlainTableStyle.ALIGNED: parse_aligned,
    PlainTableStyle.SINGLE_SPACE: parse_single_space,
    PlainTableStyle.SPACE_SEPARATED: parse_space_separated,
}


def parse_plain_table(text: str) -> list[ExplainRow]:
    # Trailing spaces are significant in the single-space style
    lines = [line.rstrip("\r") for line in _non_blank_lines(text)]
    if len(lines) < 2:
        raise MalformedExplainError(
            "Invalid plain table format: missing data rows after header line",
            source="plain",
        )

    style = classify_plain_table(lines[0], lines[1])
    logger.debug("Detected plain table style: %s", style.value)
    return _PLAIN_TABLE_PARSERS[style](lines)


# =============================================================================
# Entry point
# =============================================================================

FORMATS: tuple[ExplainFormat, ...] = (
    ExplainFormat("csv", "CSV", is_csv, parse_csv),
    ExplainFormat("vertical", "vertical (\\G)", is_vertical, parse_vertical),
    ExplainFormat("table", "table with borders (+----+)", is_bordered_table, parse_bordered_table),
    ExplainFormat("tsv", "TSV", is_tsv, parse_tsv),
    ExplainFormat("plain", "plain table", is_plain_table, parse_plain_table),
)


class ExplainParser:
    """Parser for MySQL EXPLAIN text output."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or get_config()
        self.formats = FORMATS

    def detect_format(self, text: str) -> ExplainFormat | None:
        """Return the first format whose predicate accepts the text."""
        trimmed = text.strip()
        for fmt in self.formats:
            if fmt.detect(trimmed):
                return fmt
        return None

    def parse(self, text: str) -> list[ExplainRow]:
        """
        Parse MySQL EXPLAIN text into rows.

        Raises:
            EmptyInputError: Input is empty or whitespace only
            UnsupportedFormatError: Input matches none of the known formats
            MalformedExplainError: Format recognised but unusable
            InputTooLargeError: Input exceeds max_explain_bytes
            InvalidValueError: A field holds a value outside its domain
        """
        return self.parse_detailed(text).rows

    def parse_detailed(self, text: str) -> ParsedExplain:
        """Like parse(), but also report which format was detected."""
        if not text or not text.strip():
            raise EmptyInputError()

        size = len(text.encode("utf-8"))
        if size > self.config.max_explain_bytes:
            raise InputTooLargeError(size, self.config.max_explain_bytes)

        normalized = text.replace("\r\n", "\n")
        fmt = self.detect_format(normalized)
        if fmt is None:
            raise UnsupportedFormatError([f.label for f in self.formats])

        logger.debug("Detected EXPLAIN format: %s", fmt.name)
        rows = fmt.parse(normalized)
        logger.debug("Parsed %d row(s) from %s input", len(rows), fmt.name)
        return ParsedExplain(format=fmt.name, rows=rows)
