"""
Low-level CSV reading: line splitting, delimiter and header detection,
tokenizing and the preview used by the column mapping step.

Only the dialect produced by banks and by our own export is handled:
comma or semicolon delimited, double-quote quoting with "" escaping, one
record per line.
"""

import re
from typing import List

from .config import SAMPLE_ROW_LIMIT
from .models import CsvPreviewData, RawRow

LINE_BREAK_RE = re.compile(r"\r?\n")
SURROUNDING_QUOTES_RE = re.compile(r"^[\"']+|[\"']+$")
NEGATIVE_CELL_NOISE_RE = re.compile(r"[€$£¥\s\"']")
NEGATIVE_NUMBER_RE = re.compile(r"^-\d", re.ASCII)

GREEK_HEADER_TOKENS = ("ημ/νια", "περιγραφη", "ποσο")


def split_lines(csv_content: str) -> List[str]:
    """Split the file body into lines, ignoring surrounding whitespace."""
    return LINE_BREAK_RE.split(csv_content.strip())


def strip_quotes(value: str) -> str:
    """Trim whitespace, then any leading/trailing quote characters."""
    return SURROUNDING_QUOTES_RE.sub("", value.strip())


def detect_delimiter(first_line: str) -> str:
    """
    Detect the delimiter used in a CSV file.

    Semicolon wins only if it appears strictly more often than comma.
    """
    return ";" if first_line.count(";") > first_line.count(",") else ","


def is_header_row(line: str) -> bool:
    """
    Check whether a line looks like a header row.

    English headers need date, description and category or amount; a single
    Greek header token (date, description or amount) is enough.
    """
    lower = line.lower()
    has_english_headers = (
        "date" in lower
        and "description" in lower
        and ("category" in lower or "amount" in lower)
    )
    has_greek_headers = any(token in lower for token in GREEK_HEADER_TOKENS)
    return has_english_headers or has_greek_headers


def parse_csv_line(line: str, delimiter: str = ",") -> RawRow:
    """
    Split a single CSV line into fields.

    Args:
        line: One line of the file, without the line break
        delimiter: Field separator ("," or ";")

    Returns:
        List of field values with quoting removed
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    i = 0
    while i < len(line):
        char = line[i]
        if in_quotes:
            if char == '"' and line[i + 1 : i + 2] == '"':
                current.append('"')
                i += 1
            elif char == '"':
                in_quotes = False
            else:
                current.append(char)
        elif char == '"':
            in_quotes = True
        elif char == delimiter:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current))
    return fields


def _has_content(row: RawRow) -> bool:
    return any(strip_quotes(cell) for cell in row)


def _looks_negative(cell: str) -> bool:
    return bool(NEGATIVE_NUMBER_RE.match(NEGATIVE_CELL_NOISE_RE.sub("", cell)))


def get_csv_preview_data(csv_content: str) -> CsvPreviewData:
    """
    Build the preview used to drive the column mapping UI.

    The first non-blank line is taken as headers. The negative amount scan
    looks at every cell of every data row because the amount column is not
    known yet.
    """
    lines = split_lines(csv_content)
    delimiter = detect_delimiter(lines[0]) if lines else ","

    all_rows = [parse_csv_line(line, delimiter) for line in lines if line.strip()]

    headers = all_rows[0] if all_rows else []
    sample_rows = all_rows[1 : SAMPLE_ROW_LIMIT + 1]

    data_rows = [row for row in all_rows[1:] if _has_content(row)]
    has_negative_amounts = any(
        _looks_negative(cell) for row in data_rows for cell in row
    )

    return CsvPreviewData(
        headers=headers,
        sample_rows=sample_rows,
        delimiter=delimiter,
        total_rows=len(data_rows),
        has_negative_amounts=has_negative_amounts,
    )
