"""
Column role suggestions for an uploaded CSV.

The suggestion is a best guess shown to the user for confirmation; it is
never used to parse a file on its own.
"""

from typing import Dict, List, Optional, Set

from .models import ColumnMapping, CsvPreviewData

DATE_KEYWORDS = ["date", "ημ/νια", "ημερομηνια"]
DESCRIPTION_KEYWORDS = ["description", "περιγραφη", "details", "memo", "payee"]
AMOUNT_KEYWORDS = ["amount", "ποσο", "sum", "value"]
CATEGORY_KEYWORDS = ["category", "κατηγορια", "type"]

# Category labels are short; free-text descriptions usually are not
MAX_CATEGORY_LABEL_LENGTH = 30


def _matches(header: str, keywords: List[str]) -> bool:
    return any(keyword in header for keyword in keywords)


def _guess_category_column(
    preview: CsvPreviewData, assigned: Set[int]
) -> Optional[int]:
    """Find a column with short, repeated values in the sample rows."""
    column_values: Dict[int, Set[str]] = {}
    for row in preview.sample_rows:
        for idx, cell in enumerate(row):
            column_values.setdefault(idx, set()).add(cell.strip())

    for idx in range(len(preview.headers)):
        if idx in assigned:
            continue

        values = column_values.get(idx)
        if values and len(values) < len(preview.sample_rows):
            avg_length = sum(len(value) for value in values) / len(values)
            if avg_length < MAX_CATEGORY_LABEL_LENGTH:
                return idx

    return None


def suggest_column_mapping(preview: CsvPreviewData) -> ColumnMapping:
    """
    Suggest a column mapping from header names and sample content.

    Header keywords are matched case-insensitively in header order, so the
    last matching header wins for each role. When no header names a category
    column, a column with repeated short values is picked instead.

    Args:
        preview: Preview data built from the uploaded file

    Returns:
        Suggested ColumnMapping
    """
    headers = preview.headers

    date_column = 0
    description_column = 1
    amount_column = max(len(headers) - 1, 0)
    category_column: Optional[int] = None

    for idx, header in enumerate(headers):
        lower = header.lower().replace('"', "").replace("'", "")

        if _matches(lower, DATE_KEYWORDS):
            date_column = idx
        if _matches(lower, DESCRIPTION_KEYWORDS):
            description_column = idx
        if _matches(lower, AMOUNT_KEYWORDS):
            amount_column = idx
        if _matches(lower, CATEGORY_KEYWORDS):
            category_column = idx

    if category_column is None and preview.sample_rows:
        category_column = _guess_category_column(
            preview, {date_column, description_column, amount_column}
        )

    return ColumnMapping(
        date_column=date_column,
        description_column=description_column,
        amount_column=amount_column,
        category_column=category_column,
    )
