"""
CSV import parsing for bank statements and app exports.

This module provides a CSVRowParser class that validates CSV rows against a
confirmed column mapping and turns them into expense rows. Parsing never
raises for bad rows: every row ends up valid, silently skipped, or reported
as an error, so one malformed line cannot hide the rest of the file.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

from .config import MAX_AMOUNT, MAX_DESCRIPTION_LENGTH
from .csv_reader import (
    detect_delimiter,
    is_header_row,
    parse_csv_line,
    split_lines,
    strip_quotes,
)
from .models import (
    Category,
    ColumnMapping,
    CsvParseError,
    CsvParseResult,
    ParsedExpenseRow,
)
from .parsers import SignConvention, parse_amount, parse_date

UNCATEGORIZED = "uncategorized"


@dataclass(frozen=True)
class ValidRow:
    row: ParsedExpenseRow
    unmatched_category: Optional[str] = None


@dataclass(frozen=True)
class SkippedRow:
    """A row filtered on purpose. Not an error."""

    reason: str  # "blank" or "income"


@dataclass(frozen=True)
class ErrorRow:
    error: CsvParseError


RowOutcome = Union[ValidRow, SkippedRow, ErrorRow]


class CSVRowParser:
    """
    Parses CSV rows based on a confirmed column mapping.

    The parser is initialized with the mapping and the user's categories so
    the category lookup table and the minimum column count are built once
    per file.
    """

    def __init__(
        self,
        column_mapping: ColumnMapping,
        categories: Sequence[Category],
        skip_income_transactions: bool = True,
        sign_convention: SignConvention = SignConvention.APP_EXPORT,
    ):
        """
        Initialize the parser.

        Args:
            column_mapping: Which columns hold date, description, amount and category
            categories: The user's existing categories, used for matching labels
            skip_income_transactions: Drop income rows instead of importing them
            sign_convention: How signs map to income vs. expense
        """
        self.column_mapping = column_mapping
        self.skip_income_transactions = skip_income_transactions
        self.sign_convention = sign_convention
        self.min_columns = column_mapping.min_columns()
        # Case-insensitive lookup
        self.category_names = {category.name.lower() for category in categories}

    def parse_row(self, line: str, row_number: int, delimiter: str) -> RowOutcome:
        """
        Parse a single non-blank line.

        Args:
            line: The trimmed line text
            row_number: 1-based line number in the source file
            delimiter: Field separator detected for the file

        Returns:
            ValidRow, SkippedRow or ErrorRow
        """
        fields = parse_csv_line(line, delimiter)

        if len(fields) < self.min_columns:
            return self._error(
                row_number,
                "row",
                f"Row must have at least {self.min_columns} columns",
                line,
            )

        mapping = self.column_mapping
        date_str = fields[mapping.date_column]
        description = fields[mapping.description_column]
        amount_str = fields[mapping.amount_column]
        category_name = (
            fields[mapping.category_column]
            if mapping.category_column is not None
            else ""
        )

        # Footer and metadata lines of bank exports have no date
        trimmed_date = strip_quotes(date_str)
        if not trimmed_date:
            return SkippedRow("blank")

        parsed_date = parse_date(trimmed_date)
        if parsed_date is None:
            return self._error(
                row_number,
                "date",
                "Invalid date format. Expected yyyy-MM-dd or dd/MM/yyyy",
                date_str,
            )

        trimmed_description = description.strip()
        if not trimmed_description:
            return self._error(
                row_number, "description", "Description is required", description
            )
        if len(trimmed_description) > MAX_DESCRIPTION_LENGTH:
            return self._error(
                row_number,
                "description",
                f"Description must be less than {MAX_DESCRIPTION_LENGTH} characters",
                description,
            )

        amount, is_income = parse_amount(amount_str.strip(), self.sign_convention)

        if self.skip_income_transactions and is_income:
            return SkippedRow("income")

        if amount is None or amount <= 0:
            return self._error(
                row_number,
                "amount",
                "Invalid amount. Must be a positive number",
                amount_str,
            )
        if amount > MAX_AMOUNT:
            return self._error(
                row_number,
                "amount",
                f"Amount must be less than {MAX_AMOUNT:,}",
                amount_str,
            )

        trimmed_category = category_name.strip()
        is_uncategorized = (
            not trimmed_category or trimmed_category.lower() == UNCATEGORIZED
        )
        unmatched = None
        if not is_uncategorized and trimmed_category.lower() not in self.category_names:
            unmatched = trimmed_category

        return ValidRow(
            ParsedExpenseRow(
                date=parsed_date,
                description=trimmed_description,
                category_name="" if is_uncategorized else trimmed_category,
                amount=amount,
                row_number=row_number,
            ),
            unmatched_category=unmatched,
        )

    def parse(self, csv_content: str) -> CsvParseResult:
        """
        Parse a whole CSV file.

        Args:
            csv_content: The decoded file body

        Returns:
            CsvParseResult with valid rows, errors, unmatched category labels
            and the number of income rows skipped
        """
        lines = split_lines(csv_content)
        delimiter = detect_delimiter(lines[0]) if lines else ","
        start_index = 1 if lines and is_header_row(lines[0]) else 0

        valid_rows: List[ParsedExpenseRow] = []
        errors: List[CsvParseError] = []
        # Lower-cased label -> first label seen
        unmatched: Dict[str, str] = {}
        skipped_income_count = 0

        for i in range(start_index, len(lines)):
            line = lines[i].strip()
            if not line:
                continue

            outcome = self.parse_row(line, i + 1, delimiter)
            if isinstance(outcome, ValidRow):
                valid_rows.append(outcome.row)
                if outcome.unmatched_category:
                    unmatched.setdefault(
                        outcome.unmatched_category.lower(), outcome.unmatched_category
                    )
            elif isinstance(outcome, ErrorRow):
                errors.append(outcome.error)
            elif outcome.reason == "income":
                skipped_income_count += 1

        return CsvParseResult(
            valid_rows=valid_rows,
            errors=errors,
            unmatched_categories=list(unmatched.values()),
            skipped_income_count=skipped_income_count,
        )

    @staticmethod
    def _error(row_number: int, field: str, message: str, raw_value: str) -> ErrorRow:
        return ErrorRow(
            CsvParseError(
                row_number=row_number, field=field, message=message, raw_value=raw_value
            )
        )


def parse_expenses_csv(
    csv_content: str,
    categories: Sequence[Category],
    column_mapping: ColumnMapping,
    skip_income_transactions: bool = True,
    has_negative_amounts: bool = False,
) -> CsvParseResult:
    """
    Parse a CSV file into expense rows using a confirmed column mapping.

    Args:
        csv_content: The decoded file body
        categories: The user's categories for matching labels
        column_mapping: Which columns contain which data
        skip_income_transactions: Whether to drop income rows
        has_negative_amounts: True if the file uses the bank statement
            convention (negative = expense, positive = income)

    Returns:
        CsvParseResult
    """
    parser = CSVRowParser(
        column_mapping,
        categories,
        skip_income_transactions=skip_income_transactions,
        sign_convention=SignConvention.from_has_negative_amounts(has_negative_amounts),
    )
    return parser.parse(csv_content)
