"""
Date and amount parsing for imported bank statements.

Bank exports mix ISO, European and US dates and several number formats
("1.234,56", "1,234.56", "45,00"). The functions here normalize a single
cell and report failure by returning None instead of raising, so that the
row parser can turn the failure into a per-row error.
"""

import math
import re
from datetime import date
from enum import Enum
from typing import NamedTuple, Optional

ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$", re.ASCII)
SLASH_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$", re.ASCII)

CURRENCY_AND_SPACE_RE = re.compile(r"[€$£¥\s]")
EUROPEAN_AMOUNT_RE = re.compile(r"^\d{1,3}(?:\.\d{3})*,\d{1,2}$", re.ASCII)
COMMA_DECIMAL_RE = re.compile(r"^\d+,\d{1,2}$", re.ASCII)
US_AMOUNT_RE = re.compile(r"^\d{1,3}(?:,\d{3})*\.\d{1,2}$", re.ASCII)
# Leading numeric prefix, so "12EUR" still reads as 12
NUMBER_PREFIX_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)

MIN_YEAR = 2000
MAX_YEAR = 2100


class SignConvention(Enum):
    """How a signed (or unsigned) amount maps to income vs. expense."""

    # Bank statements: negative = expense, unsigned or "+" = income
    BANK_STATEMENT = "bank_statement"
    # The app's own export: everything is an expense unless marked "+"
    APP_EXPORT = "app_export"

    @classmethod
    def from_has_negative_amounts(cls, has_negative_amounts: bool) -> "SignConvention":
        """Pick the convention from the file-level negative amount scan."""
        return cls.BANK_STATEMENT if has_negative_amounts else cls.APP_EXPORT


class AmountParseResult(NamedTuple):
    amount: Optional[float]
    is_income: bool


def is_valid_date(year: int, month: int, day: int) -> bool:
    """Check that year/month/day form a real calendar date in range."""
    if month < 1 or month > 12:
        return False
    if day < 1 or day > 31:
        return False
    if year < MIN_YEAR or year > MAX_YEAR:
        return False
    try:
        date(year, month, day)
    except ValueError:
        return False
    return True


def parse_date(date_str: str) -> Optional[str]:
    """
    Parse a date string into ISO format (yyyy-MM-dd).

    Accepted shapes, tried in order:
    - yyyy-MM-dd
    - dd/MM/yyyy (European)
    - MM/dd/yyyy (US), only reached when the European reading is invalid

    Ambiguous dates such as 01/02/2024 are always read day-first.

    Args:
        date_str: The date text, already stripped of quotes and whitespace

    Returns:
        The ISO date string, or None if the text is not a valid date
    """
    iso_match = ISO_DATE_RE.match(date_str)
    if iso_match:
        year, month, day = (int(part) for part in iso_match.groups())
        if is_valid_date(year, month, day):
            return date_str

    slash_match = SLASH_DATE_RE.match(date_str)
    if slash_match:
        first, second, year_str = slash_match.groups()
        year = int(year_str)

        # Day first
        if is_valid_date(year, int(second), int(first)):
            return f"{year_str}-{second.zfill(2)}-{first.zfill(2)}"

        # Month first
        if is_valid_date(year, int(first), int(second)):
            return f"{year_str}-{first.zfill(2)}-{second.zfill(2)}"

    return None


def _normalize_number(value_str: str) -> str:
    if EUROPEAN_AMOUNT_RE.match(value_str):
        return value_str.replace(".", "").replace(",", ".")
    if COMMA_DECIMAL_RE.match(value_str):
        return value_str.replace(",", ".")
    if US_AMOUNT_RE.match(value_str):
        return value_str.replace(",", "")
    return value_str


def parse_amount(amount_str: str, convention: SignConvention) -> AmountParseResult:
    """
    Parse an amount string and classify it as income or expense.

    Args:
        amount_str: The raw amount text (currency symbols are allowed)
        convention: Sign convention used to decide what counts as income

    Returns:
        AmountParseResult with the unsigned amount rounded to cents (or None
        if no number could be read) and the income flag
    """
    cleaned = CURRENCY_AND_SPACE_RE.sub("", amount_str)

    has_minus_sign = cleaned.startswith("-")
    has_plus_sign = cleaned.startswith("+")
    if has_minus_sign or has_plus_sign:
        cleaned = cleaned[1:]

    cleaned = _normalize_number(cleaned)

    number_match = NUMBER_PREFIX_RE.match(cleaned)
    if not number_match:
        return AmountParseResult(None, False)
    amount = float(number_match.group(0))
    if not math.isfinite(amount):
        return AmountParseResult(None, False)

    if convention is SignConvention.BANK_STATEMENT:
        is_income = not has_minus_sign
    else:
        is_income = has_plus_sign

    return AmountParseResult(math.floor(amount * 100 + 0.5) / 100, is_income)
