# Data models for the expense import service
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import MAX_CATEGORY_NAME_LENGTH

RawRow = List[str]
CategoryMapping = Dict[str, Optional[str]]


class Category(BaseModel):
    id: str
    name: str
    color: str


class CategoryCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=MAX_CATEGORY_NAME_LENGTH)
    color: str = Field(pattern=r"^#[0-9A-Fa-f]{6}$")


class ColumnMapping(BaseModel):
    """Which column holds which field. Indices are zero-based."""

    model_config = ConfigDict(frozen=True)

    date_column: int = Field(ge=0)
    description_column: int = Field(ge=0)
    amount_column: int = Field(ge=0)
    category_column: Optional[int] = Field(default=None, ge=0)

    def min_columns(self) -> int:
        """Number of fields a row needs for every mapped index to exist."""
        return (
            max(
                self.date_column,
                self.description_column,
                self.amount_column,
                self.category_column or 0,
            )
            + 1
        )


class CsvPreviewData(BaseModel):
    headers: List[str]
    sample_rows: List[RawRow]
    delimiter: Literal[",", ";"]
    total_rows: int
    has_negative_amounts: bool


class ParsedExpenseRow(BaseModel):
    date: str
    description: str
    category_name: str = ""
    amount: float
    row_number: int


class CsvParseError(BaseModel):
    row_number: int
    field: Literal["row", "date", "description", "amount"]
    message: str
    raw_value: str


class CsvParseResult(BaseModel):
    valid_rows: List[ParsedExpenseRow]
    errors: List[CsvParseError]
    unmatched_categories: List[str]
    skipped_income_count: int


class ExpenseCreate(BaseModel):
    date: str
    description: str
    amount: float
    category_id: Optional[str] = None


class Expense(ExpenseCreate):
    id: str
    created_at: str


# API bodies


class UploadResponse(BaseModel):
    message: str
    filename: str
    preview: CsvPreviewData
    suggested_mapping: ColumnMapping


class ParseRequest(BaseModel):
    column_mapping: ColumnMapping
    skip_income_transactions: bool = True
    has_negative_amounts: Optional[bool] = None


class ParseResponse(BaseModel):
    result: CsvParseResult
    displayed_rows: List[ParsedExpenseRow]
    hidden_row_count: int
    displayed_errors: List[CsvParseError]
    hidden_error_count: int
    displayed_unmatched_categories: List[str]
    hidden_unmatched_count: int


class CommitRequest(BaseModel):
    category_mappings: CategoryMapping = Field(default_factory=dict)


class CommitResponse(BaseModel):
    message: str
    created: int


class ImportSessionResponse(BaseModel):
    filename: Optional[str] = None
    preview: Optional[CsvPreviewData] = None
    column_mapping: Optional[ColumnMapping] = None
    valid_row_count: int = 0
    error_count: int = 0
    unmatched_categories: List[str] = []
    skipped_income_count: int = 0
