"""
CSV export of stored expenses.

The export uses unsigned amounts, which the importer reads back with the
app export sign convention (every unsigned amount is an expense).
"""

import calendar
from typing import Iterable, List, Sequence

from .models import Category, Expense

EXPORT_HEADERS = ["Date", "Description", "Category", "Amount"]
UNCATEGORIZED_LABEL = "Uncategorized"


def escape_csv_field(field: str) -> str:
    """Quote a field if it contains a comma, a quote or a newline."""
    if "," in field or '"' in field or "\n" in field:
        return '"' + field.replace('"', '""') + '"'
    return field


def filter_by_month(expenses: Iterable[Expense], month: str) -> List[Expense]:
    """Keep expenses whose ISO date falls in the given yyyy-MM month."""
    return [expense for expense in expenses if expense.date.startswith(f"{month}-")]


def generate_csv(expenses: Sequence[Expense], categories: Sequence[Category]) -> str:
    """Render expenses as CSV text with a header line."""
    category_names = {category.id: category.name for category in categories}

    lines = [",".join(EXPORT_HEADERS)]
    for expense in expenses:
        category_name = category_names.get(expense.category_id or "", UNCATEGORIZED_LABEL)
        lines.append(
            ",".join(
                [
                    expense.date,
                    escape_csv_field(expense.description),
                    escape_csv_field(category_name),
                    f"{expense.amount:.2f}",
                ]
            )
        )
    return "\n".join(lines)


def export_filename(month: str) -> str:
    """expenses_<MonthName>_<year>.csv for a yyyy-MM month."""
    year, month_number = month.split("-")
    return f"expenses_{calendar.month_name[int(month_number)]}_{year}.csv"
