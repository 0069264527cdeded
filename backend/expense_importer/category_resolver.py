"""Turn parsed rows into expense records ready for bulk insertion."""

from typing import Dict, List, Optional, Sequence

from .models import Category, CategoryMapping, ExpenseCreate, ParsedExpenseRow


def resolve_category_id(
    category_name: str,
    category_ids: Dict[str, str],
    category_mappings: CategoryMapping,
) -> Optional[str]:
    """
    Resolve one label to a category id.

    A user mapping for the exact label wins over the automatic match,
    including an explicit None (skip). Other labels fall back to a
    case-insensitive lookup in the category list.
    """
    if not category_name:
        return None
    if category_name in category_mappings:
        return category_mappings[category_name] or None
    return category_ids.get(category_name.lower())


def map_rows_to_expenses(
    rows: Sequence[ParsedExpenseRow],
    categories: Sequence[Category],
    category_mappings: CategoryMapping,
) -> List[ExpenseCreate]:
    """
    Map parsed rows to expense records.

    Args:
        rows: Valid rows from the parser
        categories: The user's categories
        category_mappings: User resolutions, label -> category id or None (skip)

    Returns:
        List of ExpenseCreate records
    """
    category_ids = {category.name.lower(): category.id for category in categories}

    return [
        ExpenseCreate(
            date=row.date,
            description=row.description,
            amount=row.amount,
            category_id=resolve_category_id(
                row.category_name, category_ids, category_mappings
            ),
        )
        for row in rows
    ]
