# JSON file storage for categories, expenses and the import in progress
import json
import os
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from . import config
from .models import Category, Expense, ExpenseCreate

DATA_DIR = config.DATA_DIR

CATEGORIES_FILE_NAME = "categories.json"
EXPENSES_FILE_NAME = "expenses.json"
IMPORT_SESSION_FILE_NAME = "import_session.json"


class StorageError(RuntimeError):
    """Raised when a data file cannot be read or written."""


class DuplicateCategoryError(ValueError):
    """Raised when a category with the same name already exists."""


def _data_file(name: str) -> Path:
    return Path(DATA_DIR) / name


def _read_json(path: Path, default: Any) -> Any:
    """Read a data file; a missing file gives the default.

    Every file here is written back after reading, so an unreadable file
    raises StorageError instead of being replaced with the default.
    """
    if not path.exists():
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StorageError(f"{path.name} is corrupt: {e}") from e
    except OSError as e:
        raise StorageError(f"Failed to read {path.name}: {e}") from e


def _write_json(path: Path, data: Any):
    """Write data to a temporary file, then move it into place."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        raise StorageError(f"Failed to write {path.name}: {e}") from e


def load_categories() -> List[Category]:
    """Load categories, seeding the defaults on first use"""
    path = _data_file(CATEGORIES_FILE_NAME)
    data = _read_json(path, None)
    if data is None:
        categories = [
            Category(id=str(uuid.uuid4()), name=name, color=color)
            for name, color in config.DEFAULT_CATEGORIES
        ]
        save_categories(categories)
        return categories
    return [Category(**item) for item in data]


def save_categories(categories: Sequence[Category]):
    """Save categories to file"""
    _write_json(
        _data_file(CATEGORIES_FILE_NAME),
        [category.model_dump() for category in categories],
    )


def create_category(name: str, color: str) -> Category:
    """Add a category; names are unique regardless of case"""
    categories = load_categories()
    if any(category.name.lower() == name.lower() for category in categories):
        raise DuplicateCategoryError(f"Category '{name}' already exists")

    category = Category(id=str(uuid.uuid4()), name=name, color=color)
    save_categories([*categories, category])
    return category


def load_expenses() -> List[Expense]:
    """Load stored expenses"""
    return [Expense(**item) for item in _read_json(_data_file(EXPENSES_FILE_NAME), [])]


def bulk_create_expenses(records: Sequence[ExpenseCreate]) -> List[Expense]:
    """
    Store a batch of expenses in a single write.

    Either every record is stored or none is; a failed write raises
    StorageError and leaves the existing file untouched.
    """
    created_at = datetime.now(timezone.utc).isoformat()
    created = [
        Expense(id=str(uuid.uuid4()), created_at=created_at, **record.model_dump())
        for record in records
    ]
    existing = load_expenses()
    _write_json(
        _data_file(EXPENSES_FILE_NAME),
        [expense.model_dump() for expense in [*existing, *created]],
    )
    return created


def load_import_session() -> Optional[Dict[str, Any]]:
    """Load the import in progress, if any"""
    return _read_json(_data_file(IMPORT_SESSION_FILE_NAME), None)


def save_import_session(state: Dict[str, Any]):
    """Save the import in progress"""
    _write_json(_data_file(IMPORT_SESSION_FILE_NAME), state)


def clear_import_session():
    """Discard the import in progress"""
    path = _data_file(IMPORT_SESSION_FILE_NAME)
    if path.exists():
        path.unlink()
