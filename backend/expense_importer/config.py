"""
Configuration settings for the expense import service.
Centralized location for all configurable values
"""

import os
from pathlib import Path

# Storage
DATA_DIR = Path(
    os.getenv(
        "EXPENSE_IMPORTER_DATA_DIR",
        str(Path(__file__).parent.parent.parent / "data"),
    )
)

# CORS origins for the frontend, comma separated
CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:13030").split(",")
    if origin.strip()
]

# Validation limits
MAX_AMOUNT = 1_000_000
MAX_DESCRIPTION_LENGTH = 100
MAX_CATEGORY_NAME_LENGTH = 50

# Preview
SAMPLE_ROW_LIMIT = 5  # Data rows shown in the column mapping preview

# Display caps (results are never capped internally)
DISPLAY_ROW_LIMIT = int(os.getenv("DISPLAY_ROW_LIMIT", "50"))
DISPLAY_ERROR_LIMIT = int(os.getenv("DISPLAY_ERROR_LIMIT", "10"))
DISPLAY_UNMATCHED_LIMIT = int(os.getenv("DISPLAY_UNMATCHED_LIMIT", "10"))

# Categories seeded for a new data directory
DEFAULT_CATEGORIES = [
    ("Groceries", "#4CAF50"),
    ("Food & Dining", "#FF9800"),
    ("Transportation", "#2196F3"),
    ("Shopping", "#E91E63"),
    ("Bills & Utilities", "#9C27B0"),
    ("Entertainment", "#FFC107"),
    ("Healthcare", "#F44336"),
    ("Travel", "#00BCD4"),
    ("Other", "#9E9E9E"),
]
