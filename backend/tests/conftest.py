"""Pytest configuration and fixtures for testing the Expense Import API."""
import pytest
import tempfile
import shutil
from pathlib import Path
from fastapi.testclient import TestClient
from expense_importer.main import app
from expense_importer.models import Category


@pytest.fixture
def temp_data_dir(monkeypatch):
    """Create a temporary data directory during testing."""
    temp_dir = tempfile.mkdtemp()

    # Patch the DATA_DIR in the storage module
    import expense_importer.utils as utils_module
    import expense_importer.langfuse_tracer as tracer_module

    monkeypatch.setattr(utils_module, "DATA_DIR", Path(temp_dir))
    monkeypatch.delenv("LANGFUSE_PUBLIC_KEY", raising=False)
    monkeypatch.setattr(tracer_module, "_tracer", None)

    yield temp_dir

    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def client(temp_data_dir):
    """Create a test client for the FastAPI application."""
    return TestClient(app)


@pytest.fixture
def categories():
    """A small category list as returned by the data-access layer."""
    return [
        Category(id="cat-groceries", name="Groceries", color="#4CAF50"),
        Category(id="cat-transport", name="Transportation", color="#2196F3"),
        Category(id="cat-bills", name="Bills & Utilities", color="#9C27B0"),
    ]


@pytest.fixture
def bank_csv_content():
    """Semicolon separated bank export with European amounts."""
    return (
        "Date;Description;Amount;Category\n"
        "15/01/2024;Supermarket;-45,50;Groceries\n"
        "16/01/2024;Salary;2.000,00;Income\n"
        "17/01/2024;Metro card;-30,00;Transportation\n"
        "18/01/2024;Pharmacy;-12,30;Health\n"
        ";;;\n"
        ";Closing balance;1.912,20;\n"
    )


@pytest.fixture
def export_csv_content():
    """CSV in the app's own export format."""
    return """Date,Description,Category,Amount
2024-01-01,Grocery Store,Groceries,50.00
2024-01-02,Gas Station,Transportation,30.00
2024-01-03,"Dinner, with friends",Uncategorized,25.00"""


@pytest.fixture
def sample_csv_file(export_csv_content, tmp_path):
    """Create a temporary CSV file for testing."""
    csv_file = tmp_path / "test.csv"
    csv_file.write_text(export_csv_content, encoding="utf-8")
    return csv_file


@pytest.fixture
def bank_csv_file(bank_csv_content, tmp_path):
    """Create a temporary bank export CSV file for testing."""
    csv_file = tmp_path / "statement.csv"
    csv_file.write_text(bank_csv_content, encoding="utf-8")
    return csv_file
