"""
Pytest configuration and fixtures for Sheet Chart Studio tests.
"""
import io

import pytest
from openpyxl import Workbook

from sheet_chart_studio.core.table import TabularDataStore
from sheet_chart_studio.utils.log import set_log_path


@pytest.fixture(autouse=True)
def temp_log_path(tmp_path):
    """Keep diagnostics out of the home directory while testing."""
    log_path = tmp_path / "test_error.log"
    previous = set_log_path(log_path)
    yield log_path
    set_log_path(previous)


def workbook_bytes(sheets):
    """Build an .xlsx payload from {sheet_name: [row, ...]} (insertion order kept)."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def make_xlsx():
    """Factory: make_xlsx(rows) or make_xlsx(rows, Other=[...]) for extra sheets."""

    def _make(rows, **extra_sheets):
        sheets = {"Sheet1": rows}
        sheets.update(extra_sheets)
        return workbook_bytes(sheets)

    return _make


@pytest.fixture
def sales_store():
    return TabularDataStore(
        headers=("Name", "Sales"),
        rows=(("Alice", 10), ("Bob", 20)),
        sheet_names=("Sheet1",),
    )


@pytest.fixture
def people_store():
    """Twelve rows with mixed cells, enough to trigger preview truncation."""
    rows = (
        ("Carol", 31, "Paris", True),
        ("alice", 25, "London", False),
        ("Bob", 40, "Berlin", None),
        ("Dave", None, "paris", True),
        ("Eve", 25, "Rome", False),
        ("Frank", "n/a", "Madrid", True),
        ("Grace", 52.5, "Oslo", False),
        ("Heidi", 19, "Vienna", True),
        ("Ivan", 33, "Prague", None),
        ("Judy", 25, "Lisbon", False),
        ("Mallory", 60, "Dublin", True),
        ("Oscar", 28, "Athens", False),
    )
    return TabularDataStore(headers=("Name", "Age", "City", "Member"), rows=rows)
