"""
Test configuration
==================
Fixtures build SOV workbooks in memory, either as cell_reader.Workbook
objects for the engine or as real .xlsx bytes (openpyxl) for the loaders,
the web app and the CLI.

Standard fixture layout ("Unit Breakdown"):
- Main rows 7-12: three billable lines, one zero-value line, two skipped rows
- Pass-Throughs header at 190, items at 195/196, numeric stray at 197,
  Change Orders header at 202, an unreachable line at 204
- PCO header at 205, "12A" at 210 (rejected), items at 211/212, no-cost 213
"""

import io
import os
import sys

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cell_reader import Sheet, Workbook


SOV_CELLS = {
    # Main contract items
    "A7": "PK-1", "B7": "U-100", "C7": "Mobilization", "D7": "LS", "G7": 5000,
    "A8": "PK-2", "B8": "U-110", "C8": "Pipe install", "D8": "LF", "E8": 10, "F8": 20, "G8": 500,
    "B9": "U-120", "C9": "Excavation", "D9": "CY", "E9": 10, "F9": 5,
    "C10": "Zero cost line", "F10": 5,
    "G11": 100,
    "C12": "Notes only",
    # Pass-throughs
    "B190": "Pass-Throughs",
    "B195": "Widget Replacement", "F195": "10%", "G195": 1200,
    "A196": "PT-9", "B196": "Permit fees", "G196": 300,
    "B197": "12345", "G197": 400,
    "B202": "Change Orders",
    "B204": "Late pass-through", "G204": 999,
    # PCOs
    "C205": "Change Order Log",
    "B210": "12A", "C210": "Extra valve", "G210": 9000,
    "B211": "12", "C211": "Added tie-in", "G211": 9000,
    "B212": 13, "C212": "Extra bore", "D212": "LF", "E212": 100, "F212": 3,
    "B213": "14", "C213": "No cost",
}

MAIN_TOTAL = 5000 + 500 + 50
PASS_THROUGH_TOTAL = 1200 + 300
PCO_TOTAL = 9000 + 300
SOV_TOTAL = MAIN_TOTAL + PASS_THROUGH_TOTAL + PCO_TOTAL


@pytest.fixture
def sov_totals():
    return {
        "main": MAIN_TOTAL,
        "pass_through": PASS_THROUGH_TOTAL,
        "pco": PCO_TOTAL,
        "total": SOV_TOTAL,
    }


@pytest.fixture
def make_workbook():
    """Factory: cell values -> Workbook with one sheet (default "Unit Breakdown")."""
    def _make(cells, sheet_name="Unit Breakdown", extra_sheets=()):
        sheets = {name: Sheet() for name in extra_sheets}
        sheets[sheet_name] = Sheet.from_mapping(cells)
        return Workbook(sheets=sheets)
    return _make


@pytest.fixture
def sov_workbook(make_workbook):
    return make_workbook(SOV_CELLS, extra_sheets=("Cover",))


@pytest.fixture
def sov_items(sov_workbook):
    from engine import extract_sov_items
    return extract_sov_items(sov_workbook)


@pytest.fixture
def make_xlsx_bytes():
    """Factory: {sheet_name: {address: value}} -> .xlsx bytes written by openpyxl."""
    import openpyxl

    def _make(sheets):
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        for sheet_name, cells in sheets.items():
            ws = wb.create_sheet(sheet_name)
            for address, value in cells.items():
                ws[address] = value
        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()
    return _make


@pytest.fixture
def sov_xlsx_bytes(make_xlsx_bytes):
    return make_xlsx_bytes({"Cover": {"A1": "Project"}, "Unit Breakdown": SOV_CELLS})
