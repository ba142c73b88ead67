"""
SOV Workbook Reader
===================
Cell-level access to parsed SOV workbooks, plus loaders that turn uploaded
spreadsheet bytes (XLSX via openpyxl, legacy XLS via pandas) into the
in-memory Workbook the extraction engine scans.
"""

import io
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

import pandas as pd
from openpyxl.utils import get_column_letter

# ─── Constants ───────────────────────────────────────────────────────────────

SUPPORTED_EXTENSIONS = {".xlsx", ".xlsm", ".xls"}

_COLUMN_RE = re.compile(r"^[A-Z]$")


class UnsupportedWorkbookError(ValueError):
    """Raised when a file extension is not a supported spreadsheet format."""


class WorkbookReadError(ValueError):
    """Raised when a spreadsheet file cannot be parsed."""


# ─── Workbook model ─────────────────────────────────────────────────────────


@dataclass
class CellData:
    value: Any = None
    formatted: Optional[str] = None


@dataclass
class Sheet:
    """A single worksheet, holding non-blank cells keyed by A1 address."""

    cells: dict[str, CellData] = field(default_factory=dict)

    def get(self, address: str) -> Optional[CellData]:
        return self.cells.get(address)

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> "Sheet":
        """Build a sheet from {"C7": value} pairs. A CellData value is kept as-is."""
        cells = {}
        for address, value in values.items():
            cells[address] = value if isinstance(value, CellData) else CellData(value=value)
        return cls(cells=cells)

    @classmethod
    def from_rows(cls, rows: Iterable[Iterable[Any]], first_row: int = 1) -> "Sheet":
        """Build a sheet from row lists, column A first. None and "" are skipped."""
        cells = {}
        for row_idx, row in enumerate(rows, start=first_row):
            for col_idx, value in enumerate(row):
                if value is None or value == "":
                    continue
                address = f"{get_column_letter(col_idx + 1)}{row_idx}"
                cells[address] = value if isinstance(value, CellData) else CellData(value=value)
        return cls(cells=cells)


@dataclass
class Workbook:
    sheets: dict[str, Sheet] = field(default_factory=dict)

    @property
    def sheet_names(self) -> list[str]:
        return list(self.sheets.keys())

    def get_sheet(self, name: str) -> Optional[Sheet]:
        return self.sheets.get(name)


# ─── Cell reading ───────────────────────────────────────────────────────────


def read_cell(sheet: Sheet, column: str, row: int) -> Any:
    """Return the display value of a cell.

    Priority: the pre-rendered display string when the cell carries one,
    else the typed value (number, string or date), else "". A missing cell
    reads as "".
    """
    if not isinstance(column, str) or not _COLUMN_RE.match(column):
        raise ValueError(f"column must be a single letter A-Z, got {column!r}")
    if not isinstance(row, int) or row < 1:
        raise ValueError(f"row must be a positive integer, got {row!r}")

    cell = sheet.get(f"{column}{row}")
    if cell is None:
        return ""
    if cell.formatted:
        return cell.formatted
    if cell.value is not None:
        return cell.value
    return ""


# ─── Loaders ────────────────────────────────────────────────────────────────


def _load_openpyxl(data: bytes) -> Workbook:
    import openpyxl

    # data_only: read the cached results of formula cells, not the formulas
    wb = openpyxl.load_workbook(io.BytesIO(data), data_only=True)
    sheets: dict[str, Sheet] = {}
    try:
        for ws in wb.worksheets:
            cells = {}
            for row in ws.iter_rows():
                for cell in row:
                    if cell.value is None or cell.value == "":
                        continue
                    cells[cell.coordinate] = CellData(value=cell.value)
            sheets[ws.title] = Sheet(cells=cells)
    finally:
        wb.close()
    return Workbook(sheets=sheets)


def _load_pandas(data: bytes) -> Workbook:
    frames = pd.read_excel(io.BytesIO(data), sheet_name=None, header=None, engine="xlrd")
    sheets: dict[str, Sheet] = {}
    for sheet_name, df in frames.items():
        rows = [[_python_value(value) for value in row] for row in df.itertuples(index=False)]
        sheets[str(sheet_name)] = Sheet.from_rows(rows)
    return Workbook(sheets=sheets)


def _python_value(value: Any) -> Any:
    if pd.isna(value):
        return None
    if hasattr(value, "item"):
        return value.item()  # numpy scalar -> python
    return value


def load_workbook_bytes(data: bytes, filename: str) -> Workbook:
    """Parse spreadsheet bytes into a Workbook, choosing the reader by extension."""
    ext = Path(filename).suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedWorkbookError(
            f"Unsupported file type '{ext or filename}'. Accepted: .xlsx, .xlsm, .xls"
        )
    try:
        if ext == ".xls":
            return _load_pandas(data)
        return _load_openpyxl(data)
    except Exception as e:
        raise WorkbookReadError(
            f"Could not read {Path(filename).name}. It might be corrupted or password protected. ({e})"
        ) from e


def load_workbook(path: Path) -> Workbook:
    path = Path(path)
    return load_workbook_bytes(path.read_bytes(), path.name)
