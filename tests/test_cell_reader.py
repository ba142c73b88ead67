"""Cell reading and workbook loading."""

import datetime

import pandas as pd
import pytest

import cell_reader
from cell_reader import (
    CellData,
    Sheet,
    UnsupportedWorkbookError,
    WorkbookReadError,
    load_workbook,
    load_workbook_bytes,
    read_cell,
)


class TestReadCell:

    def test_missing_cell_reads_empty(self):
        assert read_cell(Sheet(), "C", 7) == ""

    def test_formatted_text_wins_over_value(self):
        sheet = Sheet.from_mapping({"G7": CellData(value=1234, formatted="$1,234.00")})
        assert read_cell(sheet, "G", 7) == "$1,234.00"

    def test_typed_value_when_no_formatted_text(self):
        when = datetime.datetime(2026, 3, 1)
        sheet = Sheet.from_mapping({"E7": 12.5, "C7": "Pipe", "D7": when})
        assert read_cell(sheet, "E", 7) == 12.5
        assert read_cell(sheet, "C", 7) == "Pipe"
        assert read_cell(sheet, "D", 7) == when

    def test_empty_formatted_text_falls_back_to_value(self):
        sheet = Sheet.from_mapping({"G7": CellData(value=42, formatted="")})
        assert read_cell(sheet, "G", 7) == 42

    def test_cell_without_value_reads_empty(self):
        sheet = Sheet.from_mapping({"G7": CellData()})
        assert read_cell(sheet, "G", 7) == ""

    @pytest.mark.parametrize("column", ["", "AA", "c", "1", None])
    def test_invalid_column(self, column):
        with pytest.raises(ValueError):
            read_cell(Sheet(), column, 7)

    @pytest.mark.parametrize("row", [0, -1, 1.5, "7"])
    def test_invalid_row(self, row):
        with pytest.raises(ValueError):
            read_cell(Sheet(), "A", row)


class TestSheetModel:

    def test_from_rows_skips_blanks(self):
        sheet = Sheet.from_rows([["PK-1", None, "Mobilization"], ["", 5]], first_row=7)
        assert read_cell(sheet, "A", 7) == "PK-1"
        assert read_cell(sheet, "C", 7) == "Mobilization"
        assert read_cell(sheet, "B", 8) == 5
        assert "B7" not in sheet.cells
        assert "A8" not in sheet.cells

    def test_from_rows_addresses_past_column_z(self):
        sheet = Sheet.from_rows([[None] * 6 + [500] + [None] * 19 + ["wide"]])
        assert read_cell(sheet, "G", 1) == 500
        assert sheet.cells["AA1"].value == "wide"
        assert len(sheet.cells) == 2


class TestLoaders:

    def test_xlsx_round_trip(self, sov_xlsx_bytes):
        wb = load_workbook_bytes(sov_xlsx_bytes, "sov.xlsx")
        assert wb.sheet_names == ["Cover", "Unit Breakdown"]

        sheet = wb.get_sheet("Unit Breakdown")
        assert read_cell(sheet, "C", 7) == "Mobilization"
        assert read_cell(sheet, "G", 7) == 5000
        assert read_cell(sheet, "B", 212) == 13
        assert read_cell(sheet, "B", 210) == "12A"
        assert read_cell(sheet, "A", 9) == ""

    def test_load_workbook_from_path(self, tmp_path, sov_xlsx_bytes):
        path = tmp_path / "SOV.XLSX"
        path.write_bytes(sov_xlsx_bytes)
        wb = load_workbook(path)
        assert "Unit Breakdown" in wb.sheet_names

    def test_unsupported_extension(self):
        with pytest.raises(UnsupportedWorkbookError):
            load_workbook_bytes(b"a,b,c", "sov.csv")

    def test_corrupt_file(self):
        with pytest.raises(WorkbookReadError):
            load_workbook_bytes(b"definitely not a zip archive", "sov.xlsx")

    def test_xls_goes_through_pandas(self, monkeypatch):
        frame = pd.DataFrame([
            [None, "U-1", "Pipe", "LF", 10.0, 20.0, 500.0],
            [None, None, None, None, None, None, None],
        ])

        def fake_read_excel(buf, sheet_name, header, engine):
            assert sheet_name is None and header is None and engine == "xlrd"
            return {"Unit Breakdown": frame}

        monkeypatch.setattr(cell_reader.pd, "read_excel", fake_read_excel)
        wb = load_workbook_bytes(b"\xd0\xcf\x11\xe0", "legacy.xls")

        sheet = wb.get_sheet("Unit Breakdown")
        assert read_cell(sheet, "B", 1) == "U-1"
        assert read_cell(sheet, "G", 1) == 500.0
        assert type(read_cell(sheet, "G", 1)) is float
        assert read_cell(sheet, "A", 1) == ""
        assert not any(address.endswith("2") for address in sheet.cells)
