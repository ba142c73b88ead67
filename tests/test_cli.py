"""Command-line conversion (sov_to_notes.py)."""

from datetime import date

import pytest

from sov_to_notes import main, parse_args


@pytest.fixture
def sov_file(tmp_path, sov_xlsx_bytes):
    path = tmp_path / "sov.xlsx"
    path.write_bytes(sov_xlsx_bytes)
    return path


def test_parse_args_defaults(sov_file):
    args = parse_args([str(sov_file), "--contractor", "Acme"])
    assert args.date == date.today()
    assert args.activity is None
    assert args.output is None


def test_parse_args_date():
    args = parse_args(["sov.xlsx", "--contractor", "Acme", "--date", "2026-10-19"])
    assert args.date == date(2026, 10, 19)


def test_writes_notes(sov_file, tmp_path, capsys):
    output = tmp_path / "notes.txt"
    code = main([str(sov_file), "--contractor", "Acme", "--date", "2026-10-19",
                 "--activity", "5060", "--output", str(output)])

    assert code == 0
    text = output.read_text(encoding="utf-8")
    assert "ACTIVITY: 5060: MOBILIZATION+ HCSS Note" in text
    assert "Per Acme SOV:" in text
    assert "SOV TOTAL: $16,350.00" in text

    out = capsys.readouterr().out
    assert "Found 3 main contract items" in out
    assert "Total items           : 7" in out
    assert "SOV TOTAL             : $16,350.00" in out


def test_default_output_name(sov_file, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main([str(sov_file), "--contractor", "Acme", "--date", "2026-10-19"]) == 0
    text = (tmp_path / "SOV_Activities_Acme_2026-10-19.txt").read_text(encoding="utf-8")
    assert "ACTIVITY: Activity 1 HCSS Note" in text


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "missing.xlsx"), "--contractor", "Acme"]) == 1
    assert "ERROR: File not found" in capsys.readouterr().out


def test_missing_sheet(tmp_path, make_xlsx_bytes, capsys):
    path = tmp_path / "other.xlsx"
    path.write_bytes(make_xlsx_bytes({"Sheet1": {"C7": "Pipe", "G7": 100}}))
    assert main([str(path), "--contractor", "Acme"]) == 1
    assert 'Sheet "Unit Breakdown" not found' in capsys.readouterr().out


def test_unknown_activity_code(sov_file, tmp_path, capsys):
    output = tmp_path / "notes.txt"
    code = main([str(sov_file), "--contractor", "Acme", "--activity", "1234", "--output", str(output)])
    assert code == 1
    assert "Unknown activity code" in capsys.readouterr().out
    assert not output.exists()


def test_sheet_name_from_env(tmp_path, make_xlsx_bytes, monkeypatch):
    monkeypatch.setenv("SOV_SHEET_NAME", "SOV")
    path = tmp_path / "custom.xlsx"
    path.write_bytes(make_xlsx_bytes({"SOV": {"C7": "Pipe", "G7": 100}}))
    output = tmp_path / "notes.txt"
    assert main([str(path), "--contractor", "Acme", "--output", str(output)]) == 0
    assert "SOV TOTAL: $100.00" in output.read_text(encoding="utf-8")
