"""
SOV -> HCSS Notes  (CLI)
========================
Extracts billable items from a Statement of Values workbook, maps all of them
into a single activity and writes the HCSS note text file.

Usage:
    python sov_to_notes.py SOV.xlsx --contractor "Acme Pipeline" --activity 5060
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Force UTF-8 output on Windows to avoid cp1252 encoding errors
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

from dotenv import load_dotenv

from cell_reader import UnsupportedWorkbookError, WorkbookReadError, load_workbook
from engine import ExtractionConfig, MissingSheetError, extract_sov_items, summarize_items
from mapping import ActivityMapping
from notes import format_currency, format_hcss_notes, note_filename

# ─── Load environment ────────────────────────────────────────────────────────
load_dotenv()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Convert an SOV workbook into HCSS activity notes.")
    parser.add_argument("sov_file", type=Path, help="SOV workbook (.xlsx, .xlsm or .xls)")
    parser.add_argument("--contractor", required=True, help="Contractor name used in the notes")
    parser.add_argument("--date", type=date.fromisoformat, default=date.today(),
                        help="Note date, YYYY-MM-DD (default: today)")
    parser.add_argument("--activity", default=None,
                        help='SPSI activity code, e.g. 5060 or "5060: MOBILIZATION+"')
    parser.add_argument("--output", type=Path, default=None,
                        help="Output text file (default: SOV_Activities_<contractor>_<date>.txt)")
    parser.add_argument("--verbose", action="store_true", help="Log skipped rows")
    return parser.parse_args(argv)


# ─── Main ────────────────────────────────────────────────────────────────────


def main(argv=None) -> int:
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 65)
    print("  SOV -> HCSS Notes")
    print("=" * 65)

    # Console progress callback
    def on_progress(msg: str):
        print(f"  {msg}")

    try:
        config = ExtractionConfig.from_env()
        workbook = load_workbook(args.sov_file)
        items = extract_sov_items(workbook, config, progress_callback=on_progress)
    except (MissingSheetError, UnsupportedWorkbookError, WorkbookReadError) as e:
        print(f"ERROR: {e}")
        return 1
    except FileNotFoundError:
        print(f"ERROR: File not found: {args.sov_file}")
        return 1

    mapping = ActivityMapping(items)
    try:
        if args.activity:
            mapping.set_code(mapping.activities[0].activity_id, args.activity)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1
    mapping.assign_all()

    output_file = args.output or Path.cwd() / note_filename(args.contractor, args.date)
    output_file.write_text(format_hcss_notes(mapping, args.contractor, args.date), encoding="utf-8")

    # ─── Summary ──────────────────────────────────────────────────────────
    stats = summarize_items(items)
    print(f"\n{'=' * 65}")
    print("  SOV SUMMARY")
    print(f"{'=' * 65}")
    print(f"  Total items           : {stats['total_items']}")
    print(f"  Main contract         : {format_currency(stats['main_subtotal'])}")
    print(f"  Pass-throughs         : {format_currency(stats['pass_through_subtotal'])}")
    print(f"  PCOs                  : {format_currency(stats['pco_subtotal'])}")
    print(f"  SOV TOTAL             : {format_currency(stats['total_value'])}")
    print(f"  Activity              : {mapping.activities[0].label}")
    print(f"  Output                : {output_file}")

    print(f"\n{'=' * 65}")
    print("  DONE")
    print(f"{'=' * 65}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
