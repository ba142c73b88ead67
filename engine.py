"""
SOV Extraction Engine
=====================
Shared extraction logic used by both the CLI (sov_to_notes.py)
and the web app (app.py).

Scans the "Unit Breakdown" sheet of a Statement of Values workbook and
classifies its rows into Main contract items, Pass-Through items and PCO
(project change order) items, pricing each one for billing.
"""

import itertools
import logging
import math
import os
import re
from enum import Enum
from typing import Any, Callable, Iterator, NamedTuple, Optional

from pydantic import BaseModel, Field, field_validator

from cell_reader import Sheet, Workbook, read_cell

logger = logging.getLogger(__name__)

# ─── Constants ───────────────────────────────────────────────────────────────

SHEET_NAME = "Unit Breakdown"

# Row windows (inclusive) of the standard SOV template. They overlap: the
# section headers, not the row numbers, mark where one section ends.
MAIN_ROWS = (7, 200)
PASS_THROUGH_ROWS = (180, 350)
PCO_ROWS = (205, 300)
PASS_THROUGH_CEILING = 205  # first PCO row

PASS_THROUGH_HEADER = "pass-throughs"
CHANGE_ORDER_HEADER = "change order"

_LEADING_NUMBER_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_DIGITS_RE = re.compile(r"[0-9]+")


# ─── Errors ─────────────────────────────────────────────────────────────────


class MissingSheetError(LookupError):
    """The workbook has no sheet with the configured name."""

    def __init__(self, sheet_name: str, available: list[str]):
        self.sheet_name = sheet_name
        self.available = list(available)
        shown = ", ".join(f'"{s}"' for s in self.available) or "(none)"
        super().__init__(
            f'Sheet "{sheet_name}" not found in the workbook. Available sheets: {shown}'
        )


# ─── Pydantic schemas ───────────────────────────────────────────────────────


class Section(str, Enum):
    MAIN = "Main"
    PASS_THROUGH = "Pass-Through"
    PCO = "PCO"


class SovItem(BaseModel):
    id: int = Field(frozen=True)
    section: Section = Field(frozen=True)
    line_number: int
    prime_key: Optional[str] = None
    pco_number: Optional[str] = None
    description: str
    unit: Optional[str] = None
    unit_of_measure: Optional[str] = None
    unit_cost: float = 0.0
    estimated_quantity: float = 0.0
    contract_value: float = 0.0
    markup: Optional[str] = None
    this_billing: float
    this_billing_value: float
    assigned: bool = False

    @field_validator("id")
    @classmethod
    def id_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("id must be >= 1")
        return v

    @field_validator("this_billing_value")
    @classmethod
    def billing_value_must_be_positive(cls, v: float) -> float:
        if not v > 0:
            raise ValueError("this_billing_value must be > 0")
        return v


RowWindow = tuple[int, int]


class ExtractionConfig(BaseModel):
    """Sheet name and row windows of the SOV template being read.

    Windows accept a (start, end) pair or a "start-end" string, both inclusive.
    """

    sheet_name: str = SHEET_NAME
    main_rows: RowWindow = MAIN_ROWS
    pass_through_rows: RowWindow = PASS_THROUGH_ROWS
    pco_rows: RowWindow = PCO_ROWS
    pass_through_ceiling: int = PASS_THROUGH_CEILING

    @field_validator("main_rows", "pass_through_rows", "pco_rows", mode="before")
    @classmethod
    def parse_window_string(cls, v: Any) -> Any:
        if isinstance(v, str):
            parts = [p.strip() for p in v.split("-")]
            if len(parts) != 2:
                raise ValueError(f"row window must look like '7-200', got {v!r}")
            return (int(parts[0]), int(parts[1]))
        return v

    @field_validator("main_rows", "pass_through_rows", "pco_rows")
    @classmethod
    def window_must_be_ordered(cls, v: RowWindow) -> RowWindow:
        start, end = v
        if start < 1 or end < start:
            raise ValueError(f"row window must satisfy 1 <= start <= end, got {start}-{end}")
        return v

    @field_validator("pass_through_ceiling")
    @classmethod
    def ceiling_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("pass_through_ceiling must be >= 1")
        return v

    @classmethod
    def from_env(cls) -> "ExtractionConfig":
        """Build a config from SOV_* environment variables, defaults for the rest."""
        env_keys = {
            "sheet_name": "SOV_SHEET_NAME",
            "main_rows": "SOV_MAIN_ROWS",
            "pass_through_rows": "SOV_PASS_THROUGH_ROWS",
            "pco_rows": "SOV_PCO_ROWS",
            "pass_through_ceiling": "SOV_PASS_THROUGH_CEILING",
        }
        overrides = {
            field_name: os.environ[env_name]
            for field_name, env_name in env_keys.items()
            if os.environ.get(env_name)
        }
        return cls(**overrides)


# ─── Cell coercion ──────────────────────────────────────────────────────────


def parse_number(value: Any) -> float:
    """Permissive numeric coercion that never raises.

    Numbers pass through; text yields its leading decimal literal ("12A" -> 12,
    "1,234" -> 1, "$5" -> 0); anything else, booleans and non-finite
    values become 0.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        m = _LEADING_NUMBER_RE.match(value)
        if not m:
            return 0.0
        number = float(m.group(1))
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def is_present(value: Any) -> bool:
    """Whether a cell value counts as filled in (blank text and zero do not)."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return bool(value.strip())
    return True


def cell_text(value: Any) -> str:
    """Render a cell value as text; integral numbers lose their trailing .0."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, str):
        return value.strip()
    return str(value)


def _optional_text(value: Any) -> Optional[str]:
    return cell_text(value) if is_present(value) else None


def parse_integer_id(value: Any) -> Optional[int]:
    """Strict integer parse of an identifier cell ("12" and 12 pass, "12A" does not)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and _INTEGER_RE.fullmatch(value.strip()):
        return int(value.strip())
    return None


# ─── Section predicates ─────────────────────────────────────────────────────


def is_pass_through_header(description: Any) -> bool:
    return isinstance(description, str) and PASS_THROUGH_HEADER in description.lower()


def is_change_order_header(description: Any) -> bool:
    return isinstance(description, str) and CHANGE_ORDER_HEADER in description.lower()


def is_narrative_description(description: Any) -> bool:
    """Text that is more than a bare number, i.e. a real pass-through line
    rather than a stray numeric cell in the description column."""
    if not isinstance(description, str):
        return False
    text = description.strip()
    return bool(text) and not _DIGITS_RE.fullmatch(text)


# ─── Pricing ────────────────────────────────────────────────────────────────


class Billing(NamedTuple):
    quantity: float
    value: float


def compute_billing(contract_value: float, unit_cost: float, estimated_quantity: float) -> Billing:
    """Billable quantity and value of a priced line.

    Contract cost wins when present (quantity falls back to 1); otherwise
    unit cost x estimated quantity. A value of 0 means the line is not billable.
    """
    if contract_value > 0:
        quantity = estimated_quantity if estimated_quantity > 0 else 1.0
        return Billing(quantity, contract_value)
    if unit_cost > 0 and estimated_quantity > 0:
        return Billing(estimated_quantity, unit_cost * estimated_quantity)
    return Billing(0.0, 0.0)


# ─── Scan passes ────────────────────────────────────────────────────────────


class ScanState(Enum):
    SCANNING = "scanning"
    TERMINATED = "terminated"


def _window(rows: RowWindow) -> range:
    start, end = rows
    return range(start, end + 1)


def _scan_main(sheet: Sheet, config: ExtractionConfig, ids: Iterator[int]) -> list[SovItem]:
    """Main contract items: A=Prime Key, B=Unit #, C=Description, D=UOM,
    E=Unit Cost, F=Estimated Qty, G=Contract Cost."""
    items = []
    for row in _window(config.main_rows):
        description = read_cell(sheet, "C", row)
        unit_cost = parse_number(read_cell(sheet, "E", row))
        estimated_qty = parse_number(read_cell(sheet, "F", row))
        contract_value = parse_number(read_cell(sheet, "G", row))

        if not is_present(description):
            continue
        if not (estimated_qty > 0 or contract_value > 0):
            logger.debug("Main row %d skipped: no quantity or contract cost", row)
            continue

        billing = compute_billing(contract_value, unit_cost, estimated_qty)
        if billing.value <= 0:
            logger.debug("Main row %d skipped: no billable value", row)
            continue

        items.append(SovItem(
            id=next(ids),
            section=Section.MAIN,
            line_number=row,
            prime_key=_optional_text(read_cell(sheet, "A", row)),
            unit=_optional_text(read_cell(sheet, "B", row)),
            description=cell_text(description) or f"Line {row}",
            unit_of_measure=_optional_text(read_cell(sheet, "D", row)),
            unit_cost=unit_cost,
            estimated_quantity=estimated_qty,
            contract_value=contract_value,
            this_billing=billing.quantity,
            this_billing_value=billing.value,
        ))
    return items


def _scan_pass_through(sheet: Sheet, config: ExtractionConfig, ids: Iterator[int]) -> list[SovItem]:
    """Pass-Through items: A=Item #, B (or C)=Description, F=Markup, G=Contract Cost.

    Rows are read strictly in order: the "Pass-Throughs" header is skipped and
    the first "Change Order" header ends the section for good.
    """
    items = []
    state = ScanState.SCANNING
    for row in _window(config.pass_through_rows):
        if state is ScanState.TERMINATED:
            break

        description = read_cell(sheet, "B", row)
        if not is_present(description):
            description = read_cell(sheet, "C", row)
        if not is_present(description):
            continue

        if is_pass_through_header(description):
            logger.debug("Pass-Throughs header at row %d", row)
            continue
        if is_change_order_header(description):
            logger.debug("Change Orders header at row %d, pass-through scan stopped", row)
            state = ScanState.TERMINATED
            continue

        contract_value = parse_number(read_cell(sheet, "G", row))
        if not (is_narrative_description(description)
                and contract_value > 0
                and row < config.pass_through_ceiling):
            logger.debug("Pass-through row %d skipped: description=%r, contract=%s",
                         row, description, contract_value)
            continue

        item_number = read_cell(sheet, "A", row)
        key = cell_text(item_number) if is_present(item_number) else f"PT-{row}"
        items.append(SovItem(
            id=next(ids),
            section=Section.PASS_THROUGH,
            line_number=row,
            prime_key=key,
            pco_number=key,
            description=description.strip(),
            contract_value=contract_value,
            markup=_optional_text(read_cell(sheet, "F", row)),
            this_billing=1.0,
            this_billing_value=contract_value,
        ))
    return items


def _scan_pco(sheet: Sheet, config: ExtractionConfig, ids: Iterator[int]) -> list[SovItem]:
    """PCO items: B=PCO #, C=Description, D=UOM, E=Unit Cost,
    F=Estimated Qty, G=Contract Cost. "Change Order" header rows are skipped."""
    items = []
    for row in _window(config.pco_rows):
        description = read_cell(sheet, "C", row)
        if not is_present(description):
            continue
        if is_change_order_header(description):
            logger.debug("Change Orders header at row %d", row)
            continue

        pco_number = read_cell(sheet, "B", row)
        unit_cost = parse_number(read_cell(sheet, "E", row))
        estimated_qty = parse_number(read_cell(sheet, "F", row))
        contract_value = parse_number(read_cell(sheet, "G", row))

        has_pco_number = is_present(pco_number) and parse_integer_id(pco_number) is not None
        has_cost = contract_value > 0 or (unit_cost > 0 and estimated_qty > 0)
        if not (has_pco_number and has_cost):
            logger.debug("PCO row %d skipped: pco=%r, contract=%s, unit cost=%s, qty=%s",
                         row, pco_number, contract_value, unit_cost, estimated_qty)
            continue

        billing = compute_billing(contract_value, unit_cost, estimated_qty)
        if billing.value <= 0:
            continue

        key = cell_text(pco_number)
        items.append(SovItem(
            id=next(ids),
            section=Section.PCO,
            line_number=row,
            prime_key=key,
            pco_number=key,
            description=cell_text(description),
            unit_of_measure=_optional_text(read_cell(sheet, "D", row)),
            unit_cost=unit_cost,
            estimated_quantity=estimated_qty,
            contract_value=contract_value,
            this_billing=billing.quantity,
            this_billing_value=billing.value,
        ))
    return items


# ─── Extraction ─────────────────────────────────────────────────────────────


def extract_sov_items(
    workbook: Workbook,
    config: Optional[ExtractionConfig] = None,
    progress_callback: Optional[Callable[[str], None]] = None,
) -> list[SovItem]:
    """
    Extract billable SOV items from a parsed workbook.

    Args:
        workbook: Parsed workbook exposing sheet_names and get_sheet().
        config: Sheet name and row windows; the standard template when omitted.
        progress_callback: Optional callable that receives progress message strings.

    Returns:
        Main, Pass-Through and PCO items in that order, ids numbered from 1.

    Raises:
        MissingSheetError: the configured sheet is not in the workbook.
    """
    def emit(msg: str):
        if progress_callback:
            progress_callback(msg)

    config = config or ExtractionConfig()

    if config.sheet_name not in workbook.sheet_names:
        raise MissingSheetError(config.sheet_name, workbook.sheet_names)
    sheet = workbook.get_sheet(config.sheet_name)

    ids = itertools.count(1)

    emit("Processing main contract items...")
    main_items = _scan_main(sheet, config, ids)
    emit(f"Found {len(main_items)} main contract items")

    emit("Processing pass-through items...")
    pass_through_items = _scan_pass_through(sheet, config, ids)
    emit(f"Found {len(pass_through_items)} pass-through items")

    emit("Processing PCO items...")
    pco_items = _scan_pco(sheet, config, ids)
    emit(f"Found {len(pco_items)} PCO items")

    items = main_items + pass_through_items + pco_items
    emit(f"Done! {len(items)} SOV items extracted.")
    return items


def summarize_items(items: list[SovItem]) -> dict:
    """Item counts and per-section subtotals of billing value."""
    subtotals = {section: 0.0 for section in Section}
    for item in items:
        subtotals[item.section] += item.this_billing_value

    return {
        "total_items": len(items),
        "mapped_items": sum(1 for item in items if item.assigned),
        "main_subtotal": subtotals[Section.MAIN],
        "pass_through_subtotal": subtotals[Section.PASS_THROUGH],
        "pco_subtotal": subtotals[Section.PCO],
        "total_value": sum(subtotals.values()),
    }
