"""
HCSS Note Output
================
Renders mapped SOV activities as the fixed-width text notes pasted into HCSS,
plus the on-screen activity summary and the download file name.
"""

from datetime import date
from typing import Any

from engine import Section, SovItem, parse_number
from mapping import ActivityMapping

NOTE_WIDTH = 95  # HCSS note field width
RULE_WIDTH = 40
TITLE = "STATEMENT OF VALUES - ACTIVITY SUMMARY"


# ─── Text helpers ────────────────────────────────────────────────────────────


def format_currency(value: Any) -> str:
    """1234.5 -> "$1,234.50". Non-numeric input formats as $0.00."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        value = parse_number(value)
    return f"${value:,.2f}"


def wrap_text(text: str, max_width: int) -> list[str]:
    """Break text at the last space within max_width, hard-breaking long words."""
    lines = []
    while text:
        if len(text) <= max_width:
            lines.append(text)
            break
        break_point = text.rfind(" ", 0, max_width + 1)
        if break_point == -1:
            break_point = max_width
        lines.append(text[:break_point])
        text = text[break_point:].strip()
    return lines


def center_text(text: str, width: int) -> str:
    padding = (width - len(text)) // 2
    return " " * max(0, padding) + text


def format_quantity(quantity: float) -> str:
    if float(quantity).is_integer():
        return str(int(quantity))
    return repr(float(quantity))


def format_note_date(note_date: date) -> str:
    return note_date.strftime("%m/%d/%Y")


# ─── Item lines ─────────────────────────────────────────────────────────────


def item_reference(item: SovItem) -> str:
    """Short reference used in the activity summary."""
    if item.section == Section.PASS_THROUGH and item.pco_number:
        return f"Pass-Through #{item.pco_number}"
    if item.section == Section.PCO and item.pco_number:
        return f"PCO #{item.pco_number}"
    return item.unit or f"Line {item.line_number}"


def format_item_line(item: SovItem) -> str:
    qty = f" | Qty: {format_quantity(item.this_billing)} {item.unit_of_measure or 'EA'}"
    value = f" | {format_currency(item.this_billing_value)}"

    if item.section == Section.PASS_THROUGH:
        if item.pco_number:
            line = f"Pass-Through #{item.pco_number}: {item.description}"
        else:
            line = f"PT Line {item.line_number}: {item.description}"
        return line + value

    if item.section == Section.PCO:
        if item.pco_number:
            line = f"PCO #{item.pco_number}: {item.description}"
        else:
            line = f"PCO Line {item.line_number}: {item.description}"
        return line + qty + value

    unit_number = item.unit or f"Line {item.line_number}"
    return f"{unit_number}: {item.description}" + qty + value


def wrap_item_line(line: str, max_width: int = NOTE_WIDTH) -> list[str]:
    """Wrap an item line, indenting continuation lines under the text after
    the first colon."""
    lines = wrap_text(line, max_width)
    if len(lines) <= 1:
        return lines

    colon_index = lines[0].find(":")
    indent = colon_index + 2 if colon_index != -1 else 2
    return [lines[0]] + [" " * indent + continuation for continuation in lines[1:]]


# ─── Notes ──────────────────────────────────────────────────────────────────


def format_hcss_notes(mapping: ActivityMapping, contractor: str, note_date: date) -> str:
    """
    Build the HCSS note text for every activity that has items.

    Layout: title banner, one block per activity (header, date, item lines,
    activity total), then the SOV grand total.
    """
    formatted_date = format_note_date(note_date)
    output = [
        "=" * NOTE_WIDTH,
        center_text(TITLE, NOTE_WIDTH),
        "=" * NOTE_WIDTH,
        "",
    ]

    grand_total = 0.0
    for activity in mapping.non_empty_activities():
        items = mapping.activity_items(activity.activity_id)
        activity_total = sum(item.this_billing_value for item in items)

        output.append("")
        output.append(f"ACTIVITY: {activity.label} HCSS Note")
        output.append("-" * RULE_WIDTH)
        output.append("")
        output.append(f"Date: {formatted_date}")
        output.append("=" * NOTE_WIDTH)
        output.append(f"Per {contractor} SOV:")

        for item in items:
            output.extend(wrap_item_line(format_item_line(item)))

        output.append("=" * RULE_WIDTH)
        output.append(f"Total: {format_currency(activity_total)}")
        output.append("")
        grand_total += activity_total

    output.append("")
    output.append("=" * NOTE_WIDTH)
    output.append(f"SOV TOTAL: {format_currency(grand_total)}")
    output.append("=" * NOTE_WIDTH)

    return "\n".join(output)


def build_activity_summary(mapping: ActivityMapping) -> dict:
    """Per-activity totals and item bullets for review before export."""
    activities = []
    grand_total = 0.0
    for activity in mapping.non_empty_activities():
        items = mapping.activity_items(activity.activity_id)
        total = sum(item.this_billing_value for item in items)
        grand_total += total
        activities.append({
            "name": activity.label,
            "total": total,
            "total_display": format_currency(total),
            "items": [f"• {item_reference(item)}: {item.description[:30]}" for item in items],
        })

    return {
        "activities": activities,
        "grand_total": grand_total,
        "grand_total_display": format_currency(grand_total),
    }


def note_filename(contractor: str, note_date: date) -> str:
    return f"SOV_Activities_{contractor}_{note_date.isoformat()}.txt"
