"""
SPSI Activity Codes
===================
Billing activities that SOV items are grouped into for HCSS notes.
Keyed by activity code; the label shown to users is "CODE: TITLE".
"""

SPSI_ACTIVITY_CODES = {
    "5010": "ENVIRONMENTAL MONITORING",
    "5020": "IMPLEMENT SWPPP",
    "5030": "VEGETATION MANAGEMENT",
    "5060": "MOBILIZATION+",
    "5070": "SURVEY+",
    "5080": "SITE MANAGEMENT+",
    "5085": "TRAFFIC CONTROL+",
    "5090": "SITE PREP+",
    "6000": "EXCAVATION & SHORING+",
    "6050": "MATERIALS",
    "6100": "REMOVAL (Settlement)+",
    "6200": "FABRICATION AND INSTALL OF PIPING & VALVES+",
    "6300": "POTHOLE SITE+",
    "6400": "CONCRETE (Civil)+",
    "6500": "BORING+",
    "6600": "COATING+",
    "6700": "CORROSION CONTROL / CATHODIC PROTECTION+",
    "6800": "ILI TOOL RUN AND SUPPORT+",
    "6900": "PERFORM STRENGTH TEST+",
    "7100": "CONTROL PIPING+",
    "7200": "SCADA INSTRUMENTATION+",
    "7300": "ELECTRICAL+",
    "7400": "BACKFILL+",
    "7500": "SITE DEWATERING+",
    "7700": "DEMOBILIZATION+",
    "7800": "PERFORM INSPECTION",
    "8000": "PERFORM NDE",
    "8400": "CONSTRUCTION MANAGEMENT & OVERSIGHT",
    "8600": "SAFETY+",
    "8700": "HARD SITE RESTORATION+",
    "8800": "SOFT SITE RESTORATION+",
}


def activity_label(code: str) -> str:
    """Label shown for a code, e.g. "5060: MOBILIZATION+"."""
    return f"{code}: {SPSI_ACTIVITY_CODES[code]}"


ACTIVITY_OPTIONS = [{"code": code, "label": activity_label(code)} for code in SPSI_ACTIVITY_CODES]


def normalize_activity_code(value: str) -> str:
    """
    Accepts a bare code ("5060") or a full label ("5060: MOBILIZATION+")
    and returns the code. Raises ValueError for codes not in the table.
    """
    code = str(value).split(":", 1)[0].strip()
    if code not in SPSI_ACTIVITY_CODES:
        raise ValueError(f"Unknown activity code: {value!r}")
    return code
