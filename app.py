"""
SOV Notes Web App
=================
Flask JSON API for converting a Statement of Values workbook into HCSS
activity notes: upload the SOV, map its items into activities, then render
and download the notes.

Usage:
    python app.py
    # Then POST the SOV workbook to http://localhost:5000/api/upload
"""

import os
import uuid
from datetime import date
from io import BytesIO
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, jsonify, request, send_file

from activity_codes import ACTIVITY_OPTIONS
from cell_reader import SUPPORTED_EXTENSIONS, WorkbookReadError, load_workbook_bytes
from engine import ExtractionConfig, MissingSheetError, extract_sov_items, summarize_items
from mapping import ActivityMapping
from notes import build_activity_summary, format_hcss_notes, note_filename

# ─── Load environment ────────────────────────────────────────────────────────
load_dotenv()

EXTRACTION_CONFIG = ExtractionConfig.from_env()

# ─── Flask app ────────────────────────────────────────────────────────────────

app = Flask(__name__)

# In-memory session store: session_id -> {filename, items, mapping, log}
sessions: dict[str, dict] = {}

# ─── IP Whitelist ─────────────────────────────────────────────────────────────

ALLOWED_IPS = {
    ip.strip()
    for ip in os.environ.get("ALLOWED_IPS", "127.0.0.1,::1").split(",")
    if ip.strip()
}


@app.before_request
def check_ip_whitelist():
    if "*" in ALLOWED_IPS:
        return None
    client_ip = request.remote_addr
    if client_ip not in ALLOWED_IPS:
        return jsonify({"error": "Access denied"}), 403


# ─── Helpers ──────────────────────────────────────────────────────────────────


def _session_payload(session_id: str, session: dict) -> dict:
    items = session["items"]
    return {
        "session_id": session_id,
        "filename": session["filename"],
        "items": [item.model_dump(mode="json") for item in items],
        "activities": session["mapping"].to_dict(),
        "stats": summarize_items(items),
        "log": session["log"],
    }


def _parse_note_params(data: dict):
    """Validate contractor/date note parameters. Returns (contractor, date, error)."""
    contractor = (data.get("contractor") or "").strip()
    if not contractor:
        return None, None, "Please select a contractor"
    raw_date = (data.get("date") or "").strip()
    if not raw_date:
        return None, None, "Please select a date"
    try:
        note_date = date.fromisoformat(raw_date)
    except ValueError:
        return None, None, f"Invalid date '{raw_date}', expected YYYY-MM-DD"
    return contractor, note_date, None


# ─── Routes ──────────────────────────────────────────────────────────────────


@app.route("/api/activity-codes")
def activity_codes():
    return jsonify(ACTIVITY_OPTIONS)


@app.route("/api/upload", methods=["POST"])
def upload():
    """Accept an SOV workbook, extract its items and open a mapping session."""
    f = request.files.get("sov")
    if not f or f.filename == "":
        return jsonify({"error": "Please upload an SOV file"}), 400

    ext = Path(f.filename).suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        return jsonify({"error": "Please select a valid Excel file (.xlsx or .xls)"}), 400

    log: list[str] = []
    try:
        workbook = load_workbook_bytes(f.read(), f.filename)
        items = extract_sov_items(workbook, EXTRACTION_CONFIG, progress_callback=log.append)
    except (MissingSheetError, WorkbookReadError) as e:
        return jsonify({"error": str(e), "items": []}), 422

    session_id = uuid.uuid4().hex[:12]
    sessions[session_id] = {
        "filename": Path(f.filename).name,
        "items": items,
        "mapping": ActivityMapping(items),
        "log": log,
    }
    return jsonify(_session_payload(session_id, sessions[session_id]))


@app.route("/api/sessions/<session_id>")
def get_session(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404
    return jsonify(_session_payload(session_id, session))


@app.route("/api/sessions/<session_id>/activities", methods=["POST"])
def add_activity(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404

    data = request.get_json(silent=True) or {}
    try:
        session["mapping"].add_activity(name=data.get("name"), code=data.get("code"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(_session_payload(session_id, session))


@app.route("/api/sessions/<session_id>/activities/<int:activity_id>/code", methods=["POST"])
def set_activity_code(session_id, activity_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404

    data = request.get_json(silent=True) or {}
    try:
        session["mapping"].set_code(activity_id, data.get("code"))
    except KeyError as e:
        return jsonify({"error": e.args[0]}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(_session_payload(session_id, session))


@app.route("/api/sessions/<session_id>/activities/<int:activity_id>", methods=["DELETE"])
def remove_activity(session_id, activity_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404

    try:
        session["mapping"].remove_activity(activity_id)
    except KeyError as e:
        return jsonify({"error": e.args[0]}), 404
    return jsonify(_session_payload(session_id, session))


@app.route("/api/sessions/<session_id>/assign", methods=["POST"])
def assign_item(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404

    data = request.get_json(silent=True) or {}
    try:
        item_id = int(data["item_id"])
        activity_id = int(data["activity_id"])
    except (KeyError, TypeError, ValueError):
        return jsonify({"error": "item_id and activity_id are required"}), 400

    try:
        assigned = session["mapping"].assign(item_id, activity_id)
    except KeyError as e:
        return jsonify({"error": e.args[0]}), 404
    if not assigned:
        return jsonify({"error": f"SOV item {item_id} is already assigned"}), 409
    return jsonify(_session_payload(session_id, session))


@app.route("/api/sessions/<session_id>/unassign", methods=["POST"])
def unassign_item(session_id):
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404

    data = request.get_json(silent=True) or {}
    try:
        item_id = int(data["item_id"])
        activity_id = int(data["activity_id"])
    except (KeyError, TypeError, ValueError):
        return jsonify({"error": "item_id and activity_id are required"}), 400

    try:
        session["mapping"].unassign(item_id, activity_id)
    except KeyError as e:
        return jsonify({"error": e.args[0]}), 404
    return jsonify(_session_payload(session_id, session))


@app.route("/api/sessions/<session_id>/assign-all", methods=["POST"])
def assign_all(session_id):
    """Bulk-assign every unassigned item to one activity (the first by default)."""
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404

    data = request.get_json(silent=True) or {}
    activity_id = data.get("activity_id")
    try:
        added = session["mapping"].assign_all(int(activity_id) if activity_id is not None else None)
    except KeyError as e:
        return jsonify({"error": e.args[0]}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    if added == 0:
        return jsonify({"error": "No unassigned items available."}), 409

    payload = _session_payload(session_id, session)
    payload["added"] = added
    return jsonify(payload)


@app.route("/api/sessions/<session_id>/notes", methods=["POST"])
def notes(session_id):
    """Render the HCSS note text and activity summary for the current mapping."""
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404

    contractor, note_date, error = _parse_note_params(request.get_json(silent=True) or {})
    if error:
        return jsonify({"error": error}), 400

    mapping = session["mapping"]
    return jsonify({
        "text": format_hcss_notes(mapping, contractor, note_date),
        "summary": build_activity_summary(mapping),
        "filename": note_filename(contractor, note_date),
    })


@app.route("/api/sessions/<session_id>/download")
def download(session_id):
    """Download the HCSS notes as a text file."""
    session = sessions.get(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404

    contractor, note_date, error = _parse_note_params(request.args)
    if error:
        return jsonify({"error": error}), 400

    text = format_hcss_notes(session["mapping"], contractor, note_date)
    buf = BytesIO(text.encode("utf-8"))
    return send_file(
        buf,
        mimetype="text/plain",
        as_attachment=True,
        download_name=note_filename(contractor, note_date),
    )


# ─── Entry point ─────────────────────────────────────────────────────────────

if __name__ == "__main__":
    print("=" * 50)
    print("  SOV Notes Web App")
    print("  Local:   http://localhost:5000")
    print("  Network: http://0.0.0.0:5000")
    print("=" * 50)
    app.run(host="0.0.0.0", debug=False, port=5000, threaded=True)
