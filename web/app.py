"""
Signal Dispatch - Web Server

A small Flask app that accepts submissions and hosts the daily send job.

Routes:
    GET  /               submission form
    POST /submit         record a url + event date
    GET  /health         liveness probe
    GET  /test-send      run one send cycle now
    GET  /admin/entries  dump all entries (requires ADMIN_TOKEN)

Run with: python -m web.app
"""

import hmac
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from flask import Flask, jsonify, render_template, request

from src import storage as storage_backends
from src.config import (
    ADMIN_TOKEN,
    DEBUG,
    PORT,
    SCHEDULER_ENABLED,
    configure_logging,
    validate_config,
)
from src.errors import StorageError, ValidationError
from src.models.entry import Entry
from src.pipeline import run_cycle
from src.storage.base import Storage

logger = logging.getLogger(__name__)

app = Flask(__name__)

_storage: Storage = None


def get_storage() -> Storage:
    """Get the configured storage backend (created once per process)."""
    global _storage
    if _storage is None:
        _storage = storage_backends.get_storage()
    return _storage


def today() -> date:
    """Submission date used for the past-date check."""
    return date.today()


def _submission_data() -> dict:
    """Accept both JSON bodies and classic form posts."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


@app.route("/")
def index():
    """Submission form page."""
    return render_template("index.html")


@app.route("/submit", methods=["POST"])
def submit():
    """Validate and record a new entry."""
    data = _submission_data()
    url = data.get("url")
    event_date = data.get("date")

    try:
        entry = Entry.submit(url, event_date, today=today())
        entry_id = get_storage().append(entry)
    except ValidationError as e:
        logger.debug("Rejected submission %r: %s", url, e.message)
        return jsonify({"error": e.message}), e.status_code
    except StorageError as e:
        logger.error("Storage error on submit: %s", e)
        return jsonify({"error": "Storage error"}), 500

    logger.info("Accepted entry %s", entry)
    return jsonify({"success": True, "id": entry_id})


@app.route("/health")
def health():
    """Liveness probe; checks nothing."""
    return "OK"


@app.route("/test-send")
def test_send():
    """Run one evaluate-and-send cycle synchronously."""
    result = run_cycle(storage=get_storage())
    logger.info("Manual send cycle finished: %s", result.status)
    return "Triggered email check"


def _admin_authorized() -> bool:
    supplied = request.headers.get("X-Admin-Token") or request.args.get("token") or ""
    return hmac.compare_digest(supplied.encode(), ADMIN_TOKEN.encode())


@app.route("/admin/entries")
def admin_entries():
    """Dump all entries, newest first."""
    if not ADMIN_TOKEN:
        return jsonify({"error": "Admin access not configured"}), 403
    if not _admin_authorized():
        return jsonify({"error": "Forbidden"}), 403

    try:
        entries = get_storage().list_entries()
    except StorageError as e:
        logger.error("Storage error on admin dump: %s", e)
        return jsonify({"error": "Storage error"}), 500

    return jsonify([entry.to_dict() for entry in entries])


def main() -> None:
    """Start the server and the daily scheduler."""
    configure_logging()

    for problem in validate_config():
        logger.warning("Configuration: %s", problem)

    if SCHEDULER_ENABLED:
        from src.scheduler import start_scheduler
        start_scheduler(storage=get_storage())

    logger.info("Server running on port %d", PORT)
    # The reloader would start a second scheduler in the child process
    app.run(host="0.0.0.0", port=PORT, debug=DEBUG, use_reloader=False)


if __name__ == "__main__":
    main()
