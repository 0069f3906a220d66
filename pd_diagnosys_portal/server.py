"""Sync server: HTTP front end over the shared document store."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError

from pd_diagnosys_portal.records import SyncEvent, utc_now_iso
from pd_diagnosys_portal.storage import DocumentStore, UnknownSyncTypeError

load_dotenv(override=True)

HOST = os.environ.get("SYNC_SERVER_HOST", "0.0.0.0")
PORT = int(os.environ.get("SYNC_SERVER_PORT", "3001"))
DATA_FILE = Path(os.environ.get("SYNC_DATA_FILE", Path(__file__).parent / "server-data.json"))

logger = logging.getLogger(__name__)


def create_app(store: DocumentStore | None = None) -> Flask:
    """Build the Flask app around an explicit document store.

    When no store is given, one is created on DATA_FILE and loaded.
    """
    if store is None:
        store = DocumentStore(DATA_FILE)
        store.load()

    app = Flask(__name__)
    CORS(app)
    app.config["DOCUMENT_STORE"] = store

    @app.route("/api/sync", methods=["POST"])
    def sync():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return jsonify({"error": "Invalid sync payload"}), 400

        try:
            event = SyncEvent.model_validate(payload)
        except ValidationError as e:
            logger.warning("Rejected sync payload: %s", e)
            return jsonify({"error": "Invalid sync payload"}), 400

        logger.info("Received sync: %s %s", event.type, event.data)

        try:
            message = store.apply(event)
        except UnknownSyncTypeError:
            logger.warning("Unknown sync type: %s", event.type)
            return jsonify({"error": "Unknown sync type"}), 400
        except Exception:
            logger.exception("Error in sync endpoint")
            return jsonify({"error": "Internal server error"}), 500

        return jsonify({"success": True, "message": message})

    @app.route("/api/patient-records", methods=["GET"])
    def patient_records():
        try:
            return jsonify({"records": store.patient_records()})
        except Exception:
            logger.exception("Error fetching patient records")
            return jsonify({"error": "Internal server error"}), 500

    @app.route("/api/appointments", methods=["GET"])
    def appointments():
        try:
            return jsonify({"appointments": store.appointments()})
        except Exception:
            logger.exception("Error fetching appointments")
            return jsonify({"error": "Internal server error"}), 500

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "timestamp": utc_now_iso()})

    return app


def run_server(host: str = HOST, port: int = PORT, data_file: str | Path = DATA_FILE) -> None:
    """Load the document and serve until interrupted."""
    store = DocumentStore(data_file)
    store.load()
    app = create_app(store)

    logger.info("Sync server running on http://%s:%s", host, port)
    logger.info("Data file: %s", store.path)
    app.run(host=host, port=port, threaded=True)
