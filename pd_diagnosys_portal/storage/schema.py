"""
Portal Storage Schema
Shape of the shared server document and the per-device key-value table.
"""

import copy

# Top-level keys of the server document, each an append/merge list
DOCUMENT_KEYS = (
    "patientRecords",
    "appointments",
    "loginLogs",
    "logoutLogs",
    "deleteLogs",
)

EMPTY_DOCUMENT = {key: [] for key in DOCUMENT_KEYS}


def empty_document() -> dict:
    """Fresh copy of the empty server document."""
    return copy.deepcopy(EMPTY_DOCUMENT)


# Local store keys (one JSON blob per key)
USERS_KEY = "pd_users"
CURRENT_USER_KEY = "pd_user"
PATIENT_RECORDS_KEY = "pd_patient_records"
DOCTOR_QRCODES_KEY = "pd_doctor_qrcodes"
OUTBOX_KEY = "pd_sync_outbox"

LOCAL_SCHEMA = """
-- =============================================================================
-- KV_STORE - Per-device key-value table, values are JSON blobs
-- =============================================================================
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""
