"""Per-device local store: a small key-value table of JSON blobs."""

import json
import logging
from pathlib import Path

from .connection import get_connection, init_local_store
from .schema import (
    USERS_KEY,
    CURRENT_USER_KEY,
    PATIENT_RECORDS_KEY,
    DOCTOR_QRCODES_KEY,
    OUTBOX_KEY,
)

logger = logging.getLogger(__name__)


class LocalStore:
    """Repository over the kv_store table.

    Writes are synchronous and committed before returning; from the user's
    point of view a local write is the durability boundary.
    """

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = db_path
        init_local_store(db_path)

    def get(self, key: str, default=None):
        """Return the decoded value for key, or default if missing or corrupt."""
        conn = get_connection(self.db_path)
        cursor = conn.cursor()
        cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()
        conn.close()

        if not row:
            return default
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.error("Corrupt local value for %s, using default", key)
            return default

    def set(self, key: str, value) -> None:
        """Store value under key as JSON."""
        conn = get_connection(self.db_path)
        conn.execute(
            """INSERT INTO kv_store (key, value, updated_at)
               VALUES (?, ?, CURRENT_TIMESTAMP)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at""",
            (key, json.dumps(value)),
        )
        conn.commit()
        conn.close()

    def delete(self, key: str) -> None:
        conn = get_connection(self.db_path)
        conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        conn.commit()
        conn.close()

    # Typed accessors

    def get_users(self) -> list[dict]:
        return self.get(USERS_KEY, [])

    def save_users(self, users: list[dict]) -> None:
        self.set(USERS_KEY, users)

    def get_current_user(self) -> dict | None:
        return self.get(CURRENT_USER_KEY)

    def set_current_user(self, user: dict) -> None:
        self.set(CURRENT_USER_KEY, user)

    def clear_current_user(self) -> None:
        self.delete(CURRENT_USER_KEY)

    def get_patient_records(self) -> list[dict]:
        return self.get(PATIENT_RECORDS_KEY, [])

    def save_patient_records(self, records: list[dict]) -> None:
        self.set(PATIENT_RECORDS_KEY, records)

    def get_qr_codes(self) -> list[dict]:
        return self.get(DOCTOR_QRCODES_KEY, [])

    def save_qr_codes(self, qr_codes: list[dict]) -> None:
        self.set(DOCTOR_QRCODES_KEY, qr_codes)

    def get_outbox(self) -> list[dict]:
        return self.get(OUTBOX_KEY, [])

    def save_outbox(self, entries: list[dict]) -> None:
        self.set(OUTBOX_KEY, entries)
