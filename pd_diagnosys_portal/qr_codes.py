"""Doctor sign-in QR code records kept in the local store."""

import random
import re
import string
import time

from pd_diagnosys_portal.records import utc_now_iso
from pd_diagnosys_portal.storage import LocalStore

QR_PREFIX = "PDDIAGNOSYS_DOCTOR_"
QR_PATTERN = re.compile(r"^PDDIAGNOSYS_DOCTOR_([^_]+)_(.+)$")

_BASE36 = string.ascii_lowercase + string.digits


def _random_token(length: int) -> str:
    return "".join(random.choice(_BASE36) for _ in range(length))


def _millis() -> int:
    return int(time.time() * 1000)


def generate_session_id() -> str:
    return f"SESSION_{_millis()}_{_random_token(13)}"


def generate_qr_code_string(doctor_id: str, session_id: str) -> str:
    return f"{QR_PREFIX}{doctor_id}_{session_id}"


def parse_qr_code_string(qr_code_string: str) -> dict | None:
    """Extract doctorId and sessionId from a scanned code, or None if invalid."""
    if not qr_code_string:
        return None
    match = QR_PATTERN.match(qr_code_string.strip())
    if not match:
        return None
    return {"doctorId": match.group(1), "sessionId": match.group(2)}


def create_doctor_qr_code(store: LocalStore, doctor_id: str, doctor_name: str, doctor_email: str) -> dict:
    """Create and store a new sign-in QR code for a doctor."""
    session_id = generate_session_id()
    now = utc_now_iso()
    qr_code = {
        "id": f"QR_{_millis()}_{_random_token(7)}",
        "doctorId": doctor_id,
        "doctorName": doctor_name,
        "doctorEmail": doctor_email,
        "qrCode": generate_qr_code_string(doctor_id, session_id),
        "sessionId": session_id,
        "createdAt": now,
        "lastSignIn": now,
        "isActive": True,
    }
    qr_codes = store.get_qr_codes()
    qr_codes.append(qr_code)
    store.save_qr_codes(qr_codes)
    return qr_code


def get_doctor_qr_codes(store: LocalStore, doctor_id: str) -> list[dict]:
    return [qr for qr in store.get_qr_codes() if qr.get("doctorId") == doctor_id]


def get_all_qr_codes(store: LocalStore) -> list[dict]:
    return store.get_qr_codes()


def find_qr_code_by_session(store: LocalStore, session_id: str) -> dict | None:
    for qr in store.get_qr_codes():
        if qr.get("sessionId") == session_id:
            return qr
    return None


def delete_qr_code(store: LocalStore, qr_code_id: str) -> dict | None:
    """Remove a QR code. Returns the removed record, or None if absent."""
    qr_codes = store.get_qr_codes()
    removed = next((qr for qr in qr_codes if qr.get("id") == qr_code_id), None)
    if removed is None:
        return None
    store.save_qr_codes([qr for qr in qr_codes if qr.get("id") != qr_code_id])
    return removed


def update_qr_code_sign_in(store: LocalStore, qr_code_id: str) -> None:
    """Mark a QR code as just used."""
    qr_codes = store.get_qr_codes()
    for qr in qr_codes:
        if qr.get("id") == qr_code_id:
            qr["lastSignIn"] = utc_now_iso()
            qr["isActive"] = True
    store.save_qr_codes(qr_codes)
