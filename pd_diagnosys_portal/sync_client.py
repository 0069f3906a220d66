"""HTTP client for the sync server.

All operations are best effort: failures are logged and reported as a False
or empty result, never raised, so the local store stays usable offline.
"""

import logging
import os

import requests
from dotenv import load_dotenv

from pd_diagnosys_portal.records import SyncType, User, utc_now_iso

load_dotenv(override=True)

SERVER_URL = os.environ.get("SYNC_SERVER_URL", "http://localhost:3001")
REQUEST_TIMEOUT = float(os.environ.get("SYNC_REQUEST_TIMEOUT", "10"))

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Raised internally when a request to the sync server fails."""
    pass


class SyncOperations:
    """Typed sync events on top of a single sync_to_server primitive.

    Subclasses decide how an event is delivered (directly or via an outbox).
    """

    def sync_to_server(self, sync_type: str, data: dict) -> bool:
        raise NotImplementedError

    def sync_patient_record(self, record: dict) -> bool:
        return self.sync_to_server(SyncType.PATIENT_RECORD.value, record)

    def sync_appointment(
        self,
        patient_id: str,
        patient_name: str,
        patient_email: str,
        status: str,
        timestamp: str,
    ) -> bool:
        return self.sync_to_server(SyncType.APPOINTMENT.value, {
            "patientId": patient_id,
            "patientName": patient_name,
            "patientEmail": patient_email,
            "status": status,
            "timestamp": timestamp,
        })

    def sync_login(self, user: User, timestamp: str | None = None) -> bool:
        return self.sync_to_server(SyncType.LOGIN.value, user.session_payload(timestamp or utc_now_iso()))

    def sync_logout(self, user: User, timestamp: str | None = None) -> bool:
        return self.sync_to_server(SyncType.LOGOUT.value, user.session_payload(timestamp or utc_now_iso()))

    def sync_delete_patient(self, patient_id: str, patient_name: str) -> bool:
        return self.sync_to_server(SyncType.DELETE_PATIENT.value, {
            "patientId": patient_id,
            "patientName": patient_name,
            "timestamp": utc_now_iso(),
        })

    def sync_delete_doctor(self, doctor_id: str, doctor_name: str) -> bool:
        return self.sync_to_server(SyncType.DELETE_DOCTOR.value, {
            "doctorId": doctor_id,
            "doctorName": doctor_name,
            "timestamp": utc_now_iso(),
        })

    def sync_delete_qrcode(self, qr_code_id: str, doctor_name: str) -> bool:
        return self.sync_to_server(SyncType.DELETE_QRCODE.value, {
            "qrCodeId": qr_code_id,
            "doctorName": doctor_name,
            "timestamp": utc_now_iso(),
        })


class SyncClient(SyncOperations):
    """Direct HTTP delivery of sync events plus the two read queries."""

    def __init__(self, base_url: str = SERVER_URL, timeout: float = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def post_event(self, event: dict) -> dict:
        """POST one envelope to /api/sync. Raises SyncError on any failure."""
        url = f"{self.base_url}/api/sync"
        try:
            response = requests.post(url, json=event, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise SyncError("Sync request timed out")
        except requests.exceptions.ConnectionError:
            raise SyncError(f"Failed to connect to {self.base_url}")
        except requests.exceptions.RequestException as e:
            raise SyncError(str(e))

        if not response.ok:
            raise SyncError(f"Server returned {response.status_code}: {response.text}")

        try:
            return response.json()
        except ValueError:
            return {}

    def sync_to_server(self, sync_type: str, data: dict) -> bool:
        event = {"type": sync_type, "data": data, "timestamp": utc_now_iso()}
        logger.debug("Syncing %s to %s", sync_type, self.base_url)
        try:
            result = self.post_event(event)
        except SyncError as e:
            logger.error("Failed to sync %s: %s", sync_type, e)
            return False
        logger.debug("Synced %s: %s", sync_type, result)
        return True

    def _get(self, path: str):
        url = f"{self.base_url}{path}"
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise SyncError("Request timed out")
        except requests.exceptions.ConnectionError:
            raise SyncError(f"Failed to connect to {self.base_url}")
        except requests.exceptions.RequestException as e:
            raise SyncError(str(e))

        if not response.ok:
            raise SyncError(f"Server returned {response.status_code}: {response.text}")

        try:
            return response.json()
        except ValueError:
            raise SyncError("Unexpected response format")

    def fetch_patient_records(self) -> list[dict]:
        """Fetch all patient records. An empty list may also mean the fetch failed."""
        try:
            data = self._get("/api/patient-records")
        except SyncError as e:
            logger.error("Error fetching patient records: %s", e)
            return []

        if isinstance(data, list):
            records = data
        else:
            records = data.get("records") or []
        logger.debug("Fetched %d patient records from server", len(records))
        return records

    def fetch_appointments(self) -> list[dict]:
        try:
            data = self._get("/api/appointments")
        except SyncError as e:
            logger.error("Error fetching appointments: %s", e)
            return []
        if not isinstance(data, dict):
            return []
        return data.get("appointments") or []

    def check_health(self) -> dict | None:
        """Return the server's health payload, or None if it is unreachable."""
        try:
            return self._get("/api/health")
        except SyncError as e:
            logger.error("Server is not running: %s", e)
            return None
