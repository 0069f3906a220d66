"""Server document store: the shared JSON document behind the sync server."""

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from pd_diagnosys_portal.records import (
    PatientStatus,
    SyncEvent,
    SyncType,
    find_record_by_patient_id,
    find_record_index,
    merge_patient_record,
    utc_now_iso,
)
from .schema import DOCUMENT_KEYS, empty_document

logger = logging.getLogger(__name__)


class UnknownSyncTypeError(Exception):
    """Raised when a sync event carries a type the server does not handle."""
    pass


class DocumentStore:
    """Holds the server document in memory and flushes it to one JSON file.

    The document is loaded once by load() and written back wholesale after
    every mutation. Mutations are serialized by a lock, so concurrent request
    threads cannot drop each other's changes.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.document = empty_document()
        self._lock = threading.Lock()
        self._handlers = {
            SyncType.PATIENT_RECORD.value: self._apply_patient_record,
            SyncType.APPOINTMENT.value: self._apply_appointment,
            SyncType.LOGIN.value: self._apply_login,
            SyncType.LOGOUT.value: self._apply_logout,
            SyncType.DELETE_PATIENT.value: self._apply_delete_patient,
            SyncType.DELETE_DOCTOR.value: self._apply_delete_doctor,
            SyncType.DELETE_QRCODE.value: self._apply_delete_qrcode,
        }

    # Lifecycle

    def load(self) -> dict:
        """Load the document from disk, creating the file if absent.

        A file that cannot be read or parsed is left untouched and the store
        starts from the empty document shape.
        """
        with self._lock:
            if not self.path.exists():
                self.document = empty_document()
                self._write(self.document)
                logger.info("Initialized data file %s", self.path)
                return self.document

            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
                if not isinstance(loaded, dict):
                    raise ValueError("document root is not an object")
            except (OSError, ValueError) as e:
                logger.error("Error reading data file %s: %s", self.path, e)
                self.document = empty_document()
                return self.document

            for key in DOCUMENT_KEYS:
                if not isinstance(loaded.get(key), list):
                    loaded[key] = []
            self.document = loaded
            return self.document

    def flush(self) -> bool:
        """Write the current document to disk."""
        with self._lock:
            return self._write(self.document)

    def _write(self, document: dict) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".sync-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
            return True
        except OSError as e:
            logger.error("Error writing data file %s: %s", self.path, e)
            return False

    # Reads

    def patient_records(self) -> list[dict]:
        with self._lock:
            return copy.deepcopy(self.document["patientRecords"])

    def appointments(self) -> list[dict]:
        with self._lock:
            return copy.deepcopy(self.document["appointments"])

    def snapshot(self) -> dict:
        with self._lock:
            return copy.deepcopy(self.document)

    # Writes

    def apply(self, event: SyncEvent) -> str:
        """Apply one sync event and persist the document.

        Returns the success message. Unknown types raise UnknownSyncTypeError
        before anything is touched. A failed flush is logged; the in-memory
        document keeps the change.
        """
        handler = self._handlers.get(event.type)
        if handler is None:
            raise UnknownSyncTypeError(event.type)

        with self._lock:
            handler(event)
            if not self._write(self.document):
                logger.error("Sync %s applied in memory only; it will be lost on restart", event.type)
        return f"Synced {event.type}"

    def _event_timestamp(self, event: SyncEvent) -> str:
        return event.data.get("timestamp") or event.timestamp or utc_now_iso()

    def _apply_patient_record(self, event: SyncEvent) -> None:
        records = self.document["patientRecords"]
        index = find_record_index(records, event.data)
        if index >= 0:
            records[index] = merge_patient_record(records[index], event.data)
        else:
            records.append(dict(event.data))

    def _apply_appointment(self, event: SyncEvent) -> None:
        self.document["appointments"].append({
            **event.data,
            "timestamp": self._event_timestamp(event),
        })

        records = self.document["patientRecords"]
        index = find_record_by_patient_id(records, event.data.get("patientId"))
        if index >= 0:
            records[index]["status"] = PatientStatus.BOOK_APPOINTMENT.value
            records[index]["appointmentRequestedAt"] = event.data.get("timestamp") or utc_now_iso()

    def _apply_login(self, event: SyncEvent) -> None:
        self.document["loginLogs"].append({**event.data, "timestamp": self._event_timestamp(event)})

    def _apply_logout(self, event: SyncEvent) -> None:
        self.document["logoutLogs"].append({**event.data, "timestamp": self._event_timestamp(event)})

    def _apply_delete_patient(self, event: SyncEvent) -> None:
        patient_id = event.data.get("patientId")
        self.document["patientRecords"] = [
            r for r in self.document["patientRecords"]
            if r.get("id") != patient_id and r.get("patientId") != patient_id
        ]
        self._log_delete("patient", event)

    def _apply_delete_doctor(self, event: SyncEvent) -> None:
        # Clean up any records mis-tagged with the doctor's id
        doctor_id = event.data.get("doctorId")
        self.document["patientRecords"] = [
            r for r in self.document["patientRecords"]
            if r.get("patientId") != doctor_id
        ]
        self._log_delete("doctor", event)

    def _apply_delete_qrcode(self, event: SyncEvent) -> None:
        self._log_delete("qrcode", event)

    def _log_delete(self, kind: str, event: SyncEvent) -> None:
        self.document["deleteLogs"].append({
            **event.data,
            "type": kind,
            "timestamp": self._event_timestamp(event),
        })
