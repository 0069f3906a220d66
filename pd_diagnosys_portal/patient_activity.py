"""Patient-side actions that change a patient record: analyses and appointment requests."""

import logging

from pd_diagnosys_portal.image_analysis import AnalysisSummary
from pd_diagnosys_portal.records import PatientStatus, User, UserType, utc_now_iso
from pd_diagnosys_portal.storage import LocalStore
from pd_diagnosys_portal.sync_client import SyncOperations

logger = logging.getLogger(__name__)


class AppointmentError(Exception):
    """Raised when an appointment cannot be requested."""
    pass


class PatientActivity:
    """Record patient activity locally first, then sync it."""

    def __init__(self, store: LocalStore, sync: SyncOperations, clock=utc_now_iso):
        self.store = store
        self.sync = sync
        self.clock = clock

    def _find(self, records: list[dict], user: User) -> dict | None:
        return next((r for r in records if r.get("patientId") == user.id), None)

    def record_analysis(self, user: User, summary: AnalysisSummary | None = None) -> dict | None:
        """Count a completed analysis against the patient's record."""
        if user.userType != UserType.PATIENT.value:
            return None

        records = self.store.get_patient_records()
        record = self._find(records, user)
        if record is None:
            return None

        now = self.clock()
        record["lastLogin"] = now
        record["totalAnalyses"] = (record.get("totalAnalyses") or 0) + 1
        record["lastAnalysis"] = now
        record["status"] = PatientStatus.BUSY.value
        self.store.save_patient_records(records)

        if summary is not None:
            logger.info("Analysis for %s: %s (%.1f%%)", user.email, summary.diagnosis, summary.confidence)
        self.sync.sync_patient_record(record)
        return record

    def book_appointment(self, user: User) -> bool:
        """Request an appointment.

        The request is always saved locally. Returns True if both the
        appointment event and the updated record reached the server; False
        means it will reach the doctor once sync catches up.
        """
        if user.userType != UserType.PATIENT.value:
            raise AppointmentError("Only patients can book appointments.")

        records = self.store.get_patient_records()
        record = self._find(records, user)
        if record is None:
            raise AppointmentError("Patient record not found.")

        now = self.clock()
        record["status"] = PatientStatus.BOOK_APPOINTMENT.value
        record["appointmentRequestedAt"] = now
        self.store.save_patient_records(records)

        appointment_synced = self.sync.sync_appointment(
            patient_id=user.id,
            patient_name=user.name,
            patient_email=user.email,
            status=PatientStatus.BOOK_APPOINTMENT.value,
            timestamp=now,
        )
        record_synced = self.sync.sync_patient_record(record)

        if not (appointment_synced and record_synced):
            logger.warning("Appointment for %s saved locally, will sync later", user.email)
        return appointment_synced and record_synced
