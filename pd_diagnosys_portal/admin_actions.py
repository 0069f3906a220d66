"""Admin dashboard actions: listing doctors and deleting accounts or QR codes."""

import logging

from pd_diagnosys_portal.qr_codes import delete_qr_code
from pd_diagnosys_portal.records import User, UserType
from pd_diagnosys_portal.storage import LocalStore
from pd_diagnosys_portal.sync_client import SyncOperations

logger = logging.getLogger(__name__)


class AdminActions:
    """Destructive admin operations, applied locally then synced."""

    def __init__(self, store: LocalStore, sync: SyncOperations):
        self.store = store
        self.sync = sync

    def list_doctors(self) -> list[User]:
        return [
            User.from_dict(u) for u in self.store.get_users()
            if u.get("userType") == UserType.DOCTOR.value
        ]

    def delete_patient(self, patient_id: str, patient_name: str) -> bool:
        """Remove a patient's records and account. Returns the sync outcome."""
        records = self.store.get_patient_records()
        remaining = [r for r in records if r.get("id") != patient_id and r.get("patientId") != patient_id]
        logger.info("Patient records: %d -> %d", len(records), len(remaining))
        self.store.save_patient_records(remaining)

        users = self.store.get_users()
        self.store.save_users([u for u in users if u.get("id") != patient_id])

        return self.sync.sync_delete_patient(patient_id, patient_name)

    def delete_doctor(self, doctor_id: str, doctor_name: str) -> bool:
        """Remove a doctor's account, QR codes and any records tagged with their id."""
        users = self.store.get_users()
        self.store.save_users([u for u in users if u.get("id") != doctor_id])

        qr_codes = self.store.get_qr_codes()
        self.store.save_qr_codes([qr for qr in qr_codes if qr.get("doctorId") != doctor_id])

        records = self.store.get_patient_records()
        self.store.save_patient_records([r for r in records if r.get("patientId") != doctor_id])

        return self.sync.sync_delete_doctor(doctor_id, doctor_name)

    def delete_qrcode(self, qr_code_id: str) -> bool:
        """Remove a QR code. Returns False if it did not exist or sync failed."""
        removed = delete_qr_code(self.store, qr_code_id)
        if removed is None:
            return False
        return self.sync.sync_delete_qrcode(qr_code_id, removed.get("doctorName", ""))
