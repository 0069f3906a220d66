"""Tests for admin deletions."""

import pytest

from pd_diagnosys_portal.accounts import AccountService
from pd_diagnosys_portal.admin_actions import AdminActions


@pytest.fixture
def seeded(local_store, recording_sync):
    accounts = AccountService(local_store, recording_sync)
    doctor = accounts.register("dr@email.com", "pw", "Dr. D", "doctor")
    patient = accounts.register("ann@email.com", "pw", "Ann", "patient")
    recording_sync.events.clear()
    return doctor, patient


@pytest.fixture
def admin(local_store, recording_sync):
    return AdminActions(local_store, recording_sync)


class TestAdminActions:
    """Tests for AdminActions."""

    def test_list_doctors(self, admin, seeded):
        doctor, _ = seeded
        assert admin.list_doctors() == [doctor]

    def test_delete_patient(self, admin, seeded, local_store, recording_sync):
        _, patient = seeded
        assert admin.delete_patient(patient.id, patient.name) is True

        assert local_store.get_patient_records() == []
        assert all(u["id"] != patient.id for u in local_store.get_users())
        event = recording_sync.of_type("delete_patient")[0]
        assert event["patientId"] == patient.id
        assert event["patientName"] == "Ann"

    def test_delete_doctor_cascades(self, admin, seeded, local_store, recording_sync):
        doctor, patient = seeded
        records = local_store.get_patient_records()
        records.append({"id": "stray", "patientId": doctor.id})
        local_store.save_patient_records(records)

        assert admin.delete_doctor(doctor.id, doctor.name) is True

        assert local_store.get_qr_codes() == []
        assert [r["patientId"] for r in local_store.get_patient_records()] == [patient.id]
        assert admin.list_doctors() == []
        assert recording_sync.of_type("delete_doctor")[0]["doctorId"] == doctor.id

    def test_delete_qrcode(self, admin, seeded, local_store, recording_sync):
        qr = local_store.get_qr_codes()[0]
        assert admin.delete_qrcode(qr["id"]) is True
        assert local_store.get_qr_codes() == []
        event = recording_sync.of_type("delete_qrcode")[0]
        assert event["qrCodeId"] == qr["id"]
        assert event["doctorName"] == "Dr. D"

    def test_delete_missing_qrcode(self, admin, seeded, recording_sync):
        assert admin.delete_qrcode("QR_missing") is False
        assert recording_sync.events == []

    def test_sync_failure_reported(self, admin, seeded, local_store, recording_sync):
        _, patient = seeded
        recording_sync.result = False
        assert admin.delete_patient(patient.id, patient.name) is False
        # Local deletion happens regardless
        assert local_store.get_patient_records() == []
