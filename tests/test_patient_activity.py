"""Tests for analyses and appointment requests."""

import pytest

from pd_diagnosys_portal.accounts import AccountService
from pd_diagnosys_portal.image_analysis import analyze_images
from pd_diagnosys_portal.patient_activity import AppointmentError, PatientActivity
from pd_diagnosys_portal.records import User

NOW = "2025-06-01T12:00:00.000Z"


@pytest.fixture
def patient(local_store, recording_sync):
    user = AccountService(local_store, recording_sync).register("ann@email.com", "pw", "Ann", "patient")
    recording_sync.events.clear()
    return user


@pytest.fixture
def activity(local_store, recording_sync):
    return PatientActivity(local_store, recording_sync, clock=lambda: NOW)


class TestRecordAnalysis:
    """Tests for PatientActivity.record_analysis."""

    def test_increments_and_marks_busy(self, activity, patient, local_store, recording_sync):
        summary = analyze_images(["hap_PD.jpg"])
        activity.record_analysis(patient, summary)
        record = activity.record_analysis(patient)

        assert record["totalAnalyses"] == 2
        assert record["status"] == "busy"
        assert record["lastLogin"] == NOW
        assert record["lastAnalysis"] == NOW
        assert local_store.get_patient_records()[0] == record
        assert len(recording_sync.of_type("patient_record")) == 2

    def test_doctor_is_ignored(self, activity, recording_sync):
        doctor = User(id="d1", email="d@x.com", name="Dr", userType="doctor", createdAt="t")
        assert activity.record_analysis(doctor) is None
        assert recording_sync.events == []


class TestBookAppointment:
    """Tests for PatientActivity.book_appointment."""

    def test_syncs_appointment_then_record(self, activity, patient, local_store, recording_sync):
        assert activity.book_appointment(patient) is True

        assert [kind for kind, _ in recording_sync.events] == ["appointment", "patient_record"]
        appointment = recording_sync.of_type("appointment")[0]
        assert appointment == {
            "patientId": patient.id,
            "patientName": "Ann",
            "patientEmail": "ann@email.com",
            "status": "book_appointment",
            "timestamp": NOW,
        }
        record = local_store.get_patient_records()[0]
        assert record["status"] == "book_appointment"
        assert record["appointmentRequestedAt"] == NOW

    def test_offline_request_saved_locally(self, activity, patient, local_store, recording_sync):
        recording_sync.result = False
        assert activity.book_appointment(patient) is False
        assert local_store.get_patient_records()[0]["status"] == "book_appointment"

    def test_doctor_cannot_book(self, activity):
        doctor = User(id="d1", email="d@x.com", name="Dr", userType="doctor", createdAt="t")
        with pytest.raises(AppointmentError):
            activity.book_appointment(doctor)

    def test_missing_record(self, activity):
        ghost = User(id="p9", email="g@x.com", name="Ghost", userType="patient", createdAt="t")
        with pytest.raises(AppointmentError, match="not found"):
            activity.book_appointment(ghost)
