"""Tests for the sync server HTTP contract."""

import json

from pd_diagnosys_portal.server import create_app
from pd_diagnosys_portal.storage import DocumentStore


def post_sync(client, sync_type, data, timestamp="2025-01-01T00:00:00.000Z"):
    return client.post("/api/sync", json={"type": sync_type, "data": data, "timestamp": timestamp})


class TestSyncEndpoint:
    """Tests for POST /api/sync."""

    def test_patient_record_success(self, client):
        response = post_sync(client, "patient_record", {"id": "p1", "patientId": "p1", "status": "available"})
        assert response.status_code == 200
        assert response.get_json() == {"success": True, "message": "Synced patient_record"}

    def test_unknown_type_is_rejected(self, client, data_file):
        post_sync(client, "patient_record", {"id": "p1", "patientId": "p1"})
        before = data_file.read_bytes()

        response = post_sync(client, "bogus", {"id": "p1"})

        assert response.status_code == 400
        assert response.get_json() == {"error": "Unknown sync type"}
        assert data_file.read_bytes() == before

    def test_non_object_body_is_rejected(self, client):
        response = client.post("/api/sync", data="not json", content_type="application/json")
        assert response.status_code == 400
        assert response.get_json() == {"error": "Invalid sync payload"}

    def test_missing_type_is_rejected(self, client):
        response = client.post("/api/sync", json={"data": {}})
        assert response.status_code == 400
        assert response.get_json() == {"error": "Invalid sync payload"}

    def test_data_must_be_object(self, client):
        response = client.post("/api/sync", json={"type": "login", "data": ["x"]})
        assert response.status_code == 400

    def test_store_failure_returns_500(self, client, document_store, monkeypatch):
        def explode(event):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(document_store, "apply", explode)
        response = post_sync(client, "login", {"userId": "u1"})
        assert response.status_code == 500
        assert response.get_json() == {"error": "Internal server error"}

    def test_cors_header_present(self, client):
        response = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        # Older flask-cors sends "*", newer releases echo the origin
        assert response.headers.get("Access-Control-Allow-Origin") in {"*", "http://localhost:5173"}


class TestReadEndpoints:
    """Tests for the GET endpoints."""

    def test_empty_records(self, client):
        response = client.get("/api/patient-records")
        assert response.status_code == 200
        assert response.get_json() == {"records": []}

    def test_empty_appointments(self, client):
        response = client.get("/api/appointments")
        assert response.get_json() == {"appointments": []}

    def test_health(self, client):
        body = client.get("/api/health").get_json()
        assert body["status"] == "ok"
        assert body["timestamp"].endswith("Z")

    def test_records_are_returned_after_sync(self, client):
        post_sync(client, "patient_record", {"id": "p1", "patientId": "p1", "totalAnalyses": 2})
        records = client.get("/api/patient-records").get_json()["records"]
        assert records == [{"id": "p1", "patientId": "p1", "totalAnalyses": 2}]


class TestEndToEnd:
    """A patient device and a doctor dashboard sharing one server."""

    def test_appointment_visible_to_second_client(self, document_store):
        app = create_app(document_store)
        patient_device = app.test_client()
        doctor_dashboard = app.test_client()

        post_sync(patient_device, "patient_record", {
            "id": "p1",
            "patientId": "p1",
            "patientName": "Maria Lopez",
            "patientEmail": "maria@email.com",
            "status": "available",
            "totalAnalyses": 1,
        })
        post_sync(patient_device, "appointment", {
            "patientId": "p1",
            "patientName": "Maria Lopez",
            "patientEmail": "maria@email.com",
            "status": "book_appointment",
            "timestamp": "2025-02-02T10:00:00.000Z",
        })

        records = doctor_dashboard.get("/api/patient-records").get_json()["records"]
        assert len(records) == 1
        assert records[0]["status"] == "book_appointment"
        assert records[0]["appointmentRequestedAt"] == "2025-02-02T10:00:00.000Z"

        appointments = doctor_dashboard.get("/api/appointments").get_json()["appointments"]
        assert len(appointments) == 1
        assert appointments[0]["patientId"] == "p1"
        assert appointments[0]["timestamp"] == "2025-02-02T10:00:00.000Z"

    def test_document_survives_restart(self, data_file):
        store = DocumentStore(data_file)
        store.load()
        client = create_app(store).test_client()
        post_sync(client, "patient_record", {"id": "p1", "patientId": "p1"})
        post_sync(client, "login", {"userId": "p1", "timestamp": "t"})

        restarted = DocumentStore(data_file)
        restarted.load()
        records = create_app(restarted).test_client().get("/api/patient-records").get_json()["records"]
        assert records == [{"id": "p1", "patientId": "p1"}]
        assert json.loads(data_file.read_text())["loginLogs"][0]["userId"] == "p1"
