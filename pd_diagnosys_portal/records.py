"""Shared entity types and merge rules for patient records and sync events."""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class UserType(Enum):
    """Roles a portal user can have."""
    DOCTOR = "doctor"
    PATIENT = "patient"
    ADMIN = "admin"


class PatientStatus(Enum):
    """Presence status shown on the dashboards."""
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"
    BOOK_APPOINTMENT = "book_appointment"
    ACTIVE = "active"


class SyncType(Enum):
    """Event types accepted by the sync server."""
    PATIENT_RECORD = "patient_record"
    APPOINTMENT = "appointment"
    LOGIN = "login"
    LOGOUT = "logout"
    DELETE_PATIENT = "delete_patient"
    DELETE_DOCTOR = "delete_doctor"
    DELETE_QRCODE = "delete_qrcode"


# Fields resolved as "incoming if present, else keep existing" during a merge
STICKY_MERGE_FIELDS = ("status", "appointmentRequestedAt")


class SyncEvent(BaseModel):
    """Envelope posted to /api/sync."""

    type: str = Field(..., description="One of the SyncType values")
    data: dict = Field(default_factory=dict, description="Event payload")
    timestamp: str | None = Field(None, description="ISO-8601 time the event was sent")


@dataclass
class User:
    id: str
    email: str
    name: str
    userType: str
    createdAt: str

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        """Build a User from a stored dict, ignoring extra keys like password."""
        return cls(
            id=data["id"],
            email=data["email"],
            name=data["name"],
            userType=data["userType"],
            createdAt=data.get("createdAt", ""),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def session_payload(self, timestamp: str) -> dict:
        """Payload for login/logout sync events."""
        return {
            "userId": self.id,
            "email": self.email,
            "name": self.name,
            "userType": self.userType,
            "timestamp": timestamp,
        }


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string with millisecond precision."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    return format_timestamp(utc_now())


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO-8601 string into an aware datetime, or None if unparseable."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def new_patient_record(user: User, now: str) -> dict:
    """Create the record every patient gets at registration."""
    return {
        "id": user.id,
        "patientId": user.id,
        "patientName": user.name,
        "patientEmail": user.email,
        "lastLogin": now,
        "status": PatientStatus.AVAILABLE.value,
        "totalAnalyses": 0,
    }


def records_match(record: dict, incoming: dict) -> bool:
    """Two records describe the same patient if id or patientId agree."""
    if record.get("id") is not None and record.get("id") == incoming.get("id"):
        return True
    return record.get("patientId") is not None and record.get("patientId") == incoming.get("patientId")


def find_record_index(records: list[dict], incoming: dict) -> int:
    """Index of the first record matching incoming by id or patientId, or -1."""
    for index, record in enumerate(records):
        if records_match(record, incoming):
            return index
    return -1


def find_record_by_patient_id(records: list[dict], patient_id: str) -> int:
    """Index of the record whose patientId or id equals patient_id, or -1."""
    if patient_id is None:
        return -1
    for index, record in enumerate(records):
        if record.get("patientId") == patient_id or record.get("id") == patient_id:
            return index
    return -1


def merge_patient_record(existing: dict, incoming: dict) -> dict:
    """Shallow-merge incoming over existing.

    Every field is overwritten by incoming, except status and
    appointmentRequestedAt which keep the existing value when incoming
    carries none.
    """
    merged = {**existing, **incoming}
    for key in STICKY_MERGE_FIELDS:
        value = incoming.get(key) or existing.get(key)
        if value:
            merged[key] = value
        else:
            merged.pop(key, None)
    return merged
