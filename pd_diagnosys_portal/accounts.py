"""Account and session handling against the local store.

Credentials live in the local store in plaintext; this is a demo portal
with no security model. Every successful login, logout and patient
registration emits the matching sync event exactly once.
"""

import logging
import os
import time

from dotenv import load_dotenv

from pd_diagnosys_portal.records import (
    PatientStatus,
    User,
    UserType,
    new_patient_record,
    utc_now_iso,
)
from pd_diagnosys_portal.qr_codes import (
    create_doctor_qr_code,
    find_qr_code_by_session,
    parse_qr_code_string,
    update_qr_code_sign_in,
)
from pd_diagnosys_portal.storage import LocalStore
from pd_diagnosys_portal.sync_client import SyncOperations

load_dotenv(override=True)

ADMIN_EMAIL = os.environ.get("PD_ADMIN_EMAIL", "admin@pddiagnosys.com")
ADMIN_PASSWORD = os.environ.get("PD_ADMIN_PASSWORD", "admin123")
ADMIN_ID = "admin-001"
ADMIN_NAME = "System Administrator"

logger = logging.getLogger(__name__)


class QRLoginError(Exception):
    """Raised when a scanned QR code cannot be used to sign a doctor in."""
    pass


class AccountService:
    """Register, log in and log out users on this device."""

    def __init__(self, store: LocalStore, sync: SyncOperations, clock=utc_now_iso):
        self.store = store
        self.sync = sync
        self.clock = clock

    def current_user(self) -> User | None:
        data = self.store.get_current_user()
        return User.from_dict(data) if data else None

    def register(self, email: str, password: str, name: str, user_type: str) -> User | None:
        """Create a new account and sign it in. Returns None if not allowed."""
        users = self.store.get_users()
        if any(u.get("email") == email for u in users):
            return None
        if user_type == UserType.ADMIN.value:
            return None

        now = self.clock()
        new_user = {
            "id": self._new_user_id(users),
            "email": email,
            "password": password,
            "name": name,
            "userType": user_type,
            "createdAt": now,
        }
        users.append(new_user)
        self.store.save_users(users)

        user = User.from_dict(new_user)
        self.store.set_current_user(user.to_dict())

        if user_type == UserType.PATIENT.value:
            record = new_patient_record(user, now)
            records = self.store.get_patient_records()
            records.append(record)
            self.store.save_patient_records(records)
            self.sync.sync_patient_record(record)

        if user_type == UserType.DOCTOR.value:
            create_doctor_qr_code(self.store, user.id, user.name, user.email)

        logger.info("Registered %s %s", user_type, email)
        return user

    def login(self, email: str, password: str, user_type: str) -> User | None:
        """Sign a user in. Returns None on bad credentials."""
        if email == ADMIN_EMAIL and password == ADMIN_PASSWORD:
            admin = User(
                id=ADMIN_ID,
                email=ADMIN_EMAIL,
                name=ADMIN_NAME,
                userType=UserType.ADMIN.value,
                createdAt=self.clock(),
            )
            self._start_session(admin)
            return admin

        found = next(
            (
                u for u in self.store.get_users()
                if u.get("email") == email
                and u.get("password") == password
                and u.get("userType") == user_type
            ),
            None,
        )
        if not found:
            return None

        user = User.from_dict(found)
        self._start_session(user)

        if user_type == UserType.PATIENT.value:
            records = self.store.get_patient_records()
            for record in records:
                if record.get("patientId") == user.id:
                    record["lastLogin"] = self.clock()
                    record["status"] = PatientStatus.AVAILABLE.value
                    self.store.save_patient_records(records)
                    self.sync.sync_patient_record(record)
                    break

        return user

    def logout(self) -> None:
        user = self.current_user()
        self.store.clear_current_user()
        if user:
            self.sync.sync_logout(user, self.clock())

    def login_with_qr(self, qr_code_string: str) -> User:
        """Sign a doctor in from a scanned QR code."""
        parsed = parse_qr_code_string(qr_code_string)
        if not parsed:
            raise QRLoginError("This QR code is not valid for this system.")

        qr_code = find_qr_code_by_session(self.store, parsed["sessionId"])
        if qr_code:
            update_qr_code_sign_in(self.store, qr_code["id"])

        doctor = next(
            (
                u for u in self.store.get_users()
                if u.get("id") == parsed["doctorId"] and u.get("userType") == UserType.DOCTOR.value
            ),
            None,
        )
        if not doctor:
            raise QRLoginError("The doctor associated with this QR code was not found.")

        user = self.login(doctor["email"], doctor["password"], UserType.DOCTOR.value)
        if not user:
            raise QRLoginError("Could not log in with this QR code.")
        return user

    def _start_session(self, user: User) -> None:
        self.store.set_current_user(user.to_dict())
        self.sync.sync_login(user, self.clock())

    def _new_user_id(self, users: list[dict]) -> str:
        """Millisecond timestamp id, bumped if another user already holds it."""
        taken = {u.get("id") for u in users}
        candidate = int(time.time() * 1000)
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)
