"""Seed a local store with demo doctors and patients and push them to the sync server."""

import sys

from pd_diagnosys_portal.accounts import AccountService
from pd_diagnosys_portal.image_analysis import analyze_images
from pd_diagnosys_portal.outbox import Outbox
from pd_diagnosys_portal.patient_activity import PatientActivity
from pd_diagnosys_portal.records import UserType
from pd_diagnosys_portal.storage import LocalStore
from pd_diagnosys_portal.sync_client import SERVER_URL, SyncClient


DEMO_DOCTORS = [
    {"email": "dr.rao@pddiagnosys.com", "password": "doctor123", "name": "Dr. Anita Rao"},
    {"email": "dr.okafor@pddiagnosys.com", "password": "doctor123", "name": "Dr. Chidi Okafor"},
]

DEMO_PATIENTS = [
    {"email": "maria.lopez@email.com", "password": "patient123", "name": "Maria Lopez"},
    {"email": "james.wong@email.com", "password": "patient123", "name": "James Wong"},
    {"email": "priya.nair@email.com", "password": "patient123", "name": "Priya Nair"},
]

# Filenames encode the mock diagnosis for each demo patient
DEMO_UPLOADS = {
    "maria.lopez@email.com": ["ang+_PD.jpg", "dis_PD.jpg", "fea++_PD.jpg", "hap_NPD.jpg", "sad+_PD.jpg", "sup_PD.jpg"],
    "james.wong@email.com": ["ang_NPD.jpg", "dis_NPD.jpg", "fea_NPD.jpg", "hap+++_NPD.jpg", "sad_NPD.jpg", "sup_NPD.jpg"],
}

# Patients who request an appointment after their analysis
DEMO_APPOINTMENTS = ["maria.lopez@email.com"]


def seed_demo_data(server_url: str = SERVER_URL, db_path: str | None = None) -> None:
    """Register demo accounts and record some activity."""
    print("Initializing local store...")
    store = LocalStore(db_path)
    outbox = Outbox(store, SyncClient(server_url))
    accounts = AccountService(store, outbox)
    activity = PatientActivity(store, outbox)

    existing = {u["email"] for u in store.get_users()}

    print("Creating demo doctors...")
    for doctor in DEMO_DOCTORS:
        if doctor["email"] in existing:
            print(f"  Skipping {doctor['name']} (already exists)")
            continue
        accounts.register(doctor["email"], doctor["password"], doctor["name"], UserType.DOCTOR.value)
        accounts.logout()
        print(f"  Created {doctor['name']}")

    print("Creating demo patients...")
    for patient in DEMO_PATIENTS:
        if patient["email"] in existing:
            print(f"  Skipping {patient['name']} (already exists)")
            continue
        user = accounts.register(patient["email"], patient["password"], patient["name"], UserType.PATIENT.value)

        uploads = DEMO_UPLOADS.get(patient["email"])
        if uploads:
            summary = analyze_images(uploads, {"name": user.name, "email": user.email, "userType": user.userType})
            activity.record_analysis(user, summary)
            print(f"  Recorded analysis for {user.name}: {summary.diagnosis} ({summary.confidence}%)")

        if patient["email"] in DEMO_APPOINTMENTS:
            activity.book_appointment(user)
            print(f"  Requested appointment for {user.name}")

        accounts.logout()
        print(f"  Created {patient['name']}")

    print("\nDemo data seeded successfully!")
    print(f"  - {len(DEMO_DOCTORS)} doctors")
    print(f"  - {len(DEMO_PATIENTS)} patients")
    print(f"  - {len(store.get_qr_codes())} QR codes")

    print("\nPushing to sync server...")
    delivered = outbox.flush()
    pending = len(outbox.pending())
    print(f"  Delivered {delivered} events")
    if pending:
        print(f"  {pending} events still pending, run again once the server is up")


if __name__ == "__main__":
    seed_demo_data(*sys.argv[1:2])
