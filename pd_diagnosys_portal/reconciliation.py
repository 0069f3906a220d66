"""Periodic reconciliation of server and local patient records.

Both dashboards run the same pass every few seconds: pull the server's
records, merge them into the local copy, derive presence status from the
last login time, then store the result locally and push it back.
"""

import logging
import os
import threading
from datetime import datetime

from dotenv import load_dotenv

from pd_diagnosys_portal.records import (
    PatientStatus,
    find_record_index,
    merge_patient_record,
    parse_timestamp,
    utc_now,
)
from pd_diagnosys_portal.storage import LocalStore
from pd_diagnosys_portal.sync_client import SyncClient

load_dotenv(override=True)

REFRESH_INTERVAL = float(os.environ.get("DASHBOARD_REFRESH_SECONDS", "5"))
# Per-request timeout for dashboard pulls and pushes, kept well under REFRESH_INTERVAL
DASHBOARD_SYNC_TIMEOUT = float(os.environ.get("DASHBOARD_SYNC_TIMEOUT", "2"))

# Minutes since last login for each derived status
ACTIVE_WITHIN_MINUTES = 5
AVAILABLE_WITHIN_MINUTES = 15
OFFLINE_AFTER_MINUTES = 30

logger = logging.getLogger(__name__)


class PollingFeed:
    """Pull-based source of server records.

    Polls the full record list on every pull. Anything with a pull() method
    returning the server's records can stand in, e.g. a push subscription.
    """

    def __init__(self, client: SyncClient):
        self.client = client
        self.cursor: datetime | None = None

    def pull(self) -> list[dict]:
        records = self.client.fetch_patient_records()
        self.cursor = utc_now()
        return records


def merge_records(local_records: list[dict], server_records: list[dict]) -> list[dict]:
    """Overlay server records onto local ones, appending unknown patients."""
    merged = [dict(r) for r in local_records]
    for server_record in server_records:
        index = find_record_index(merged, server_record)
        if index >= 0:
            merged[index] = merge_patient_record(merged[index], server_record)
        else:
            merged.append(dict(server_record))
    return merged


def minutes_since(timestamp, now: datetime) -> float | None:
    moment = parse_timestamp(timestamp)
    if moment is None:
        return None
    return (now - moment).total_seconds() / 60


def derive_status(record: dict, now: datetime) -> dict:
    """Return a copy of record with status derived from lastLogin.

    book_appointment is never overridden here. A record without a usable
    lastLogin falls through to busy.
    """
    if record.get("status") == PatientStatus.BOOK_APPOINTMENT.value:
        return record

    minutes = minutes_since(record.get("lastLogin"), now)
    if minutes is None:
        status = PatientStatus.BUSY
    elif minutes > OFFLINE_AFTER_MINUTES:
        status = PatientStatus.OFFLINE
    elif minutes <= ACTIVE_WITHIN_MINUTES:
        status = PatientStatus.ACTIVE
    elif minutes <= AVAILABLE_WITHIN_MINUTES:
        status = PatientStatus.AVAILABLE
    else:
        status = PatientStatus.BUSY

    return {**record, "status": status.value}


class Reconciler:
    """One device's reconciliation loop."""

    def __init__(self, store: LocalStore, client: SyncClient, feed=None, clock=utc_now):
        self.store = store
        self.client = client
        self.feed = feed or PollingFeed(client)
        self.clock = clock

    def run_once(self) -> list[dict]:
        """Run a single pass and return the derived records."""
        server_records = self.feed.pull()
        local_records = self.store.get_patient_records()

        if server_records:
            records = merge_records(local_records, server_records)
            self.store.save_patient_records(records)
        else:
            # Empty may mean a cold server or a failed fetch; re-seed it from local
            records = local_records
            if local_records:
                logger.info("Server returned no records, pushing %d local records", len(local_records))
                self._push_all(local_records)

        now = self.clock()
        derived = [derive_status(r, now) for r in records]
        self.store.save_patient_records(derived)
        self._push_all(derived)
        return derived

    def _push_all(self, records: list[dict]) -> int:
        """Push each record independently; returns how many succeeded."""
        pushed = 0
        for record in records:
            try:
                if self.client.sync_patient_record(record):
                    pushed += 1
            except Exception:
                logger.exception("Failed to sync record %s", record.get("id"))
        if pushed < len(records):
            logger.warning("Pushed %d of %d records", pushed, len(records))
        return pushed

    def run_forever(self, stop_event: threading.Event, interval: float = REFRESH_INTERVAL, on_refresh=None) -> None:
        """Repeat run_once every interval seconds until stop_event is set."""
        while not stop_event.is_set():
            try:
                records = self.run_once()
                if on_refresh:
                    on_refresh(records)
            except Exception:
                logger.exception("Reconciliation pass failed")
            stop_event.wait(interval)
