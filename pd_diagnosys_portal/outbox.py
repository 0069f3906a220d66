"""Ordered outbox of pending sync events, flushed in the background with retry."""

import logging
import threading
import time
import uuid

from pd_diagnosys_portal.records import utc_now_iso
from pd_diagnosys_portal.storage import LocalStore
from pd_diagnosys_portal.sync_client import SyncClient, SyncError, SyncOperations

logger = logging.getLogger(__name__)


class Outbox(SyncOperations):
    """Queue sync events locally and deliver them in order.

    sync_to_server only enqueues, so UI actions never wait on the network.
    flush() sends events oldest first and stops at the first failure; the
    failing head is retried after an exponential backoff. Entries are kept in
    the local store so they survive a restart.
    """

    def __init__(
        self,
        store: LocalStore,
        client: SyncClient,
        max_attempts: int = 8,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        clock=time.monotonic,
    ):
        self.store = store
        self.client = client
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.clock = clock
        self._next_attempt_at = 0.0
        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def sync_to_server(self, sync_type: str, data: dict) -> bool:
        entry = {
            "id": str(uuid.uuid4()),
            "event": {"type": sync_type, "data": data, "timestamp": utc_now_iso()},
            "attempts": 0,
        }
        with self._lock:
            entries = self.store.get_outbox()
            entries.append(entry)
            self.store.save_outbox(entries)
        return True

    def pending(self) -> list[dict]:
        return self.store.get_outbox()

    def backoff_delay(self, attempts: int) -> float:
        """Delay before the next attempt after `attempts` failures."""
        return min(self.max_delay, self.base_delay * (2 ** max(0, attempts - 1)))

    def flush(self) -> int:
        """Deliver pending events in order. Returns how many were delivered.

        The queue lock is never held across a request.
        """
        with self._flush_lock:
            if self.clock() < self._next_attempt_at:
                return 0

            delivered = 0
            while True:
                with self._lock:
                    entries = self.store.get_outbox()
                if not entries:
                    self._next_attempt_at = 0.0
                    return delivered

                head = entries[0]
                try:
                    self.client.post_event(head["event"])
                except SyncError as e:
                    attempts = head["attempts"] + 1
                    if attempts >= self.max_attempts:
                        logger.error(
                            "Dropping %s event after %d attempts: %s",
                            head["event"]["type"], attempts, e,
                        )
                        self._remove(head["id"])
                        continue
                    self._set_attempts(head["id"], attempts)
                    delay = self.backoff_delay(attempts)
                    self._next_attempt_at = self.clock() + delay
                    logger.warning(
                        "Sync of %s failed (attempt %d), retrying in %.1fs: %s",
                        head["event"]["type"], attempts, delay, e,
                    )
                    return delivered

                self._remove(head["id"])
                delivered += 1

    def _remove(self, entry_id: str) -> None:
        with self._lock:
            entries = self.store.get_outbox()
            self.store.save_outbox([e for e in entries if e["id"] != entry_id])

    def _set_attempts(self, entry_id: str, attempts: int) -> None:
        with self._lock:
            entries = self.store.get_outbox()
            for entry in entries:
                if entry["id"] == entry_id:
                    entry["attempts"] = attempts
            self.store.save_outbox(entries)

    # Background delivery

    def start(self, interval: float = 1.0) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, args=(interval,), daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    def _run(self, interval: float) -> None:
        while not self._stop.is_set():
            try:
                self.flush()
            except Exception:
                logger.exception("Outbox flush failed")
            self._stop.wait(interval)
