"""Shared pytest fixtures."""

import pytest
import requests
from unittest.mock import patch

from pd_diagnosys_portal.server import create_app
from pd_diagnosys_portal.storage import DocumentStore, LocalStore
from pd_diagnosys_portal.sync_client import SyncOperations


class RecordingSync(SyncOperations):
    """Sync sink that records events instead of sending them."""

    def __init__(self, result: bool = True):
        self.result = result
        self.events = []
        self.server_records = []

    def sync_to_server(self, sync_type, data):
        self.events.append((sync_type, data))
        return self.result

    def of_type(self, sync_type):
        return [data for kind, data in self.events if kind == sync_type]

    def fetch_patient_records(self):
        return list(self.server_records)


@pytest.fixture(autouse=True)
def no_network():
    """Fail any real HTTP call made through the sync client."""
    with patch("pd_diagnosys_portal.sync_client.requests.post") as mock_post, \
         patch("pd_diagnosys_portal.sync_client.requests.get") as mock_get:
        mock_post.side_effect = requests.exceptions.ConnectionError("network disabled in tests")
        mock_get.side_effect = requests.exceptions.ConnectionError("network disabled in tests")
        yield


@pytest.fixture
def local_store(tmp_path):
    """A fresh per-device store."""
    return LocalStore(tmp_path / "local_store.db")


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "server-data.json"


@pytest.fixture
def document_store(data_file):
    """A loaded server document store on a temp file."""
    store = DocumentStore(data_file)
    store.load()
    return store


@pytest.fixture
def client(document_store):
    """Flask test client for the sync server."""
    app = create_app(document_store)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def recording_sync():
    return RecordingSync()
