from .connection import get_connection, init_local_store
from .document_store import DocumentStore, UnknownSyncTypeError
from .local_store import LocalStore

__all__ = ["get_connection", "init_local_store", "DocumentStore", "UnknownSyncTypeError", "LocalStore"]
