"""Connection manager for the per-device SQLite local store."""

import os
import sqlite3
from pathlib import Path

from dotenv import load_dotenv

from .schema import LOCAL_SCHEMA

load_dotenv(override=True)

DB_PATH = Path(os.environ.get("PD_LOCAL_DB", Path(__file__).parent.parent / "local_store.db"))


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """Get a local store connection with row factory enabled."""
    conn = sqlite3.connect(db_path or DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_local_store(db_path: str | Path | None = None) -> None:
    """Initialize the local store with schema."""
    conn = get_connection(db_path)
    conn.executescript(LOCAL_SCHEMA)
    conn.commit()
    conn.close()
