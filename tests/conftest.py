import sqlite3
from pathlib import Path

import pytest

from storage.sqlite_backend import SQLiteBackend


class FailingBackend:
    """Stands in for a store whose every insert fails."""

    def __init__(self, exc=None):
        self.exc = exc or sqlite3.OperationalError("database is locked")
        self.attempts = 0

    def connect(self):
        pass

    def insert_event(self, record):
        self.attempts += 1
        raise self.exc

    def close(self):
        pass


class RecordingBackend:
    def __init__(self):
        self.records = []

    def connect(self):
        pass

    def insert_event(self, record):
        self.records.append(record)

    def close(self):
        pass


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "understanding.db"


@pytest.fixture
def backend(db_path):
    b = SQLiteBackend(db_path=str(db_path))
    b.connect()
    yield b
    b.close()


@pytest.fixture
def fetch_rows(db_path):
    def _fetch():
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        try:
            return [dict(r) for r in conn.execute("SELECT * FROM understanding_data ORDER BY rowid")]
        finally:
            conn.close()

    return _fetch
