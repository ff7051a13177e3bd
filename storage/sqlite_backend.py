import logging
import sqlite3
import threading
from typing import Any

from .base import StorageBackend, StorageInitError

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS understanding_data (
    ip_address TEXT,
    referrer TEXT,
    user_agent TEXT,
    dark_mode BOOLEAN,
    url TEXT,
    timestamp DATETIME,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""

INSERT_SQL = """
INSERT INTO understanding_data (ip_address, referrer, user_agent, dark_mode, url, timestamp)
VALUES (:ip_address, :referrer, :user_agent, :dark_mode, :url, :timestamp)
"""


class SQLiteBackend(StorageBackend):
    def __init__(self, db_path="understanding.db"):
        """
        SQLite backend for understanding events.
        :param db_path: Path to sqlite db file.
        """
        self.db_path = db_path
        self.conn = None
        # one connection shared by every request thread
        self._lock = threading.Lock()

    def connect(self):
        if self.conn is not None:
            return
        try:
            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._create_schema()
        except sqlite3.Error as e:
            self.close()
            raise StorageInitError(f"{self.db_path}: {e}") from e
        logger.info("Opened %s", self.db_path)

    def _create_schema(self):
        cur = self.conn.cursor()
        cur.execute(SCHEMA_SQL)
        self.conn.commit()

    def insert_event(self, record: dict[str, Any]) -> None:
        """Insert one row; `created_at` is filled in by the column default."""
        if self.conn is None:
            raise sqlite3.ProgrammingError("SQLiteBackend is not connected")
        with self._lock:
            try:
                self.conn.execute(INSERT_SQL, record)
                self.conn.commit()
            except sqlite3.Error:
                self.conn.rollback()
                raise

    def close(self):
        with self._lock:
            if self.conn:
                self.conn.close()
                self.conn = None
