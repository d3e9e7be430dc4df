"""
SQLite storage for patients: schema and connection factory.

Construct through core.dependencies.get_database() in the application;
tests build their own Database on a temporary file.
"""
import sqlite3
import logging
from pathlib import Path
from typing import Optional

from core.config import DATABASE_PATH, DATABASE_BUSY_TIMEOUT

logger = logging.getLogger(__name__)

# Dates are YYYY-MM-DD text and created_at is ISO 8601 UTC. The implicit
# rowid is kept and gives insertion order. uq_patients_email is what makes
# email uniqueness hold across concurrent writers.
PATIENTS_DDL = """
    CREATE TABLE IF NOT EXISTS patients (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT NOT NULL,
        address TEXT NOT NULL,
        date_of_birth TEXT NOT NULL,
        registered_date TEXT NOT NULL,
        created_at TEXT NOT NULL,
        CONSTRAINT uq_patients_email UNIQUE (email)
    )
"""


class Database:
    """
    Hands out configured SQLite connections for one database file.

    The file is put in WAL mode once, at construction, together with the
    patients schema. Every connection gets the configured busy timeout so
    concurrent writers wait for the lock instead of failing.
    """

    def __init__(self, db_path: Optional[str] = None, busy_timeout: Optional[int] = None):
        """
        Args:
            db_path: SQLite file. Defaults to PATIENT_SVC_DB_DIR/PATIENT_SVC_DB_FILE.
            busy_timeout: Lock wait in milliseconds. Defaults to PATIENT_SVC_DB_BUSY_TIMEOUT.
        """
        self.db_path = db_path or DATABASE_PATH
        self.busy_timeout = DATABASE_BUSY_TIMEOUT if busy_timeout is None else busy_timeout

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._create_schema()

    def get_connection(self) -> sqlite3.Connection:
        """
        Open a new connection. The caller owns it and must close it.
        """
        conn = sqlite3.connect(self.db_path)
        conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout)}")
        return conn

    def _create_schema(self) -> None:
        conn = self.get_connection()
        try:
            journal_mode = conn.execute("PRAGMA journal_mode = WAL").fetchone()[0]
            if journal_mode.lower() != "wal":
                logger.warning(
                    "SQLite WAL mode not available",
                    extra={"db_path": self.db_path, "journal_mode": journal_mode}
                )
            conn.execute(PATIENTS_DDL)
            conn.commit()
        finally:
            conn.close()

        logger.info(
            "Patient database ready",
            extra={"db_path": self.db_path, "busy_timeout_ms": self.busy_timeout}
        )
