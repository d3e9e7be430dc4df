"""
Repository for patient database operations.

This module contains all database access for patient-related operations.

Architecture:
    PatientRepository is the data access layer for patients.
    It should be injected via core.dependencies.get_patient_repository().

All SQL is encapsulated in this repository - no SQL in service or API layers.

Email uniqueness:
    The patients table carries a UNIQUE constraint on email. That constraint
    is the correctness guarantee under concurrent writers; insert() and
    update() translate its violation into EmailConflictError so callers see
    the same outcome as the service-level pre-check.
"""
import sqlite3
import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, List, Optional

from repositories.base import Database
from models import Patient
from core.datetime_utils import utc_now
from core.exceptions import DatabaseError, EmailConflictError

logger = logging.getLogger(__name__)

PATIENT_COLUMNS = "id, name, email, address, date_of_birth, registered_date, created_at"


def _is_email_violation(exc: sqlite3.IntegrityError) -> bool:
    message = str(exc)
    return "patients.email" in message or "uq_patients_email" in message


class PatientRepository:
    """
    Repository for patient CRUD operations.

    This repository encapsulates all database operations for patients.
    Each public method runs in its own connection and transaction.
    """

    def __init__(self, db: Database):
        """
        Initialize the patient repository.

        Args:
            db: Database instance for data access.
                Injected via core.dependencies.get_patient_repository().
        """
        self._db = db

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Cursor]:
        """
        Yield a cursor inside a single transaction.

        Commits on success and rolls back on error. Driver errors other than
        the email constraint are raised as DatabaseError.
        """
        try:
            conn = self._db.get_connection()
        except sqlite3.Error as e:
            logger.error(f"Cannot open database for {operation}: {e}")
            raise DatabaseError(operation=operation) from e

        try:
            cursor = conn.cursor()
            yield cursor
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(
                f"Database error during {operation}: {e}",
                extra={"operation": operation}
            )
            raise DatabaseError(operation=operation) from e
        finally:
            conn.close()

    def find_by_id(self, patient_id: str) -> Optional[Patient]:
        """
        Get a patient by id.

        Returns:
            Optional[Patient]: The patient, or None if not found.
        """
        with self._transaction("find_by_id") as cursor:
            cursor.execute(
                f"SELECT {PATIENT_COLUMNS} FROM patients WHERE id = ?",
                (patient_id,)
            )
            row = cursor.fetchone()
        return Patient.from_row(row) if row else None

    def find_by_email(self, email: str) -> Optional[Patient]:
        """
        Get a patient by exact email.

        Returns:
            Optional[Patient]: The patient holding this email, or None.
        """
        with self._transaction("find_by_email") as cursor:
            cursor.execute(
                f"SELECT {PATIENT_COLUMNS} FROM patients WHERE email = ?",
                (email,)
            )
            row = cursor.fetchone()
        return Patient.from_row(row) if row else None

    def exists_by_email(self, email: str) -> bool:
        """Check whether any patient holds this email."""
        with self._transaction("exists_by_email") as cursor:
            cursor.execute("SELECT 1 FROM patients WHERE email = ? LIMIT 1", (email,))
            return cursor.fetchone() is not None

    def find_all(self) -> List[Patient]:
        """
        Get all patients in insertion order.

        Returns:
            List[Patient]: Every stored patient, oldest first.
        """
        with self._transaction("find_all") as cursor:
            cursor.execute(f"SELECT {PATIENT_COLUMNS} FROM patients ORDER BY rowid ASC")
            rows = cursor.fetchall()
        return [Patient.from_row(row) for row in rows]

    def insert(self, patient: Patient) -> Patient:
        """
        Insert a new patient and return it with its creation timestamp.

        Args:
            patient: Fully populated patient with a caller-assigned id.

        Returns:
            Patient: The stored patient.

        Raises:
            EmailConflictError: If the email is already held (UNIQUE constraint).
            DatabaseError: For any other storage failure.
        """
        # Stored with second precision, so keep the returned value identical to a re-read
        stored = replace(patient, created_at=utc_now().replace(microsecond=0))
        values = stored.to_dict()

        try:
            with self._transaction("insert") as cursor:
                cursor.execute(
                    f"INSERT INTO patients ({PATIENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        values["id"],
                        values["name"],
                        values["email"],
                        values["address"],
                        values["date_of_birth"],
                        values["registered_date"],
                        values["created_at"],
                    )
                )
        except sqlite3.IntegrityError as e:
            if _is_email_violation(e):
                logger.warning(
                    "Email UNIQUE constraint rejected insert",
                    extra={"patient_id": patient.id}
                )
                raise EmailConflictError(email=patient.email) from e
            logger.error(f"Integrity error inserting patient {patient.id}: {e}")
            raise DatabaseError(operation="insert") from e

        return stored

    def update(self, patient: Patient) -> bool:
        """
        Overwrite the mutable fields of an existing patient.

        id, registered_date and created_at are never written.

        Returns:
            bool: True if a row was updated, False if no patient has this id.

        Raises:
            EmailConflictError: If the new email is held by another patient.
            DatabaseError: For any other storage failure.
        """
        values = patient.to_dict()

        try:
            with self._transaction("update") as cursor:
                cursor.execute(
                    """
                    UPDATE patients
                    SET name = ?, email = ?, address = ?, date_of_birth = ?
                    WHERE id = ?
                    """,
                    (
                        values["name"],
                        values["email"],
                        values["address"],
                        values["date_of_birth"],
                        values["id"],
                    )
                )
                updated = cursor.rowcount > 0
        except sqlite3.IntegrityError as e:
            if _is_email_violation(e):
                logger.warning(
                    "Email UNIQUE constraint rejected update",
                    extra={"patient_id": patient.id}
                )
                raise EmailConflictError(email=patient.email) from e
            logger.error(f"Integrity error updating patient {patient.id}: {e}")
            raise DatabaseError(operation="update") from e

        return updated

    def delete_by_id(self, patient_id: str) -> bool:
        """
        Permanently remove a patient.

        Returns:
            bool: True if a row was deleted, False if no patient has this id.
        """
        with self._transaction("delete") as cursor:
            cursor.execute("DELETE FROM patients WHERE id = ?", (patient_id,))
            return cursor.rowcount > 0
