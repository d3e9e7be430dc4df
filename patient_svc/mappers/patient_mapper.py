"""
Conversions between patient API schemas and the Patient domain model.

Pure functions: no I/O and no validation. Callers validate request payloads
before mapping them to an entity.

Emails are stored in the normalized form produced by email-validator
(trimmed, domain lowercased, Unicode NFC), so uniqueness is checked on that
form: ``John@Example.COM`` and ``John@example.com`` are the same address.
The local part keeps its case.
"""
from dataclasses import replace
from typing import Any, Dict

from email_validator import validate_email

from core.datetime_utils import format_date, parse_calendar_date
from models import Patient
from schemas import PatientCreate, PatientResponse, PatientUpdate


def _clean(value: str) -> str:
    return value.strip()


def normalize_email(value: str) -> str:
    return validate_email(value.strip(), check_deliverability=False).normalized


def to_entity(request: PatientCreate, patient_id: str) -> Patient:
    """
    Build a new Patient from a validated create request.

    The id always comes from the caller; clients never supply it.
    """
    return Patient(
        id=patient_id,
        name=_clean(request.name),
        email=normalize_email(request.email),
        address=_clean(request.address),
        date_of_birth=parse_calendar_date(request.date_of_birth),
        registered_date=parse_calendar_date(request.registered_date),
    )


def apply_update(patient: Patient, request: PatientUpdate) -> Patient:
    """
    Return a copy of ``patient`` with its updatable fields replaced.

    id, registered_date and created_at are carried over unchanged.
    """
    return replace(
        patient,
        name=_clean(request.name),
        email=normalize_email(request.email),
        address=_clean(request.address),
        date_of_birth=parse_calendar_date(request.date_of_birth),
    )


def to_response(patient: Patient) -> PatientResponse:
    """Convert a Patient to its externally visible shape (no registeredDate)."""
    return PatientResponse(
        id=patient.id,
        name=patient.name,
        email=patient.email,
        address=patient.address,
        date_of_birth=patient.date_of_birth,
    )


def to_event_payload(patient: Patient) -> Dict[str, Any]:
    """Serialize a Patient for downstream notifications."""
    return {
        "id": patient.id,
        "name": patient.name,
        "email": patient.email,
        "address": patient.address,
        "dateOfBirth": format_date(patient.date_of_birth),
        "registeredDate": format_date(patient.registered_date),
    }
