"""
Patients router - patient management endpoints.

This router handles patient CRUD operations via RESTful endpoints.
All endpoints require API key authentication.

Architecture:
    HTTP Request → Router (this file) → PatientService → PatientRepository → Database

Error responses:
    Domain exceptions raised by PatientService (PatientValidationError,
    EmailConflictError, PatientNotFoundError) are converted to 400/409/404
    JSON responses by the handlers registered in core.exceptions.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status

from schemas import PatientCreate, PatientUpdate, PatientResponse
from services import PatientService
from core.auth import verify_api_key
from core.dependencies import get_patient_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/patients",
    tags=["Patients"],
    dependencies=[Depends(verify_api_key)],
)


# =============================================================================
# ENDPOINTS
# =============================================================================
# Services are injected via Depends(); no module-level instantiation.
# Handlers are plain functions: PatientService does blocking SQLite I/O, so
# FastAPI runs them in its threadpool instead of on the event loop.

@router.get(
    "",
    response_model=List[PatientResponse],
    summary="List all patients",
    description="Retrieve all patients in the order they were created."
)
def list_patients(
    patient_service: PatientService = Depends(get_patient_service)
):
    """
    Get all patients.

    Returns id, name, email, address and dateOfBirth for each patient.
    """
    return patient_service.list_patients()


@router.get(
    "/{patient_id}",
    response_model=PatientResponse,
    summary="Get a patient",
    description="Retrieve a single patient by id."
)
def get_patient(
    patient_id: str,
    patient_service: PatientService = Depends(get_patient_service)
):
    """
    Get one patient.

    Raises 404 Not Found if no patient has this id.
    """
    return patient_service.get_patient(patient_id)


@router.post(
    "",
    response_model=PatientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new patient",
    description="Add a new patient. All fields are required and the email must be unique. "
                "registeredDate is stored but not returned."
)
def create_patient(
    patient: PatientCreate,
    patient_service: PatientService = Depends(get_patient_service)
):
    """
    Create a new patient.

    - **name**: Full name (required)
    - **email**: Valid, unique email address (required)
    - **address**: Postal address (required)
    - **dateOfBirth**: YYYY-MM-DD, not in the future (required)
    - **registeredDate**: YYYY-MM-DD onboarding date (required, write-once)

    Raises 400 Bad Request listing every invalid field, or 409 Conflict if
    the email is already registered.
    """
    return patient_service.create_patient(patient)


@router.put(
    "/{patient_id}",
    response_model=PatientResponse,
    summary="Update a patient",
    description="Replace a patient's name, email, address and dateOfBirth. "
                "All four fields must be supplied; registeredDate cannot be changed."
)
def update_patient(
    patient_id: str,
    patient: PatientUpdate,
    patient_service: PatientService = Depends(get_patient_service)
):
    """
    Update an existing patient.

    Raises 404 Not Found for unknown ids, 400 Bad Request for invalid
    fields and 409 Conflict if the new email belongs to another patient.
    """
    return patient_service.update_patient(patient_id, patient)


@router.delete(
    "/{patient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a patient",
    description="Permanently remove a patient."
)
def delete_patient(
    patient_id: str,
    patient_service: PatientService = Depends(get_patient_service)
):
    """
    Delete a patient.

    Raises 404 Not Found if no patient has this id.
    """
    patient_service.delete_patient(patient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
