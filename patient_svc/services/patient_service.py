"""
Service layer for patient operations.

This service contains business logic for patient management
and orchestrates calls to repositories.

Architecture:
    API Layer (routers) → PatientService → PatientRepository → Database

Dependency Injection:
    PatientService receives its repository (and optional event publisher)
    via constructor injection. Use core.dependencies.get_patient_service()
    in routers with Depends().

Email uniqueness is enforced in two layers:
    1. A pre-check against the repository gives a fast, friendly
       EmailConflictError before any write.
    2. The store's UNIQUE constraint on email is the actual guarantee.
       Two concurrent requests can both pass the pre-check; the second
       write is then rejected by the store and the repository reports it
       as the same EmailConflictError.
    No locks are held across the check-then-write window.
"""
import logging
import uuid
from typing import List, Optional

from repositories import PatientRepository
from schemas import PatientCreate, PatientUpdate, PatientResponse
from mappers import to_entity, apply_update, to_response
from services.event_publisher import PatientEvent, PatientEventPublisher
from services.validators import validate_patient_payload, ValidationMode
from core.exceptions import (
    PatientNotFoundError,
    EmailConflictError,
    PatientValidationError,
)

logger = logging.getLogger(__name__)


class PatientService:
    """
    Service layer for patient operations.

    Handles validation, email uniqueness and coordination with the
    repository layer. Holds no state besides its collaborators.
    """

    def __init__(
        self,
        patient_repository: PatientRepository,
        event_publisher: Optional[PatientEventPublisher] = None
    ):
        """
        Initialize the patient service.

        Args:
            patient_repository: PatientRepository instance for data access.
                               Injected via core.dependencies.get_patient_service().
            event_publisher: Optional sink for post-commit lifecycle events.
        """
        self._repo = patient_repository
        self._events = event_publisher

    def _notify(self, event: PatientEvent, patient_id: str, patient=None) -> None:
        if self._events is not None:
            self._events.publish(event, patient_id, patient)

    def list_patients(self) -> List[PatientResponse]:
        """
        Get all patients.

        Returns:
            List of PatientResponse objects in insertion order.
        """
        return [to_response(p) for p in self._repo.find_all()]

    def get_patient(self, patient_id: str) -> PatientResponse:
        """
        Get a patient by id.

        Raises:
            PatientNotFoundError: If no patient with this id exists.
        """
        patient = self._repo.find_by_id(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id=patient_id)
        return to_response(patient)

    def create_patient(self, request: PatientCreate) -> PatientResponse:
        """
        Create a new patient.

        Args:
            request: Create payload including registeredDate.

        Returns:
            PatientResponse: The created patient (without registeredDate).

        Raises:
            PatientValidationError: If any field fails the create rules.
            EmailConflictError: If another patient already holds the email.
        """
        errors = validate_patient_payload(request.to_payload(), ValidationMode.CREATE)
        if errors:
            logger.info("Rejected patient create", extra={"invalid_fields": list(errors)})
            raise PatientValidationError(errors)

        patient = to_entity(request, patient_id=str(uuid.uuid4()))
        if self._repo.exists_by_email(patient.email):
            logger.warning("Patient email already registered", extra={"email": patient.email})
            raise EmailConflictError(email=patient.email)

        # Raises EmailConflictError if a concurrent writer took the email first
        created = self._repo.insert(patient)

        logger.info("Patient created", extra={"patient_id": created.id})
        self._notify(PatientEvent.CREATED, created.id, created)
        return to_response(created)

    def update_patient(self, patient_id: str, request: PatientUpdate) -> PatientResponse:
        """
        Replace the updatable fields of an existing patient.

        id and registeredDate are preserved. The email is re-checked for
        uniqueness only when it changes.

        Raises:
            PatientNotFoundError: If no patient with this id exists.
            PatientValidationError: If any field fails the update rules.
            EmailConflictError: If the new email belongs to another patient.
        """
        current = self._repo.find_by_id(patient_id)
        if current is None:
            raise PatientNotFoundError(patient_id=patient_id)

        errors = validate_patient_payload(request.to_payload(), ValidationMode.UPDATE)
        if errors:
            logger.info(
                "Rejected patient update",
                extra={"patient_id": patient_id, "invalid_fields": list(errors)}
            )
            raise PatientValidationError(errors)

        updated = apply_update(current, request)
        if updated.email != current.email:
            holder = self._repo.find_by_email(updated.email)
            if holder is not None and holder.id != patient_id:
                logger.warning(
                    "Patient email already registered",
                    extra={"patient_id": patient_id, "email": updated.email}
                )
                raise EmailConflictError(email=updated.email)

        # Raises EmailConflictError if a concurrent writer took the email first
        if not self._repo.update(updated):
            # Deleted between the read above and this write
            raise PatientNotFoundError(patient_id=patient_id)

        logger.info("Patient updated", extra={"patient_id": patient_id})
        self._notify(PatientEvent.UPDATED, patient_id, updated)
        return to_response(updated)

    def delete_patient(self, patient_id: str) -> None:
        """
        Permanently delete a patient.

        Raises:
            PatientNotFoundError: If no patient with this id exists.
        """
        if not self._repo.delete_by_id(patient_id):
            raise PatientNotFoundError(patient_id=patient_id)

        logger.info("Patient deleted", extra={"patient_id": patient_id})
        self._notify(PatientEvent.DELETED, patient_id)
