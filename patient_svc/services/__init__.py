"""
Service layer for business logic.

This module contains all business logic and orchestration services.
"""
from services.patient_service import PatientService
from services.event_publisher import PatientEvent, PatientEventPublisher

__all__ = [
    "PatientService",
    "PatientEvent",
    "PatientEventPublisher",
]
