"""
Dependency providers for the patient API.

Each provider takes its collaborators through ``Depends`` so FastAPI
resolves the whole chain per request:

    get_database  (one per process)
        └── get_patient_repository
                └── get_patient_service  ←  get_event_publisher

Overriding any link in ``app.dependency_overrides`` replaces it for
everything built on top of it. Imports of repositories and services are
deferred to call time because those packages import core.
"""
import logging
from typing import Optional

from fastapi import Depends

from core.config import settings

logger = logging.getLogger(__name__)

_database_instance: Optional["Database"] = None


def get_database() -> "Database":
    """Return the process-wide Database, creating it (and its schema) on first use."""
    global _database_instance

    if _database_instance is None:
        from repositories.base import Database

        logger.info("Opening patient database", extra={"db_path": settings.database_path})
        _database_instance = Database(
            db_path=settings.database_path,
            busy_timeout=settings.patient_svc_db_busy_timeout
        )

    return _database_instance


def get_patient_repository(db=Depends(get_database)) -> "PatientRepository":
    from repositories import PatientRepository

    return PatientRepository(db=db)


def get_event_publisher() -> Optional["PatientEventPublisher"]:
    """The Celery-backed publisher, or None while PATIENT_SVC_EVENTS_ENABLED is off."""
    if not settings.patient_svc_events_enabled:
        return None

    from services import PatientEventPublisher

    return PatientEventPublisher()


def get_patient_service(
    patient_repository=Depends(get_patient_repository),
    event_publisher=Depends(get_event_publisher),
) -> "PatientService":
    from services import PatientService

    return PatientService(
        patient_repository=patient_repository,
        event_publisher=event_publisher
    )
