"""
Post-commit notifications for patient lifecycle changes.

The PatientService calls publish() after a create, update or delete has been
committed. Publishing is fire-and-forget: the event is handed to a Celery task
and any failure to enqueue is logged, never raised, so the outcome returned
to the API caller is decided by the database write alone.
"""
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from core.datetime_utils import format_iso, utc_now
from mappers import to_event_payload
from models import Patient

logger = logging.getLogger(__name__)


class PatientEvent(str, Enum):
    """Lifecycle events emitted by the patient service."""

    CREATED = "patient.created"
    UPDATED = "patient.updated"
    DELETED = "patient.deleted"


def _enqueue_with_celery(event: Dict[str, Any]) -> None:
    # Imported lazily so the API process only touches Celery when events are on.
    # Importing celery_app first makes it the current app for shared tasks.
    from celery_app import celery_app  # noqa: F401
    from tasks.patient_events import deliver_patient_event

    deliver_patient_event.delay(event)


class PatientEventPublisher:
    """
    Hands patient lifecycle events to the background worker.

    Args:
        dispatch: Callable that enqueues one event dict. Defaults to the
            deliver_patient_event Celery task.
    """

    def __init__(self, dispatch: Optional[Callable[[Dict[str, Any]], None]] = None):
        self._dispatch = dispatch or _enqueue_with_celery

    def build_event(
        self,
        event: PatientEvent,
        patient_id: str,
        patient: Optional[Patient] = None
    ) -> Dict[str, Any]:
        """Build the JSON-serializable event body."""
        body: Dict[str, Any] = {
            "event": event.value,
            "patient_id": patient_id,
            "occurred_at": format_iso(utc_now()),
        }
        if patient is not None:
            body["patient"] = to_event_payload(patient)
        return body

    def publish(
        self,
        event: PatientEvent,
        patient_id: str,
        patient: Optional[Patient] = None
    ) -> None:
        """Enqueue an event. Failures are logged and swallowed."""
        body = self.build_event(event, patient_id, patient)
        try:
            self._dispatch(body)
            logger.info(
                "Patient event published",
                extra={"event": event.value, "patient_id": patient_id}
            )
        except Exception as e:
            # The write is already committed; a lost notification must not fail the request
            logger.warning(
                f"Failed to publish patient event: {e}",
                extra={"event": event.value, "patient_id": patient_id, "error_type": type(e).__name__}
            )
