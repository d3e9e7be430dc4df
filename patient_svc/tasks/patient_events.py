"""
Celery tasks for delivering patient lifecycle events.

The API process enqueues one task per committed create, update or delete
(see services.event_publisher). The worker forwards the event to the
configured webhook. Transport failures and 5xx responses are retried with
exponential backoff; 4xx responses are treated as permanent.

Observability:
    - Task success/failure metrics are recorded in the MetricsCollector of
      the process running the task (the worker, not the API)
    - All logs include structured JSON fields for Grafana/Loki
"""
import logging
from typing import Any, Dict

import httpx
from celery import shared_task

from core.config import EVENT_WEBHOOK_URL, EVENT_WEBHOOK_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_RETRY_BASE_DELAY = 2  # seconds
MAX_RETRIES = 3
EVENT_HEADER_NAME = "X-Patient-Event"


def _record_task_metrics(success: bool) -> None:
    """
    Record task completion in this process's MetricsCollector.

    Safe to call even if metrics collector is not initialized.
    """
    try:
        from core.middleware import get_metrics_collector
        get_metrics_collector().record_task_result(success=success)
    except Exception as e:
        logger.warning(f"Failed to record task metrics: {e}")


def _calculate_retry_delay(retry_count: int, base_delay: int = DEFAULT_RETRY_BASE_DELAY) -> int:
    """Exponential backoff: base_delay ** retry_count seconds."""
    return base_delay ** retry_count


def post_event(event: Dict[str, Any], url: str, timeout: int) -> int:
    """
    POST one event to the webhook.

    Returns:
        int: HTTP status code of the webhook response.

    Raises:
        httpx.HTTPStatusError: For non-2xx responses.
        httpx.RequestError: For transport failures.
    """
    with httpx.Client(timeout=timeout) as client:
        response = client.post(
            url,
            json=event,
            headers={EVENT_HEADER_NAME: event["event"]}
        )
        response.raise_for_status()
        return response.status_code


@shared_task(bind=True, max_retries=MAX_RETRIES)
def deliver_patient_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deliver a patient event to the downstream webhook.

    Args:
        self: Celery task instance (bound task).
        event: Event body built by PatientEventPublisher.

    Returns:
        dict: Delivery result with status and event metadata.
    """
    event_type = event.get("event")
    patient_id = event.get("patient_id")

    if not EVENT_WEBHOOK_URL:
        logger.info(
            "No event webhook configured, event logged only",
            extra={"event": event_type, "patient_id": patient_id}
        )
        _record_task_metrics(success=True)
        return {"status": "skipped", "event": event_type, "patient_id": patient_id}

    try:
        status_code = post_event(event, EVENT_WEBHOOK_URL, EVENT_WEBHOOK_TIMEOUT)
    except httpx.HTTPStatusError as exc:
        if exc.response.status_code < 500:
            logger.error(
                f"Webhook rejected patient event: {exc.response.status_code}",
                extra={"task_id": self.request.id, "event": event_type, "patient_id": patient_id}
            )
            _record_task_metrics(success=False)
            raise
        raise _retry(self, exc, event_type, patient_id)
    except httpx.RequestError as exc:
        raise _retry(self, exc, event_type, patient_id)

    logger.info(
        "Patient event delivered",
        extra={
            "task_id": self.request.id,
            "event": event_type,
            "patient_id": patient_id,
            "status_code": status_code,
        }
    )
    _record_task_metrics(success=True)
    return {"status": "delivered", "event": event_type, "patient_id": patient_id, "status_code": status_code}


def _retry(task, exc: Exception, event_type: str, patient_id: str) -> Exception:
    """Schedule a retry with backoff and return the Retry exception to raise."""
    if task.request.retries >= MAX_RETRIES:
        logger.error(
            f"Max retries exhausted delivering patient event: {exc}",
            extra={"task_id": task.request.id, "event": event_type, "patient_id": patient_id}
        )
        _record_task_metrics(success=False)
    else:
        logger.warning(
            f"Retrying patient event delivery: {exc}",
            extra={
                "task_id": task.request.id,
                "event": event_type,
                "patient_id": patient_id,
                "retry_count": task.request.retries + 1,
            }
        )
    return task.retry(
        exc=exc,
        countdown=_calculate_retry_delay(task.request.retries),
        throw=False
    )
