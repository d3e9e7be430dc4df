"""
Celery application for patient event delivery.

Start a worker with:
    celery -A celery_app worker --loglevel=info
"""
import logging

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from core import config
from core.logging_config import setup_logging

celery_app = Celery(
    "patient_svc",
    broker=config.CELERY_BROKER_URL,
    backend=config.CELERY_RESULT_BACKEND,
    include=["tasks.patient_events"]
)

celery_app.conf.update(
    task_serializer=config.CELERY_TASK_SERIALIZER,
    result_serializer=config.CELERY_RESULT_SERIALIZER,
    accept_content=config.CELERY_ACCEPT_CONTENT,
    timezone=config.CELERY_TIMEZONE,
    enable_utc=config.CELERY_ENABLE_UTC,
    task_acks_late=True,
    task_default_queue="patient_events",
    result_expires=3600,
)


@celery_setup_logging.connect
def configure_worker_logging(loglevel=None, **kwargs) -> None:
    """Use the API's JSON logging in the worker instead of Celery's own."""
    if isinstance(loglevel, int):
        loglevel = logging.getLevelName(loglevel)
    setup_logging(level=loglevel or "INFO")
