"""
Configuration module for Patient Service API.
Uses Pydantic BaseSettings for validation - app fails fast if required config is missing.
"""
import sys
import logging
from pathlib import Path
from typing import List

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings with validation.
    Required fields will cause the app to fail fast if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database Configuration
    patient_svc_db_dir: str = Field(default="data", description="Database directory")
    patient_svc_db_file: str = Field(default="patients.db", description="Database filename")
    patient_svc_db_busy_timeout: int = Field(default=5000, description="SQLite busy timeout in milliseconds")

    # API Configuration
    patient_svc_host: str = Field(default="0.0.0.0", description="API host")
    patient_svc_port: int = Field(default=8000, description="API port")
    patient_svc_reload: bool = Field(default=False, description="Enable hot reload")

    # Redis & Celery Configuration
    patient_svc_redis_url: str = Field(default="redis://localhost:6379", description="Redis URL")
    patient_svc_redis_db: int = Field(default=0, description="Redis database number")
    patient_svc_celery_task_serializer: str = Field(default="json", description="Celery task serializer")
    patient_svc_celery_result_serializer: str = Field(default="json", description="Celery result serializer")
    patient_svc_celery_accept_content: str = Field(default="json", description="Celery accepted content types (comma-separated)")
    patient_svc_celery_timezone: str = Field(default="UTC", description="Celery timezone")
    patient_svc_celery_enable_utc: bool = Field(default=True, description="Enable UTC for Celery")

    # Patient event notifications (Optional)
    patient_svc_events_enabled: bool = Field(default=False, description="Publish patient lifecycle events via Celery")
    patient_svc_event_webhook_url: str = Field(default="", description="Webhook receiving patient lifecycle events")
    patient_svc_event_webhook_timeout: int = Field(default=10, description="Webhook timeout in seconds")

    # API Authentication Configuration
    patient_svc_api_key: str = Field(
        ...,  # Required - no default means fail fast if missing
        description="API key for authenticating requests to the Patient Service API",
        min_length=32,
    )

    @model_validator(mode="after")
    def validate_event_settings(self) -> "Settings":
        """
        Validate notification settings at startup and fail fast with clear error messages.
        """
        errors = []

        if self.patient_svc_events_enabled and not self.patient_svc_event_webhook_url:
            logger.warning(
                "PATIENT_SVC_EVENTS_ENABLED is set but PATIENT_SVC_EVENT_WEBHOOK_URL is not - "
                "patient events will only be logged by the worker"
            )

        if self.patient_svc_event_webhook_timeout <= 0:
            errors.append("PATIENT_SVC_EVENT_WEBHOOK_TIMEOUT must be a positive number of seconds")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            logger.critical(error_msg)
            sys.exit(1)

        return self

    @property
    def database_path(self) -> str:
        """Get the full database path."""
        return str(Path(self.patient_svc_db_dir) / self.patient_svc_db_file)

    @property
    def celery_broker_url(self) -> str:
        """Get the Celery broker URL with database selection."""
        return f"{self.patient_svc_redis_url}/{self.patient_svc_redis_db}"

    @property
    def celery_result_backend(self) -> str:
        """Get the Celery result backend URL with database selection."""
        return f"{self.patient_svc_redis_url}/{self.patient_svc_redis_db}"

    @property
    def celery_accept_content_list(self) -> List[str]:
        """Get the Celery accepted content types as a list."""
        return [c.strip() for c in self.patient_svc_celery_accept_content.split(",")]

    def ensure_directories(self) -> None:
        """Ensure required directories exist."""
        Path(self.patient_svc_db_dir).mkdir(parents=True, exist_ok=True)


# Create global settings instance - fails fast if required config is missing
settings = Settings()

# Ensure directories exist on import
settings.ensure_directories()

DATABASE_PATH = settings.database_path
DATABASE_BUSY_TIMEOUT = settings.patient_svc_db_busy_timeout

API_HOST = settings.patient_svc_host
API_PORT = settings.patient_svc_port
API_RELOAD = settings.patient_svc_reload

REDIS_URL = settings.patient_svc_redis_url
CELERY_BROKER_URL = settings.celery_broker_url
CELERY_RESULT_BACKEND = settings.celery_result_backend
CELERY_TASK_SERIALIZER = settings.patient_svc_celery_task_serializer
CELERY_RESULT_SERIALIZER = settings.patient_svc_celery_result_serializer
CELERY_ACCEPT_CONTENT = settings.celery_accept_content_list
CELERY_TIMEZONE = settings.patient_svc_celery_timezone
CELERY_ENABLE_UTC = settings.patient_svc_celery_enable_utc

EVENTS_ENABLED = settings.patient_svc_events_enabled
EVENT_WEBHOOK_URL = settings.patient_svc_event_webhook_url
EVENT_WEBHOOK_TIMEOUT = settings.patient_svc_event_webhook_timeout

API_KEY = settings.patient_svc_api_key
