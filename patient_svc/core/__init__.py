"""
Core module for application configuration, logging, and shared utilities.

This module provides:
- Settings: Application configuration via pydantic-settings
- Dependency injection: FastAPI Depends() functions for services and repositories
- Exceptions: Domain-specific exception classes with HTTP status codes
- Datetime utilities: UTC-first datetime and calendar date handling
"""
from core.config import settings, Settings

from core.dependencies import (
    get_database,
    get_patient_repository,
    get_event_publisher,
    get_patient_service,
)

from core.exceptions import (
    PatientServiceError,
    PatientValidationError,
    EmailConflictError,
    PatientNotFoundError,
    DatabaseError,
    setup_exception_handlers,
)

from core.datetime_utils import (
    utc_now,
    utc_today,
    to_utc,
    parse_calendar_date,
    format_iso,
    format_date,
)

__all__ = [
    # Settings
    "settings",
    "Settings",
    # Dependency injection
    "get_database",
    "get_patient_repository",
    "get_event_publisher",
    "get_patient_service",
    # Exceptions
    "PatientServiceError",
    "PatientValidationError",
    "EmailConflictError",
    "PatientNotFoundError",
    "DatabaseError",
    "setup_exception_handlers",
    # Datetime utilities
    "utc_now",
    "utc_today",
    "to_utc",
    "parse_calendar_date",
    "format_iso",
    "format_date",
]
