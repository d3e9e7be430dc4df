"""
Validation utilities for services.
"""
from services.validators.patient_validator import (
    validate_patient_payload,
    ValidationMode,
    NAME_MAX_LENGTH,
    EMAIL_MAX_LENGTH,
    ADDRESS_MAX_LENGTH,
)

__all__ = [
    "validate_patient_payload",
    "ValidationMode",
    "NAME_MAX_LENGTH",
    "EMAIL_MAX_LENGTH",
    "ADDRESS_MAX_LENGTH",
]
