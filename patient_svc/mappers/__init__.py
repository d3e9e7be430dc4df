"""
Mapping between API schemas and domain models.
"""
from mappers.patient_mapper import (
    to_entity,
    apply_update,
    to_response,
    to_event_payload,
    normalize_email,
)

__all__ = ["to_entity", "apply_update", "to_response", "to_event_payload", "normalize_email"]
