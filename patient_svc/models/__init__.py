"""
Domain models for the patient service.

This module contains internal domain models.
"""
from models.patient import Patient

__all__ = ["Patient"]
