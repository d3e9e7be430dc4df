"""
Pydantic schemas for API request/response validation.

This module contains all Pydantic models used at API boundaries.
"""
from schemas.patient import PatientCreate, PatientUpdate, PatientResponse

__all__ = [
    "PatientCreate",
    "PatientUpdate",
    "PatientResponse",
]
