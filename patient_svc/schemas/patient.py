"""
Pydantic schemas for patient-related API operations.

Request schemas accept any JSON value for every field so that the patient
validator, not the framework, reports the full set of field errors (a
number where a name belongs is a field error, not a parsing failure).
External field names are camelCase (``dateOfBirth``, ``registeredDate``).
"""
from datetime import date
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class PatientCreate(BaseModel):
    """Schema for creating a new patient.

    All fields are required by the create validation rules.
    Email addresses must be unique across patients.
    """
    name: Optional[Any] = Field(None, description="Patient full name", examples=["John Doe"])
    email: Optional[Any] = Field(
        None,
        description="Contact email (must be unique)",
        examples=["john.doe@example.com"]
    )
    address: Optional[Any] = Field(None, description="Postal address", examples=["123 Main St"])
    date_of_birth: Optional[Any] = Field(
        None,
        alias="dateOfBirth",
        description="Date of birth (YYYY-MM-DD), not in the future",
        examples=["1990-05-15"]
    )
    registered_date: Optional[Any] = Field(
        None,
        alias="registeredDate",
        description="Date the patient was onboarded (YYYY-MM-DD). Write-once.",
        examples=["2025-09-13"]
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "name": "John Doe",
                "email": "john.doe@example.com",
                "address": "123 Main St",
                "dateOfBirth": "1990-05-15",
                "registeredDate": "2025-09-13"
            }
        }

    def to_payload(self) -> Dict[str, Any]:
        """Return the request keyed by external field names."""
        return self.model_dump(by_alias=True)


class PatientUpdate(BaseModel):
    """Schema for replacing a patient's updatable fields.

    Every updatable field must be resupplied. ``registeredDate`` is not
    part of this schema and is ignored if sent.
    """
    name: Optional[Any] = Field(None, description="Patient full name", examples=["John Doe"])
    email: Optional[Any] = Field(
        None,
        description="Contact email (must be unique)",
        examples=["john.doe@example.com"]
    )
    address: Optional[Any] = Field(None, description="Postal address", examples=["456 Oak Ave"])
    date_of_birth: Optional[Any] = Field(
        None,
        alias="dateOfBirth",
        description="Date of birth (YYYY-MM-DD), not in the future",
        examples=["1990-05-15"]
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "name": "John Doe",
                "email": "john.doe@example.com",
                "address": "456 Oak Ave",
                "dateOfBirth": "1990-05-15"
            }
        }

    def to_payload(self) -> Dict[str, Any]:
        """Return the request keyed by external field names."""
        return self.model_dump(by_alias=True)


class PatientResponse(BaseModel):
    """Schema for patient response.

    ``registeredDate`` is accepted on create but never returned.
    """
    id: str = Field(..., description="Unique patient identifier", examples=["5f0c6d8e-6a1b-4c55-9a63-2f1f3f0b8e21"])
    name: str = Field(..., description="Patient full name", examples=["John Doe"])
    email: str = Field(..., description="Contact email", examples=["john.doe@example.com"])
    address: str = Field(..., description="Postal address", examples=["123 Main St"])
    date_of_birth: date = Field(..., alias="dateOfBirth", description="Date of birth (YYYY-MM-DD)")

    class Config:
        populate_by_name = True
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": "5f0c6d8e-6a1b-4c55-9a63-2f1f3f0b8e21",
                "name": "John Doe",
                "email": "john.doe@example.com",
                "address": "123 Main St",
                "dateOfBirth": "1990-05-15"
            }
        }
