"""
Domain model for patients.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional

from core.datetime_utils import format_date, format_iso, parse_calendar_date, parse_datetime_safe


@dataclass(frozen=True)
class Patient:
    """Model representing a patient in the system."""

    id: str
    name: str
    email: str
    address: str
    date_of_birth: date
    registered_date: date
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert patient to a flat dictionary of storage-ready values."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "address": self.address,
            "date_of_birth": format_date(self.date_of_birth),
            "registered_date": format_date(self.registered_date),
            "created_at": format_iso(self.created_at) if self.created_at else None,
        }

    @classmethod
    def from_row(cls, row: tuple) -> 'Patient':
        """
        Create a Patient from a database row tuple.

        Args:
            row: Tuple of (id, name, email, address, date_of_birth,
                registered_date, created_at) from database query.

        Returns:
            Patient instance.
        """
        return cls(
            id=row[0],
            name=row[1],
            email=row[2],
            address=row[3],
            date_of_birth=parse_calendar_date(row[4]),
            registered_date=parse_calendar_date(row[5]),
            created_at=parse_datetime_safe(row[6]),
        )
