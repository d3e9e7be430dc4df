"""
Validation rules for patient create and update payloads.

A single entry point, ``validate_patient_payload``, applies the rule set
selected by an explicit ``ValidationMode``:

- CREATE: name, email, address, dateOfBirth and registeredDate are required.
- UPDATE: name, email, address and dateOfBirth are required; registeredDate
  is immutable after creation and is ignored.

Every field is checked; the result holds one message per failing field, in
field declaration order. An empty result means the payload is acceptable.
Validation is pure: no I/O and no uniqueness checks (those belong to the
service and the store).
"""
import logging
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from email_validator import EmailNotValidError, validate_email

from core.datetime_utils import parse_calendar_date, utc_today

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 200
EMAIL_MAX_LENGTH = 254
ADDRESS_MAX_LENGTH = 500


class ValidationMode(str, Enum):
    """Which rule set to apply to a patient payload."""

    CREATE = "create"
    UPDATE = "update"


def _check_text(value: Any, label: str, max_length: int) -> Optional[str]:
    if value is None:
        return f"{label} is required"
    if not isinstance(value, str):
        return f"{label} must be a string"
    if not value.strip():
        return f"{label} must not be blank"
    if len(value.strip()) > max_length:
        return f"{label} must be at most {max_length} characters"
    return None


def validate_name(value: Any, today: date) -> Optional[str]:
    return _check_text(value, "Name", NAME_MAX_LENGTH)


def validate_email_address(value: Any, today: date) -> Optional[str]:
    """Check presence and syntax of an email address (no DNS lookups)."""
    error = _check_text(value, "Email", EMAIL_MAX_LENGTH)
    if error:
        return error
    try:
        validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        return f"Email is not a valid email address: {e}"
    return None


def validate_address(value: Any, today: date) -> Optional[str]:
    return _check_text(value, "Address", ADDRESS_MAX_LENGTH)


def _check_date(value: Any, label: str) -> Tuple[Optional[date], Optional[str]]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None, f"{label} is required"
    try:
        return parse_calendar_date(value), None
    except ValueError:
        return None, f"{label} must be a valid date in YYYY-MM-DD format"


def validate_date_of_birth(value: Any, today: date) -> Optional[str]:
    parsed, error = _check_date(value, "Date of birth")
    if error:
        return error
    if parsed > today:
        return "Date of birth must not be in the future"
    return None


def validate_registered_date(value: Any, today: date) -> Optional[str]:
    _, error = _check_date(value, "Registered date")
    return error


FieldRule = Callable[[Any, date], Optional[str]]

# Field order here is the order of entries in the error mapping
CREATE_RULES: List[Tuple[str, FieldRule]] = [
    ("name", validate_name),
    ("email", validate_email_address),
    ("address", validate_address),
    ("dateOfBirth", validate_date_of_birth),
    ("registeredDate", validate_registered_date),
]

UPDATE_RULES: List[Tuple[str, FieldRule]] = [
    (field, rule) for field, rule in CREATE_RULES if field != "registeredDate"
]

RULES_BY_MODE: Dict[ValidationMode, List[Tuple[str, FieldRule]]] = {
    ValidationMode.CREATE: CREATE_RULES,
    ValidationMode.UPDATE: UPDATE_RULES,
}


def validate_patient_payload(
    payload: Mapping[str, Any],
    mode: ValidationMode,
    today: Optional[date] = None
) -> Dict[str, str]:
    """
    Validate a patient payload against the rules for ``mode``.

    Args:
        payload: Request fields keyed by external name (name, email, address,
            dateOfBirth, registeredDate). Missing keys count as absent.
        mode: ValidationMode.CREATE or ValidationMode.UPDATE.
        today: Reference date for the "not in the future" rule.
            Defaults to the current UTC date.

    Returns:
        Dict[str, str]: Field name -> error message for every failing field.
            Empty if the payload is acceptable.
    """
    mode = ValidationMode(mode)
    today = today or utc_today()

    errors: Dict[str, str] = {}
    for field, rule in RULES_BY_MODE[mode]:
        message = rule(payload.get(field), today)
        if message:
            errors[field] = message

    if errors:
        logger.debug(
            "Patient payload rejected",
            extra={"mode": mode.value, "invalid_fields": list(errors)}
        )
    return errors
