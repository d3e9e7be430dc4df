"""
Domain errors raised by the patient service and their HTTP rendering.

Services raise these; routers never catch them. setup_exception_handlers()
turns each into a JSON body of the form::

    {"detail": "Patient 'abc' not found", "context": {"patient_id": "abc"}}
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PatientServiceError(Exception):
    """
    Root of the domain error hierarchy.

    Subclasses fix ``status_code`` and a fallback ``detail``. Keyword
    arguments passed to the constructor become the ``context`` block of
    the error body.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Patient service error"

    def __init__(
        self,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any
    ):
        self.detail = detail or type(self).detail
        self.status_code = status_code or type(self).status_code
        self.context = context
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.detail}
        if self.context:
            body["context"] = self.context
        return body


class PatientValidationError(PatientServiceError):
    """One or more request fields broke the create or update rules."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Patient data failed validation"

    def __init__(self, errors: Dict[str, str], **context: Any):
        self.errors = dict(errors)
        detail = f"Invalid patient fields: {', '.join(self.errors)}" if self.errors else None
        super().__init__(detail=detail, errors=self.errors, **context)


class EmailConflictError(PatientServiceError):
    """The email is already held by another patient."""

    status_code = status.HTTP_409_CONFLICT
    detail = "Email already registered"

    def __init__(self, email: Optional[str] = None, **context: Any):
        self.email = email
        detail = f"A patient with email '{email}' already exists" if email else None
        super().__init__(detail=detail, email=email, **context)


class PatientNotFoundError(PatientServiceError):
    """No patient has the requested id."""

    status_code = status.HTTP_404_NOT_FOUND
    detail = "Patient not found"

    def __init__(self, patient_id: Optional[str] = None, **context: Any):
        self.patient_id = patient_id
        detail = f"Patient '{patient_id}' not found" if patient_id else None
        super().__init__(detail=detail, patient_id=patient_id, **context)


class DatabaseError(PatientServiceError):
    """The store failed for a reason other than a uniqueness violation."""

    detail = "Database operation failed"

    def __init__(self, operation: Optional[str] = None, **context: Any):
        detail = f"Database error during {operation}" if operation else None
        super().__init__(detail=detail, operation=operation, **context)


async def patient_service_exception_handler(
    request: Request,
    exc: PatientServiceError
) -> JSONResponse:
    """Render a domain error; 5xx are logged as errors, the rest as warnings."""
    logger.log(
        logging.ERROR if exc.status_code >= 500 else logging.WARNING,
        f"{type(exc).__name__}: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
        }
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback and hide the details from the caller."""
    logger.exception(
        f"Unhandled exception: {exc}",
        extra={"path": request.url.path, "method": request.method}
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal server error occurred"}
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the domain and fallback handlers on ``app``."""
    app.add_exception_handler(PatientServiceError, patient_service_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
