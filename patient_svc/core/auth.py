"""
API key guard for the patient endpoints.

Every route under /api/v1/patients depends on ``verify_api_key``; the
operational endpoints (/, /health, /ready, /metrics) do not.
"""
import logging
import secrets
from typing import Optional

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from core.config import API_KEY

logger = logging.getLogger(__name__)

API_KEY_HEADER_NAME = "X-API-Key"

api_key_header = APIKeyHeader(
    name=API_KEY_HEADER_NAME,
    auto_error=False,
    description="Shared secret for the patient endpoints, sent in the X-API-Key header.",
)


def _key_matches(candidate: str) -> bool:
    return secrets.compare_digest(candidate.encode("utf-8"), API_KEY.encode("utf-8"))


async def verify_api_key(
    request: Request,
    api_key: Optional[str] = Security(api_key_header),
) -> str:
    """
    FastAPI dependency that admits a request only with the configured key.

    Raises:
        HTTPException: 401 when the header is absent, 403 when it is wrong.
    """
    if api_key is None:
        logger.warning(
            "Patient API called without an API key",
            extra={"method": request.method, "path": request.url.path}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing API key. Include it in the {API_KEY_HEADER_NAME} header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not _key_matches(api_key):
        logger.warning(
            "Patient API called with a wrong API key",
            extra={"method": request.method, "path": request.url.path}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key
