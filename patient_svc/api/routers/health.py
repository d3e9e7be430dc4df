"""
Operational endpoints: liveness, readiness and metrics.

- /health       liveness, no I/O
- /ready        readiness, checks SQLite and (when events are on) the Redis broker
- /metrics      Prometheus text format
- /metrics/json the same counters as JSON

None of these require an API key.
"""
import logging
import time
from typing import Dict, Any, List, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
import redis

from core.config import REDIS_URL, EVENTS_ENABLED
from core.datetime_utils import utc_now, format_iso
from core.dependencies import get_database
from core.middleware import get_metrics_collector
from repositories import Database

logger = logging.getLogger(__name__)

SERVICE_NAME = "Patient Service API"
SERVICE_VERSION = "1.0.0"

router = APIRouter(tags=["Health & Observability"])


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class HealthResponse(BaseModel):
    """Response model for /health."""
    status: str
    version: str
    timestamp: str


class DependencyStatus(BaseModel):
    """Result of probing one backing dependency."""
    name: str
    status: str  # ok | degraded | unavailable | disabled
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class ReadyResponse(BaseModel):
    """Response model for /ready."""
    status: str  # ready | degraded | not_ready
    dependencies: List[DependencyStatus]
    timestamp: str


class MetricsResponse(BaseModel):
    """Response model for /metrics/json."""
    http_requests_total: int
    http_requests_2xx_total: int
    http_requests_4xx_total: int
    http_requests_5xx_total: int
    http_request_duration_ms_p50: float
    http_request_duration_ms_p95: float
    http_request_duration_ms_p99: float
    background_tasks_success_total: int
    background_tasks_failure_total: int


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


# =============================================================================
# LIVENESS
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Returns immediately without touching the database or broker."
)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=SERVICE_VERSION,
        timestamp=format_iso(utc_now())
    )


# =============================================================================
# READINESS
# =============================================================================

def _check_database(db: Database) -> DependencyStatus:
    """Run a trivial query against the patients database."""
    start = time.perf_counter()
    try:
        conn = db.get_connection()
        try:
            conn.execute("SELECT COUNT(*) FROM patients")
        finally:
            conn.close()
        return DependencyStatus(
            name="database",
            status="ok",
            latency_ms=_elapsed_ms(start),
            message="SQLite connection healthy"
        )
    except Exception as e:
        logger.error("Database readiness check failed", extra={"error": str(e)})
        return DependencyStatus(
            name="database",
            status="unavailable",
            latency_ms=_elapsed_ms(start),
            message=f"Connection failed: {type(e).__name__}"
        )


def _check_event_broker() -> DependencyStatus:
    """
    Ping the Redis broker used for patient change events.

    A broker outage only degrades the service: patient writes still
    succeed and the lost events are logged by the publisher.
    """
    if not EVENTS_ENABLED:
        return DependencyStatus(
            name="event_broker",
            status="disabled",
            latency_ms=0,
            message="Patient events are disabled"
        )

    start = time.perf_counter()
    try:
        client = redis.from_url(REDIS_URL, socket_timeout=2)
        client.ping()
        return DependencyStatus(
            name="event_broker",
            status="ok",
            latency_ms=_elapsed_ms(start),
            message="Redis broker healthy"
        )
    except (redis.RedisError, ValueError) as e:
        logger.warning("Event broker readiness check failed", extra={"error": str(e)})
        return DependencyStatus(
            name="event_broker",
            status="degraded",
            latency_ms=_elapsed_ms(start),
            message=f"Broker unavailable: {type(e).__name__}"
        )


@router.get(
    "/ready",
    response_model=ReadyResponse,
    summary="Readiness probe",
    description="Returns 503 when the database is unreachable. "
                "A broker outage is reported as degraded with status 200."
)
def readiness_check(
    response: Response,
    db: Database = Depends(get_database)
) -> ReadyResponse:
    dependencies = [_check_database(db), _check_event_broker()]

    database_down = any(
        d.status == "unavailable" for d in dependencies if d.name == "database"
    )
    degraded = any(d.status in ("degraded", "unavailable") for d in dependencies)

    if database_down:
        overall = "not_ready"
        response.status_code = 503
    elif degraded:
        overall = "degraded"
    else:
        overall = "ready"

    return ReadyResponse(
        status=overall,
        dependencies=dependencies,
        timestamp=format_iso(utc_now())
    )


# =============================================================================
# METRICS
# =============================================================================

@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Request counts, latency percentiles and event delivery counters "
                "in Prometheus text format."
)
async def get_metrics() -> Response:
    return Response(
        content=get_metrics_collector().get_prometheus_format(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )


@router.get(
    "/metrics/json",
    response_model=MetricsResponse,
    summary="JSON metrics"
)
async def get_metrics_json() -> MetricsResponse:
    return MetricsResponse(**get_metrics_collector().get_summary())


# =============================================================================
# ROOT
# =============================================================================

@router.get("/", summary="API root")
async def root() -> Dict[str, Any]:
    """Service name, version and links to docs and probes."""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "docs": "/docs",
        "patients": "/api/v1/patients",
        "health": "/health",
        "ready": "/ready",
        "metrics": "/metrics"
    }
