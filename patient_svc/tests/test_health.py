"""
Tests for health, readiness, and metrics endpoints.

- /health: Liveness probe
- /ready: Readiness probe with dependency checks
- /metrics: Prometheus-format metrics
- /: Root endpoint with API info
"""
import inspect
from unittest.mock import patch

from core.middleware import MetricsCollector


# =============================================================================
# ROOT ENDPOINT TESTS
# =============================================================================

def test_root_endpoint(client):
    """Test the root endpoint returns API info."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "Patient Service API"
    assert data["version"] == "1.0.0"
    assert data["patients"] == "/api/v1/patients"
    assert "health" in data
    assert "ready" in data
    assert "metrics" in data


# =============================================================================
# HEALTH ENDPOINT TESTS (LIVENESS)
# =============================================================================

def test_health_endpoint(client):
    """Test the /health liveness endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == "1.0.0"
    assert data["timestamp"].endswith("Z")


# =============================================================================
# READINESS ENDPOINT TESTS
# =============================================================================

def test_ready_endpoint_with_events_disabled(client):
    """With events off only the database decides readiness."""
    response = client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"

    by_name = {d["name"]: d for d in data["dependencies"]}
    assert by_name["database"]["status"] == "ok"
    assert by_name["event_broker"]["status"] == "disabled"


def test_ready_endpoint_database_unavailable(client, temp_db):
    """A broken database makes the service not ready."""
    with patch.object(temp_db, "get_connection", side_effect=RuntimeError("disk gone")):
        response = client.get("/ready")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    database = next(d for d in data["dependencies"] if d["name"] == "database")
    assert database["status"] == "unavailable"
    assert "RuntimeError" in database["message"]


def test_ready_endpoint_broker_down_is_degraded(client):
    """A broker outage degrades but does not fail readiness."""
    import redis

    with patch("api.routers.health.EVENTS_ENABLED", True), \
            patch("api.routers.health.redis.from_url") as from_url:
        from_url.return_value.ping.side_effect = redis.ConnectionError("refused")
        response = client.get("/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    broker = next(d for d in data["dependencies"] if d["name"] == "event_broker")
    assert broker["status"] == "degraded"


def test_readiness_check_runs_in_threadpool():
    """The SQLite query and Redis ping block, so the handler must not be async."""
    from api.routers.health import readiness_check

    assert not inspect.iscoroutinefunction(readiness_check)


# =============================================================================
# METRICS ENDPOINT TESTS
# =============================================================================

def test_metrics_endpoint(client):
    """Test the /metrics Prometheus endpoint."""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "text/plain" in response.headers.get("content-type", "")
    content = response.text
    assert "http_requests_total" in content
    assert "http_request_duration_ms" in content
    assert "patient_event_tasks_total" in content


def test_metrics_json_endpoint(client):
    """Test the /metrics/json endpoint."""
    response = client.get("/metrics/json")
    assert response.status_code == 200
    data = response.json()
    assert "http_requests_total" in data
    assert "http_request_duration_ms_p95" in data
    assert "background_tasks_failure_total" in data


# =============================================================================
# METRICS COLLECTOR TESTS
# =============================================================================

def test_metrics_collector_counts_by_status_class():
    collector = MetricsCollector()
    collector.record_request(201, 5.0)
    collector.record_request(409, 3.0)
    collector.record_request(500, 9.0)
    collector.record_task_result(success=True)
    collector.record_task_result(success=False)

    summary = collector.get_summary()
    assert summary["http_requests_total"] == 3
    assert summary["http_requests_2xx_total"] == 1
    assert summary["http_requests_4xx_total"] == 1
    assert summary["http_requests_5xx_total"] == 1
    assert summary["background_tasks_success_total"] == 1
    assert summary["background_tasks_failure_total"] == 1


def test_metrics_collector_percentiles_empty():
    assert MetricsCollector().get_latency_percentiles() == {"p50": 0, "p95": 0, "p99": 0}
