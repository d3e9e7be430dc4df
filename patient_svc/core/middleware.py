"""
Request logging middleware and the in-process metrics it feeds.

Registered in main.py as the outermost middleware, so every request,
including ones rejected by auth or CORS, is timed and counted.
"""
import logging
import threading
import time
import uuid
from collections import Counter, deque
from typing import Callable, Deque, Dict, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from core.logging_config import set_request_id, clear_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
LATENCY_WINDOW = 1000
QUANTILES = (("p50", 0.5), ("p95", 0.95), ("p99", 0.99))


# =============================================================================
# METRICS
# =============================================================================

class MetricsCollector:
    """
    Counters by status class and by route, plus a sliding window of the
    last LATENCY_WINDOW request durations for percentiles.

    Event delivery tasks report their outcome through record_task_result().
    Counts are per process: a Celery worker records into its own collector,
    so the API process only sees tasks it ran itself (e.g. eager mode).
    """

    def __init__(self, window: int = LATENCY_WINDOW):
        self._lock = threading.Lock()
        self._durations_ms: Deque[float] = deque(maxlen=window)
        self._status_classes: Counter = Counter()
        self._routes: Counter = Counter()
        self._tasks: Counter = Counter()

    def record_request(self, status_code: int, duration_ms: float, method: str = "", route: str = "") -> None:
        with self._lock:
            self._durations_ms.append(duration_ms)
            self._status_classes[f"{status_code // 100}xx"] += 1
            if route:
                self._routes[(method, route)] += 1

    def record_task_result(self, success: bool) -> None:
        with self._lock:
            self._tasks["success" if success else "failure"] += 1

    def get_latency_percentiles(self) -> Dict[str, float]:
        """Nearest-rank percentiles over the window; zeros when empty."""
        with self._lock:
            durations = sorted(self._durations_ms)
        if not durations:
            return {name: 0 for name, _ in QUANTILES}
        last = len(durations) - 1
        return {
            name: round(durations[min(int(len(durations) * q), last)], 2)
            for name, q in QUANTILES
        }

    def get_route_counts(self) -> Dict[Tuple[str, str], int]:
        with self._lock:
            return dict(self._routes)

    def get_summary(self) -> Dict:
        latencies = self.get_latency_percentiles()
        with self._lock:
            statuses = dict(self._status_classes)
            tasks = dict(self._tasks)

        return {
            "http_requests_total": sum(statuses.values()),
            "http_requests_2xx_total": statuses.get("2xx", 0),
            "http_requests_4xx_total": statuses.get("4xx", 0),
            "http_requests_5xx_total": statuses.get("5xx", 0),
            "http_request_duration_ms_p50": latencies["p50"],
            "http_request_duration_ms_p95": latencies["p95"],
            "http_request_duration_ms_p99": latencies["p99"],
            "background_tasks_success_total": tasks.get("success", 0),
            "background_tasks_failure_total": tasks.get("failure", 0),
        }

    def get_prometheus_format(self) -> str:
        """Render all metrics in the Prometheus text exposition format."""
        summary = self.get_summary()
        lines = [
            "# HELP http_requests_total Total HTTP requests",
            "# TYPE http_requests_total counter",
            f"http_requests_total {summary['http_requests_total']}",
            "",
            "# HELP http_requests_by_status HTTP requests by status class",
            "# TYPE http_requests_by_status counter",
        ]
        for status_class in ("2xx", "4xx", "5xx"):
            lines.append(
                f'http_requests_by_status{{status="{status_class}"}} '
                f"{summary[f'http_requests_{status_class}_total']}"
            )

        lines += [
            "",
            "# HELP http_requests_by_route HTTP requests by method and route template",
            "# TYPE http_requests_by_route counter",
        ]
        for (method, route), count in sorted(self.get_route_counts().items()):
            lines.append(f'http_requests_by_route{{method="{method}",route="{route}"}} {count}')

        lines += [
            "",
            "# HELP http_request_duration_ms Request duration in milliseconds",
            "# TYPE http_request_duration_ms gauge",
        ]
        for name, q in QUANTILES:
            lines.append(
                f'http_request_duration_ms{{quantile="{q}"}} '
                f"{summary[f'http_request_duration_ms_{name}']}"
            )

        lines += [
            "",
            "# HELP patient_event_tasks_total Patient event delivery task completions "
            "counted by this process (Celery workers keep their own counts)",
            "# TYPE patient_event_tasks_total counter",
            f'patient_event_tasks_total{{result="success"}} {summary["background_tasks_success_total"]}',
            f'patient_event_tasks_total{{result="failure"}} {summary["background_tasks_failure_total"]}',
        ]
        return "\n".join(lines) + "\n"


metrics_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    return metrics_collector


# =============================================================================
# LOGGING MIDDLEWARE
# =============================================================================

def _route_template(request: Request) -> str:
    # Set by the router once a route matched, e.g. /api/v1/patients/{patient_id}
    route = request.scope.get("route")
    return getattr(route, "path", "")


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an id, logs it, and records its outcome.

    An incoming X-Request-ID is reused so ids can be followed across
    services; otherwise a short random id is generated. The id is echoed
    on the response.
    """

    QUIET_PATHS = {"/health", "/ready", "/metrics", "/metrics/json", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        set_request_id(request_id)

        method = request.method
        path = request.url.path
        verbose = path not in self.QUIET_PATHS
        started = time.perf_counter()

        if verbose:
            logger.info("Request started", extra={"method": method, "path": path})

        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - started) * 1000
            metrics_collector.record_request(500, elapsed_ms, method, _route_template(request))
            logger.exception("Request failed with exception", extra={"method": method, "path": path})
            clear_request_id()
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        metrics_collector.record_request(response.status_code, elapsed_ms, method, _route_template(request))

        if verbose:
            logger.log(
                logging.WARNING if response.status_code >= 400 else logging.INFO,
                "Request completed",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": round(elapsed_ms, 2),
                }
            )

        clear_request_id()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
