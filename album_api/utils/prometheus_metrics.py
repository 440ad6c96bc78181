"""
Prometheus metrics for stability and album operations.

- FastAPI: request count, latency (Instrumentator)
- Stability: exceptions_total, db_errors_total, external_request_errors_total
- HA: ready gauge (1=up, 0=shutting down), in_flight_requests
- Album: album_operations_total, discord channel operations
"""
import socket
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from prometheus_client import REGISTRY, Counter, Gauge, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from album_api.config import get_settings

# --- Stability ---
exceptions_total = Counter(
    "album_api_exceptions_total",
    "Total unhandled exceptions",
    registry=REGISTRY,
)
db_errors_total = Counter(
    "album_api_db_errors_total",
    "Total database session/transaction errors",
    registry=REGISTRY,
)
external_request_errors_total = Counter(
    "album_api_external_request_errors_total",
    "Total external API request failures",
    ["service"],
    registry=REGISTRY,
)
external_request_total = Counter(
    "album_api_external_request_total",
    "Total external API requests by service and outcome",
    ["service", "status"],  # status: success | failure
    registry=REGISTRY,
)

# --- HA ---
ready = Gauge(
    "album_api_ready",
    "Application ready (1=up, 0=shutting down)",
    registry=REGISTRY,
)
in_flight_requests = Gauge(
    "album_api_in_flight_requests",
    "Requests currently being processed",
    registry=REGISTRY,
)

# --- Performance ---
external_request_duration_seconds = Histogram(
    "album_api_external_request_duration_seconds",
    "External API request duration in seconds",
    ["service", "result"],  # result: success | failure
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

# --- Album ---
album_operations_total = Counter(
    "album_api_album_operations_total",
    "Total number of album operations",
    ["operation", "result"],  # operation: create | update | delete, result: success | failure
    registry=REGISTRY,
)
album_access_denied_total = Counter(
    "album_api_album_access_denied_total",
    "Album requests rejected by the access policy",
    ["operation"],  # operation: show | update | delete
    registry=REGISTRY,
)
channel_compensations_total = Counter(
    "album_api_channel_compensations_total",
    "Channels deleted because the album record could not be persisted",
    registry=REGISTRY,
)


def _node_identity() -> str:
    """Node/instance identifier: NODE_NAME env or hostname."""
    settings = get_settings()
    if settings.node_name:
        return settings.node_name
    try:
        return socket.gethostname()
    except OSError:
        return "unknown"


@asynccontextmanager
async def record_external_request(service: str) -> AsyncGenerator[None, None]:
    """
    Context manager to record external request duration, total count, and errors.
    Use around Discord HTTP calls.
    """
    start = time.perf_counter()
    exc_raised = None
    try:
        yield
    except Exception as e:
        exc_raised = e
        external_request_errors_total.labels(service=service).inc()
        external_request_total.labels(service=service, status="failure").inc()
        raise
    finally:
        duration = time.perf_counter() - start
        result = "failure" if exc_raised is not None else "success"
        if exc_raised is None:
            external_request_total.labels(service=service, status="success").inc()
        external_request_duration_seconds.labels(service=service, result=result).observe(duration)


_app_info = Gauge(
    "album_api_app_info",
    "Application and node identity (labels only, value is 1)",
    ["node", "app", "version", "environment"],
    registry=REGISTRY,
)


def setup_prometheus(app) -> None:
    """
    Register Prometheus instrumentation.

    1. app_info (node/app identity).
    2. Instrumentator (FastAPI request metrics).
    3. /metrics 엔드포인트 노출 (스크래핑용).
    """
    settings = get_settings()
    _app_info.labels(
        node=_node_identity(),
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    ).set(1)

    # status 라벨을 2xx/3xx 대신 구체 코드(200, 201, 404 등)로 노출
    Instrumentator(should_group_status_codes=False).instrument(app).expose(
        app, endpoint="/metrics"
    )
