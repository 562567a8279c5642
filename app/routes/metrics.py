"""
Prometheus metrics endpoint.

Exposes request and export workflow metrics for monitoring.
"""
from fastapi import APIRouter, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

router = APIRouter()

# ============================================
# HTTP Request Metrics
# ============================================

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.01, 0.05, 0.25, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0]
)

# ============================================
# Business Metrics - Exports
# ============================================

exports_total = Counter(
    'journey_exports_total',
    'Journey export requests by outcome',
    ['outcome']
)

exports_triggered = Counter(
    'journey_exports_triggered_total',
    'Exports triggered on the upstream platform'
)

poll_attempts = Counter(
    'journey_export_poll_attempts_total',
    'Process list queries made while waiting for an export'
)

bytes_relayed = Counter(
    'journey_export_bytes_relayed_total',
    'Bytes streamed from object storage to callers'
)


# ============================================
# Metrics Helper Functions
# ============================================

def track_request(method: str, endpoint: str, status: int, duration_seconds: float):
    """
    Record HTTP request metrics.

    Call this after each request.
    """
    http_requests_total.labels(
        method=method,
        endpoint=endpoint,
        status=status
    ).inc()

    http_request_duration.labels(
        method=method,
        endpoint=endpoint
    ).observe(duration_seconds)


def track_export_outcome(outcome: str):
    """Record how an export request ended (success, auth_error, ...)."""
    exports_total.labels(outcome=outcome).inc()


def track_export_triggered():
    """Record a new export being triggered upstream."""
    exports_triggered.inc()


def track_poll_attempt():
    """Record one poll of the process list."""
    poll_attempts.inc()


def track_bytes_relayed(size: int):
    """Record bytes relayed to a caller."""
    bytes_relayed.inc(size)


# ============================================
# Prometheus Endpoint
# ============================================

@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.

    Returns all registered metrics in Prometheus format.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
