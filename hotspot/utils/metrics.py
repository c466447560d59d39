"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
webhooks_received_total = Counter(
    "webhooks_received_total",
    "Gateway webhooks received, by outcome",
    ["outcome"],  # enqueued, duplicate, ignored, rejected, error
)

jobs_enqueued_total = Counter(
    "jobs_enqueued_total",
    "Provisioning jobs created",
    ["plan"],
)

router_acks_total = Counter(
    "router_acks_total",
    "Router acknowledgements",
    ["kind", "result"],  # kind: processed/expired
)

router_auth_failures_total = Counter(
    "router_auth_failures_total",
    "Router requests rejected for a bad API key",
)

jobs_expired_total = Counter(
    "jobs_expired_total",
    "Jobs moved to expired by the sweeper",
)

checkouts_initialized_total = Counter(
    "checkouts_initialized_total",
    "Hosted checkouts requested from the gateway",
    ["plan", "status"],
)

gateway_requests_total = Counter(
    "gateway_requests_total",
    "Payment gateway API requests",
    ["endpoint", "status"],
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
gateway_request_duration_seconds = Histogram(
    "gateway_request_duration_seconds",
    "Payment gateway API request duration",
    ["endpoint"],
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30],
)

# Gauges
pending_queue_length = Gauge(
    "pending_queue_length",
    "Pending jobs handed to the router in the last poll",
)


router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
