"""Prometheus metric definitions for the billing service."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


estimates_created_total = Counter("estimates_created_total", "Total estimates created", ["service"])
estimate_transitions_total = Counter(
    "estimate_transitions_total",
    "Estimate status transitions applied",
    ["service", "status"],
)
payment_requests_total = Counter("payment_requests_total", "Total payment requests", ["service"])
payment_success_total = Counter(
    "payment_success_total",
    "Payments recorded after a successful gateway call",
    ["service", "status"],
)
payment_failure_total = Counter("payment_failure_total", "Total failed payments", ["service", "reason"])
gateway_latency_seconds = Histogram("gateway_latency_seconds", "Payment gateway call latency seconds", ["service"])
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
