"""Prometheus metrics for monitoring collections, rejections and notification delivery"""

from prometheus_client import Counter, Histogram, Gauge

# Ledger metrics
payments_counter = Counter(
    "billing_payments_total",
    "Payments reconciled against installments",
    ["outcome"],  # exact | under | over
)

rejections_counter = Counter(
    "billing_rejections_total",
    "Ledger operations rejected",
    ["reason"],
)

overdue_transitions_counter = Counter(
    "billing_overdue_transitions_total",
    "Contracts that moved into overdue on a status refresh",
)

# Portfolio metrics
portfolio_health_gauge = Gauge(
    "billing_portfolio_health_score",
    "Last computed operational health score",
)

# Notification webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_payment(outcome: str) -> None:
    """Record reconciliation outcome"""
    payments_counter.labels(outcome=outcome).inc()


def record_rejection(error: Exception) -> None:
    """Record a rejected operation, labelled by exception class"""
    rejections_counter.labels(reason=type(error).__name__).inc()
