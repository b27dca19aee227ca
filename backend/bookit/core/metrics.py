"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['outcome']  # success, capacity, promo, not_found, conflict, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking transaction latency (lock, insert, counters, commit)',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

booking_cancellations = Counter(
    'booking_cancellations_total',
    'Booking cancellation attempts',
    ['outcome']  # success, not_found, already_cancelled, error
)

# Promo metrics
promo_validations = Counter(
    'promo_validations_total',
    'Promo code evaluations',
    ['result']  # valid, invalid
)

# Store metrics
store_errors = Counter(
    'store_errors_total',
    'Database errors surfaced to callers',
    ['sqlstate']
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(outcome: str):
    booking_attempts.labels(outcome=outcome).inc()


def record_cancellation(outcome: str):
    booking_cancellations.labels(outcome=outcome).inc()


def record_promo_validation(valid: bool):
    promo_validations.labels(result="valid" if valid else "invalid").inc()


def record_store_error(sqlstate: str | None):
    store_errors.labels(sqlstate=sqlstate or "unknown").inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
