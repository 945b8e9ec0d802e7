"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation metrics
reservation_attempts = Counter(
    'reservation_attempts_total',
    'Total reservation write attempts',
    ['operation', 'status']  # create/edit/cancel x success, capacity_exceeded, not_found, conflict
)

reservation_latency = Histogram(
    'reservation_latency_seconds',
    'Reservation write latency, lock wait included',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

tickets_booked = Counter(
    'tickets_booked_total',
    'Tickets booked through successful reservation creates',
    ['facility_type']  # atraksi, wahana
)

# Facility lifecycle metrics
facility_operations = Counter(
    'facility_operations_total',
    'Attraction/ride lifecycle operations',
    ['facility_type', 'operation', 'status']  # create/update/delete x success/failed
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set/invalidate, hit/miss/error
)


def metrics_endpoint() -> Response:
    """Render the default registry in the Prometheus text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_reservation_attempt(operation: str, status: str):
    """Record reservation attempt. Status: success, capacity_exceeded, not_found, conflict, error"""
    reservation_attempts.labels(operation=operation, status=status).inc()

def record_tickets_booked(facility_type: str, tickets: int):
    tickets_booked.labels(facility_type=facility_type).inc(tickets)

def record_facility_operation(facility_type: str, operation: str, success: bool):
    status = "success" if success else "failed"
    facility_operations.labels(facility_type=facility_type, operation=operation, status=status).inc()

def record_cache_operation(operation: str, result: str):
    cache_operations.labels(operation=operation, result=result).inc()
