"""
Prometheus metrics module for the studio booking engine.

Service operation timings come from the @measure_operation decorator; the
domain counters below are incremented by the booking services, the class
lock and the event publisher.
"""

from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "studio_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "studio_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "studio_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_outcomes_total = Counter(
    "studio_booking_outcomes_total",
    "Booking requests by outcome",
    ["outcome"],  # confirmed | waitlisted | denied
    registry=REGISTRY,
)

booking_denials_total = Counter(
    "studio_booking_denials_total",
    "Denied booking operations by reason",
    ["operation", "reason"],
    registry=REGISTRY,
)

class_lock_total = Counter(
    "studio_class_lock_total",
    "Per-class lock acquisitions",
    ["backend", "outcome"],  # acquired | timeout | redis_unavailable | release_error
    registry=REGISTRY,
)

waitlist_promotions_total = Counter(
    "studio_waitlist_promotions_total",
    "Waitlist promotion attempts by outcome",
    ["outcome"],  # promoted | skipped | empty
    registry=REGISTRY,
)

reminder_actions_total = Counter(
    "studio_reminder_actions_total",
    "Reminder task transitions",
    ["action"],  # scheduled | cancelled | fired | failed | skipped
    registry=REGISTRY,
)

event_handler_failures_total = Counter(
    "studio_event_handler_failures_total",
    "Lifecycle event handlers that raised",
    ["event_type", "handler"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None
    _cache_ttl_seconds: float = 1.0

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingLifecycleService')
            operation: Operation/method name (e.g., 'book')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()

        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate Prometheus metrics in exposition format."""
        now = monotonic()
        with PrometheusMetrics._cache_lock:
            payload = PrometheusMetrics._cache_payload
            ts = PrometheusMetrics._cache_ts
            if payload is None or ts is None or (now - ts) > PrometheusMetrics._cache_ttl_seconds:
                payload = cast(bytes, generate_latest(REGISTRY))
                PrometheusMetrics._cache_payload = payload
                PrometheusMetrics._cache_ts = now
        return payload

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_ts = None
            PrometheusMetrics._cache_payload = None

    # Domain helpers
    @staticmethod
    def record_booking_outcome(outcome: str) -> None:
        booking_outcomes_total.labels(outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_denial(operation: str, reason: str) -> None:
        booking_denials_total.labels(operation=operation, reason=reason).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_class_lock(backend: str, outcome: str) -> None:
        class_lock_total.labels(backend=backend, outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_waitlist_promotion(outcome: str) -> None:
        waitlist_promotions_total.labels(outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_reminder_action(action: str, count: int = 1) -> None:
        if count <= 0:
            return
        reminder_actions_total.labels(action=action).inc(count)
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_event_handler_failure(event_type: str, handler: str) -> None:
        event_handler_failures_total.labels(event_type=event_type, handler=handler).inc()
        PrometheusMetrics._invalidate_cache()


prometheus_metrics = PrometheusMetrics()
