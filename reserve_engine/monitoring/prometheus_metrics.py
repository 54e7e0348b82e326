"""
Prometheus metrics for the reservation engine.

Service timings come from ``@BaseService.measure_operation``; reservation
outcomes are counted per result kind so conflict and transient-failure
rates can be alerted on separately.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so embedding applications keep their default one clean
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "reserve_engine_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

service_operations_total = Counter(
    "reserve_engine_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "reserve_engine_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

reservation_outcomes_total = Counter(
    "reserve_engine_reservation_outcomes_total",
    "Reservation attempts by outcome (success or error kind)",
    ["outcome"],
    registry=REGISTRY,
)

staff_assignments_total = Counter(
    "reserve_engine_staff_assignments_total",
    "Auto-assignment attempts by result",
    ["result"],  # assigned | NO_ACTIVE_STAFF | NO_FREE_STAFF
    registry=REGISTRY,
)

notifications_total = Counter(
    "reserve_engine_notifications_total",
    "Post-commit confirmation notifications by status",
    ["status"],  # sent | failed
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

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
            service: Service name (e.g., 'ReservationCoordinator')
            operation: Operation/method name (e.g., 'create_reservation')
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

    @staticmethod
    def record_reservation_outcome(outcome: str) -> None:
        reservation_outcomes_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_staff_assignment(result: str) -> None:
        staff_assignments_total.labels(result=result).inc()

    @staticmethod
    def record_notification(status: str) -> None:
        notifications_total.labels(status=status).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """
        Generate Prometheus metrics in exposition format.

        Returns:
            Metrics data in Prometheus text format
        """
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)


# Singleton instance
prometheus_metrics = PrometheusMetrics()
