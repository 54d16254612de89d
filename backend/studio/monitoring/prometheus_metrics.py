"""
Prometheus metrics for the studio booking engine.

Service timings come from the ``@BaseService.measure_operation`` decorator;
booking transitions, ledger movements and sweep results are counted
explicitly by the services that perform them.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry to avoid conflicts with default metrics
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

booking_transitions_total = Counter(
    "studio_booking_transitions_total",
    "Booking status transitions",
    ["event", "from_status", "to_status"],
    registry=REGISTRY,
)

package_ledger_movements_total = Counter(
    "studio_package_ledger_movements_total",
    "Stored package counter movements",
    ["movement"],
    registry=REGISTRY,
)

sweep_items_total = Counter(
    "studio_sweep_items_total",
    "Rows changed by periodic sweeps",
    ["sweep"],
    registry=REGISTRY,
)

dependency_failures_total = Counter(
    "studio_dependency_failures_total",
    "Failed calls to external collaborators (logged and swallowed)",
    ["dependency"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin static facade so call sites don't import individual collectors."""

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
            service: Service name (e.g., 'BookingService')
            operation: Operation/method name (e.g., 'confirm_booking')
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
    def record_transition(event: str, from_status: str, to_status: str) -> None:
        booking_transitions_total.labels(
            event=event, from_status=from_status, to_status=to_status
        ).inc()

    @staticmethod
    def record_ledger_movement(movement: str) -> None:
        package_ledger_movements_total.labels(movement=movement).inc()

    @staticmethod
    def record_sweep(sweep: str, count: int) -> None:
        if count:
            sweep_items_total.labels(sweep=sweep).inc(count)

    @staticmethod
    def record_dependency_failure(dependency: str) -> None:
        dependency_failures_total.labels(dependency=dependency).inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
