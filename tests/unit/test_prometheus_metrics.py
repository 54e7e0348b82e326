# tests/unit/test_prometheus_metrics.py
from reserve_engine.monitoring.prometheus_metrics import REGISTRY, prometheus_metrics


def _sample(name, labels):
    value = REGISTRY.get_sample_value(name, labels)
    return value or 0.0


def test_reservation_outcome_counter():
    before = _sample("reserve_engine_reservation_outcomes_total", {"outcome": "TIME_SLOT_CONFLICT"})

    prometheus_metrics.record_reservation_outcome("TIME_SLOT_CONFLICT")

    after = _sample("reserve_engine_reservation_outcomes_total", {"outcome": "TIME_SLOT_CONFLICT"})
    assert after == before + 1


def test_service_operation_error_counts_error_type():
    labels = {"service": "UnitTestService", "operation": "op", "error_type": "ValueError"}
    before = _sample("reserve_engine_errors_total", labels)

    prometheus_metrics.record_service_operation(
        service="UnitTestService",
        operation="op",
        duration=0.01,
        status="error",
        error_type="ValueError",
    )

    assert _sample("reserve_engine_errors_total", labels) == before + 1


def test_exposition_format():
    prometheus_metrics.record_notification("sent")

    body = prometheus_metrics.get_metrics()

    assert b"reserve_engine_notifications_total" in body
    assert prometheus_metrics.get_content_type().startswith("text/plain")
