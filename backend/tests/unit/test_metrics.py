"""
Unit tests for metrics collection and Prometheus export.
"""

import pytest
from hellofixo.lib.metrics import MetricsCollector, get_metrics_collector, reset_metrics


@pytest.fixture
def metrics():
    """Fresh metrics collector for each test."""
    collector = MetricsCollector()
    return collector


@pytest.mark.unit
def test_metrics_collector_initialization(metrics):
    """Test metrics collector initializes with empty counters."""
    output = metrics.export_prometheus()
    assert output == ""  # No metrics yet


@pytest.mark.unit
def test_increment_bookings(metrics):
    """Test incrementing booking submissions counter."""
    metrics.increment_bookings("success")
    metrics.increment_bookings("SUCCESS", amount=2)

    value = metrics.get_counter_value("bookings_submitted_total", {"status": "success"})
    assert value == 3


@pytest.mark.unit
def test_increment_different_labels(metrics):
    """Test counters are separate for different label combinations."""
    metrics.increment_referral_checks("success")
    metrics.increment_referral_checks("rejected")
    metrics.increment_referral_checks("error")
    metrics.increment_referral_checks("error")

    assert metrics.get_counter_value("referral_checks_total", {"result": "success"}) == 1
    assert metrics.get_counter_value("referral_checks_total", {"result": "rejected"}) == 1
    assert metrics.get_counter_value("referral_checks_total", {"result": "error"}) == 2


@pytest.mark.unit
def test_increment_serviceability_checks(metrics):
    """Test incrementing serviceability checks counter."""
    metrics.increment_serviceability_checks("serviceable")
    metrics.increment_serviceability_checks("unserviceable", amount=4)

    assert metrics.get_counter_value("serviceability_checks_total", {"result": "unserviceable"}) == 4


@pytest.mark.unit
def test_increment_upstream(metrics):
    """Test incrementing upstream requests counter."""
    metrics.increment_upstream("Supabase", "retry")
    metrics.increment_upstream("supabase", "ok")

    assert metrics.get_counter_value(
        "upstream_requests_total", {"service": "supabase", "outcome": "retry"}
    ) == 1
    assert metrics.get_counter_value(
        "upstream_requests_total", {"service": "supabase", "outcome": "ok"}
    ) == 1


@pytest.mark.unit
def test_export_prometheus_format(metrics):
    """Test Prometheus export format is correct."""
    metrics.increment_bookings("success")
    metrics.increment_upstream("postal", "failed")

    output = metrics.export_prometheus()

    # Verify HELP and TYPE comments
    assert "# HELP bookings_submitted_total Total number of booking submissions" in output
    assert "# TYPE bookings_submitted_total counter" in output
    assert "# TYPE upstream_requests_total counter" in output

    # Verify metric lines
    assert 'bookings_submitted_total{status="success"} 1' in output
    assert 'upstream_requests_total{outcome="failed",service="postal"} 1' in output


@pytest.mark.unit
def test_export_sorted_by_metric_name(metrics):
    metrics.increment_upstream("geocoder", "ok")
    metrics.increment_bookings("error")

    output = metrics.export_prometheus()

    assert output.index("bookings_submitted_total") < output.index("upstream_requests_total")


@pytest.mark.unit
def test_reset_all(metrics):
    """Test resetting all counters."""
    metrics.increment_bookings("success")
    metrics.reset_all()

    assert metrics.get_counter_value("bookings_submitted_total", {"status": "success"}) == 0
    assert metrics.export_prometheus() == ""


@pytest.mark.unit
def test_global_singleton():
    """Test the global collector is shared and resettable."""
    collector = get_metrics_collector()
    assert collector is get_metrics_collector()

    collector.increment_bookings("invalid")
    reset_metrics()

    assert collector.get_counter_value("bookings_submitted_total", {"status": "invalid"}) == 0
