"""
Integration tests for /metrics endpoint and metrics collection.
"""

import pytest
from httpx import AsyncClient, ASGITransport

from hellofixo.api.app import app
from hellofixo.lib.metrics import get_metrics_collector, reset_metrics


@pytest.fixture(autouse=True)
def clear_metrics():
    """Clear metrics before each test."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.mark.integration
@pytest.mark.asyncio
async def test_metrics_endpoint_returns_prometheus_format():
    """Test /metrics endpoint returns Prometheus text format."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"] == "text/plain; version=0.0.4; charset=utf-8"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_metrics_endpoint_empty_when_no_metrics():
    """Test /metrics endpoint returns empty when no metrics recorded."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/metrics")

    assert response.status_code == 200
    assert response.text == ""


@pytest.mark.integration
@pytest.mark.asyncio
async def test_metrics_endpoint_reports_counters():
    """Test recorded counters show up in the scrape."""
    metrics = get_metrics_collector()
    metrics.increment_bookings("success")
    metrics.increment_serviceability_checks("unserviceable", amount=2)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/metrics")

    assert 'bookings_submitted_total{status="success"} 1' in response.text
    assert 'serviceability_checks_total{result="unserviceable"} 2' in response.text
