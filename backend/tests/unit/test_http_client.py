"""
Unit tests for the retrying HTTP client.
"""
import httpx
import pytest

from hellofixo.clients.http import RetryingHttpClient, UpstreamError, read_json
from hellofixo.lib.logging import set_correlation_id
from hellofixo.lib.metrics import get_metrics_collector, reset_metrics


@pytest.fixture(autouse=True)
def clean_metrics():
    reset_metrics()
    yield
    reset_metrics()
    set_correlation_id(None)


def _client(handler, max_attempts=3):
    transport = httpx.MockTransport(handler)
    return RetryingHttpClient(
        service="test",
        client=httpx.AsyncClient(transport=transport, base_url="http://upstream.test"),
        max_attempts=max_attempts,
        backoff_min=0,
        backoff_max=0,
    )


def _upstream(outcome):
    return get_metrics_collector().get_counter_value(
        "upstream_requests_total", {"service": "test", "outcome": outcome}
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_retries_5xx_until_success():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"ok": True})

    response = await _client(handler).get("/thing")

    assert response.status_code == 200
    assert len(calls) == 3
    assert _upstream("retry") == 2
    assert _upstream("ok") == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_exhausted_retries_raise_upstream_error():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(502)

    with pytest.raises(UpstreamError) as exc_info:
        await _client(handler, max_attempts=2).get("/thing")

    assert len(calls) == 2
    assert exc_info.value.service == "test"
    assert exc_info.value.status_code == 502
    assert _upstream("failed") == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_transport_errors_are_retried():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError) as exc_info:
        await _client(handler).post("/thing", json={})

    assert len(calls) == 3
    assert exc_info.value.status_code is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_4xx_is_returned_without_retry():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404, json={"message": "not here"})

    response = await _client(handler).get("/thing")

    assert response.status_code == 404
    assert len(calls) == 1
    assert _upstream("client_error") == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_correlation_id_forwarded():
    seen = {}

    def handler(request):
        seen.update(request.headers)
        return httpx.Response(200)

    set_correlation_id("abc-123")
    await _client(handler).patch("/thing", json={}, headers={"Prefer": "return=representation"})

    assert seen["x-correlation-id"] == "abc-123"
    assert seen["prefer"] == "return=representation"


@pytest.mark.unit
def test_read_json_defaults():
    assert read_json(httpx.Response(200, json=[1, 2])) == [1, 2]
    assert read_json(httpx.Response(200, text="<html>"), default={}) == {}
    assert read_json(httpx.Response(204)) is None
