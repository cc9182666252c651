import asyncio

import httpx
import pytest
from structlog.testing import capture_logs

from httpobs.observability.client import AsyncObservedTransport, ObservedTransport, templated_request
from httpobs.observability.metrics import InMemoryMetrics

CLIENT = "http.client.requests"
BASE_URL = "http://api.example.com"


def _ok(request: httpx.Request) -> httpx.Response:
    if request.url.path.startswith("/missing"):
        return httpx.Response(404)
    return httpx.Response(200, json={"path": request.url.path})


def test_records_templated_request() -> None:
    metrics = InMemoryMetrics()
    transport = ObservedTransport(httpx.MockTransport(_ok), metrics=metrics)

    with httpx.Client(transport=transport, base_url=BASE_URL) as client:
        with capture_logs() as logs:
            resp = client.send(templated_request(client, "GET", "/users/{id}", id="a b"))

    assert resp.json() == {"path": "/users/a b"}
    assert metrics.count(CLIENT, uri="/users/{id}", method="GET", status="200", outcome="SUCCESS") == 1

    events = [e for e in logs if e["event"] == "http_exchange"]
    assert len(events) == 1
    assert events[0]["contextual_name"] == "http get"
    assert events[0]["trace_tags"] == {
        "uri.expanded": "http://api.example.com/users/a%20b",
        "client.name": "api.example.com",
    }


def test_plain_request_has_no_template() -> None:
    metrics = InMemoryMetrics()
    transport = ObservedTransport(httpx.MockTransport(_ok), metrics=metrics)

    with httpx.Client(transport=transport, base_url=BASE_URL) as client:
        assert client.get("/missing/1").status_code == 404

    assert metrics.count(CLIENT, uri="none", status="404", outcome="CLIENT_ERROR") == 1


def test_templated_request_requires_all_parameters() -> None:
    with httpx.Client(base_url=BASE_URL) as client:
        with pytest.raises(KeyError):
            templated_request(client, "GET", "/users/{id}/posts/{post}", id=1)


def test_connect_error_is_recorded_as_io_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    metrics = InMemoryMetrics()
    transport = ObservedTransport(httpx.MockTransport(refuse), metrics=metrics)

    with httpx.Client(transport=transport, base_url=BASE_URL) as client:
        with pytest.raises(httpx.ConnectError):
            client.get("/users/1")

    assert metrics.count(CLIENT, status="IO_ERROR", exception="ConnectError", outcome="UNKNOWN") == 1


async def test_async_transport_records_response() -> None:
    metrics = InMemoryMetrics()
    transport = AsyncObservedTransport(httpx.MockTransport(_ok), metrics=metrics)

    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:
        resp = await client.send(templated_request(client, "POST", "/orders/{order}", order=7))

    assert resp.status_code == 200
    assert metrics.count(CLIENT, uri="/orders/{order}", method="POST", status="200") == 1


async def test_async_cancellation_marks_exchange_aborted() -> None:
    async def cancelled(request: httpx.Request) -> httpx.Response:
        raise asyncio.CancelledError()

    metrics = InMemoryMetrics()
    transport = AsyncObservedTransport(httpx.MockTransport(cancelled), metrics=metrics)

    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:
        with pytest.raises(asyncio.CancelledError):
            await client.get("/slow")

    assert metrics.count(CLIENT, status="CLIENT_ERROR", exception="none", outcome="UNKNOWN") == 1


def test_recording_failure_does_not_break_the_call() -> None:
    class FailingMetrics(InMemoryMetrics):
        def observe_exchange(self, *args, **kwargs) -> None:
            raise RuntimeError("metrics backend unavailable")

    transport = ObservedTransport(httpx.MockTransport(_ok), metrics=FailingMetrics())

    with httpx.Client(transport=transport, base_url=BASE_URL) as client:
        with capture_logs() as logs:
            resp = client.get("/users/1")

    assert resp.status_code == 200
    assert resp.json() == {"path": "/users/1"}
    assert [e["event"] for e in logs] == ["http_exchange_record_failed"]
