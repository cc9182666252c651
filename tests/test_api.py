from httpobs.config import get_settings
from httpobs.observability.metrics import get_metrics

SERVER = "http.server.requests"


async def test_responses_include_x_request_id(api_client) -> None:
    resp = await api_client.get("/health")
    assert resp.status_code == 200
    assert resp.headers.get("x-request-id")


async def test_templated_route_is_recorded_by_template(api_client) -> None:
    for name in ("alice", "bob", "carol"):
        resp = await api_client.get(f"/api/echo/{name}")
        assert resp.status_code == 200

    assert get_metrics().count(SERVER, uri="/api/echo/{name}", method="GET", status="200", outcome="SUCCESS") == 3
    assert get_metrics().count(SERVER, uri="/api/echo/alice") == 0


async def test_unmatched_route_is_recorded_as_not_found(api_client) -> None:
    resp = await api_client.get("/does/not/exist")
    assert resp.status_code == 404

    assert get_metrics().count(SERVER, uri="NOT_FOUND", status="404", outcome="CLIENT_ERROR") == 1


async def test_redirect_is_recorded(api_client) -> None:
    resp = await api_client.get("/api/redirect")
    assert resp.status_code == 302

    assert get_metrics().count(SERVER, uri="/api/redirect", status="302", outcome="REDIRECTION") == 1


async def test_unhandled_error_is_recorded_with_exception_name(api_client) -> None:
    resp = await api_client.get("/api/fail")
    assert resp.status_code == 500

    assert get_metrics().count(SERVER, uri="/api/fail", exception="ValueError", status="500", outcome="SERVER_ERROR") == 1


async def test_metrics_endpoint_is_not_self_observed(api_client) -> None:
    await api_client.get("/health")
    m1 = await api_client.get("/api/metrics")
    m2 = await api_client.get("/api/metrics")
    assert m1.status_code == 200
    assert m1.json() == m2.json()

    timers = m2.json()["timers"]
    assert [t["tags"]["uri"] for t in timers] == ["/health"]
    assert timers[0]["count"] == 1


async def test_metrics_endpoint_can_be_disabled(api_client, monkeypatch) -> None:
    monkeypatch.setenv("ENABLE_METRICS_ENDPOINT", "false")
    get_settings.cache_clear()

    resp = await api_client.get("/api/metrics")
    assert resp.status_code == 404


async def test_server_observation_name_is_configurable(monkeypatch) -> None:
    from httpx import ASGITransport, AsyncClient

    from httpobs.main import app
    from httpobs.observability.middleware import ObservationMiddleware
    from httpobs.observability.metrics import InMemoryMetrics

    monkeypatch.setenv("SERVER_OBSERVATION_NAME", "edge.requests")
    get_settings.cache_clear()

    metrics = InMemoryMetrics()
    wrapped = ObservationMiddleware(app, metrics=metrics)
    async with AsyncClient(transport=ASGITransport(app=wrapped), base_url="http://test") as client:
        await client.get("/health")

    assert metrics.count("edge.requests", uri="/health") == 1
