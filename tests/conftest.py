from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from httpobs.config import get_settings
from httpobs.main import app
from httpobs.observability.metrics import reset_metrics
from httpobs.observation.context import ExchangeContext, RequestDescriptor


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CLIENT_OBSERVATION_NAME", raising=False)
    monkeypatch.delenv("SERVER_OBSERVATION_NAME", raising=False)
    monkeypatch.delenv("ENABLE_METRICS_ENDPOINT", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    get_settings.cache_clear()
    reset_metrics()

    yield

    reset_metrics()
    get_settings.cache_clear()


@pytest.fixture
def make_context():
    def _make(
        method: str | None = "GET",
        uri: str | None = "/test/resource",
        **kwargs,
    ) -> ExchangeContext:
        request = RequestDescriptor(method=method, uri=uri) if uri is not None else None
        return ExchangeContext(request, **kwargs).freeze()

    return _make


@pytest.fixture
async def api_client() -> AsyncIterator[AsyncClient]:
    # Unhandled app errors still produce a 500 from Starlette instead of raising here.
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
