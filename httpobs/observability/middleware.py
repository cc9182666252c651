from __future__ import annotations

import asyncio
import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import MutableHeaders

from httpobs.config import get_settings
from httpobs.observability.metrics import InMemoryMetrics, get_metrics
from httpobs.observability.recorder import record_exchange
from httpobs.observation.context import ExchangeContext, RequestDescriptor
from httpobs.observation.convention import HttpObservationConvention, server_convention


def _route_template(scope: dict[str, Any]) -> str | None:
    # FastAPI's router stores the matched route on the (shared) scope dict.
    route = scope.get("route")
    path = getattr(route, "path", None)
    return path if isinstance(path, str) and path else None


class ObservationMiddleware:
    """Observes every HTTP exchange with the server-side convention.

    Adds a request_id to the structlog context and the response headers, and
    records one timer per exchange keyed by the low-cardinality tags.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        convention: HttpObservationConvention | None = None,
        metrics: InMemoryMetrics | None = None,
    ) -> None:
        self.app = app
        self._convention = convention
        self._metrics = metrics

    @property
    def convention(self) -> HttpObservationConvention:
        if self._convention is None:
            self._convention = server_convention(name=get_settings().server_observation_name)
        return self._convention

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        path = scope.get("path") or ""
        method = scope.get("method")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=method,
        )

        context = ExchangeContext(RequestDescriptor(method=method, uri=path))
        start = perf_counter()

        async def send_wrapper(message: dict[str, Any]) -> None:
            if message.get("type") == "http.response.start":
                context.response_status = int(message.get("status", 500))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except asyncio.CancelledError:
            context.aborted = True
            raise
        except Exception as exc:
            context.error = exc
            # The server's outer error handler answers an escaped error with a 500.
            if context.response_status is None:
                context.response_status = 500
            raise
        finally:
            elapsed_ms = (perf_counter() - start) * 1000.0
            context.uri_template = _route_template(scope)

            # Exclude the metrics endpoints to avoid feedback loops in dashboards.
            metrics = None
            if path not in get_settings().metrics_excluded_paths:
                metrics = self._metrics or get_metrics()

            record_exchange(self.convention, context, elapsed_ms, metrics)

            structlog.contextvars.clear_contextvars()
