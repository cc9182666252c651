from __future__ import annotations

import asyncio
import re
from time import perf_counter
from typing import Any
from urllib.parse import quote

import httpx

from httpobs.config import get_settings
from httpobs.observability.metrics import InMemoryMetrics, get_metrics
from httpobs.observability.recorder import record_exchange
from httpobs.observation.context import ExchangeContext, RequestDescriptor
from httpobs.observation.convention import HttpObservationConvention, client_convention

URI_TEMPLATE_EXTENSION = "uri_template"

_PLACEHOLDER = re.compile(r"\{([^{}/]+)\}")


def templated_request(
    client: httpx.Client | httpx.AsyncClient,
    method: str,
    template: str,
    **path_params: Any,
) -> httpx.Request:
    """Build a request for ``template`` and remember the template for the ``uri`` tag.

    ``client.get("/users/42")`` would be tagged ``uri=none``; a request built as
    ``templated_request(client, "GET", "/users/{id}", id=42)`` is tagged
    ``uri=/users/{id}`` while ``uri.expanded`` keeps the real path.
    """

    def _expand(match: re.Match[str]) -> str:
        return quote(str(path_params[match.group(1)]), safe="")

    url = _PLACEHOLDER.sub(_expand, template)
    return client.build_request(method, url, extensions={URI_TEMPLATE_EXTENSION: template})


def _start_context(request: httpx.Request) -> ExchangeContext:
    template = request.extensions.get(URI_TEMPLATE_EXTENSION)
    return ExchangeContext(
        RequestDescriptor(method=request.method, uri=str(request.url)),
        uri_template=template if isinstance(template, str) else None,
    )


class _ObservedTransportBase:
    def __init__(
        self,
        convention: HttpObservationConvention | None = None,
        metrics: InMemoryMetrics | None = None,
    ) -> None:
        self._convention = convention
        self._metrics = metrics

    @property
    def convention(self) -> HttpObservationConvention:
        if self._convention is None:
            self._convention = client_convention(name=get_settings().client_observation_name)
        return self._convention

    def _record(self, context: ExchangeContext, start: float) -> None:
        elapsed_ms = (perf_counter() - start) * 1000.0
        record_exchange(self.convention, context, elapsed_ms, self._metrics or get_metrics())


class ObservedTransport(_ObservedTransportBase, httpx.BaseTransport):
    """Wraps a sync httpx transport and observes each exchange with the client convention."""

    def __init__(
        self,
        transport: httpx.BaseTransport | None = None,
        convention: HttpObservationConvention | None = None,
        metrics: InMemoryMetrics | None = None,
    ) -> None:
        super().__init__(convention=convention, metrics=metrics)
        self._transport = transport or httpx.HTTPTransport()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        context = _start_context(request)
        start = perf_counter()
        try:
            response = self._transport.handle_request(request)
            context.response_status = response.status_code
            return response
        except KeyboardInterrupt:
            context.aborted = True
            raise
        except Exception as exc:
            context.error = exc
            raise
        finally:
            self._record(context, start)

    def close(self) -> None:
        self._transport.close()


class AsyncObservedTransport(_ObservedTransportBase, httpx.AsyncBaseTransport):
    """Async counterpart of :class:`ObservedTransport`."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        convention: HttpObservationConvention | None = None,
        metrics: InMemoryMetrics | None = None,
    ) -> None:
        super().__init__(convention=convention, metrics=metrics)
        self._transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        context = _start_context(request)
        start = perf_counter()
        try:
            response = await self._transport.handle_async_request(request)
            context.response_status = response.status_code
            return response
        except asyncio.CancelledError:
            context.aborted = True
            raise
        except Exception as exc:
            context.error = exc
            raise
        finally:
            self._record(context, start)

    async def aclose(self) -> None:
        await self._transport.aclose()
