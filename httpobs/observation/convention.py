from __future__ import annotations

import string
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal
from urllib.parse import quote

import httpx

from httpobs.observation.context import ExchangeContext
from httpobs.observation.keyvalues import (
    HighCardinalityKeyNames,
    KeyValue,
    KeyValues,
    LowCardinalityKeyNames,
)
from httpobs.observation.outcome import HttpOutcome, classify

NONE_VALUE = "none"

CLIENT_NAME_DEFAULT = "http.client.requests"
SERVER_NAME_DEFAULT = "http.server.requests"

STATUS_IO_ERROR = "IO_ERROR"
STATUS_CLIENT_ERROR = "CLIENT_ERROR"
STATUS_UNKNOWN = "UNKNOWN"

# Everything printable in ASCII stays as-is; only non-ASCII, whitespace and
# control characters get percent-encoded.
_URI_SAFE_CHARS = string.punctuation


@dataclass(frozen=True)
class UriFallback:
    """One row of the ``uri`` fallback table: statuses in [low, high] map to ``value``."""

    low: int
    high: int
    value: str

    def matches(self, status: int | None) -> bool:
        return _status_code(status) is not None and self.low <= status <= self.high


@dataclass(frozen=True)
class ConventionPolicy:
    name: str
    status_policy: Literal["client", "server"]
    uri_default: str
    uri_fallbacks: tuple[UriFallback, ...] = ()
    io_error_types: tuple[type[BaseException], ...] = ()


CLIENT_POLICY = ConventionPolicy(
    name=CLIENT_NAME_DEFAULT,
    status_policy="client",
    uri_default=NONE_VALUE,
    io_error_types=(OSError, httpx.TransportError),
)

SERVER_POLICY = ConventionPolicy(
    name=SERVER_NAME_DEFAULT,
    status_policy="server",
    uri_default="UNKNOWN",
    uri_fallbacks=(
        UriFallback(300, 399, "REDIRECTION"),
        UriFallback(404, 404, "NOT_FOUND"),
    ),
)


def _status_code(status: object) -> int | None:
    if isinstance(status, bool) or not isinstance(status, int):
        return None
    return status


def to_ascii_uri(uri: str) -> str:
    return quote(uri, safe=_URI_SAFE_CHARS, errors="replace")


def exception_name(error: BaseException) -> str:
    cls = type(error)
    simple = cls.__name__
    if simple and simple.strip():
        return simple
    return f"{cls.__module__}.{cls.__qualname__}"


def _guarded(key: str, fallback: str, derive: Callable[[ExchangeContext], str], context: ExchangeContext) -> KeyValue:
    try:
        return KeyValue.of(key, derive(context))
    except Exception:
        # Telemetry must never fail the exchange it describes.
        return KeyValue(key=key, value=fallback)


class HttpObservationConvention:
    """Derives metric and trace tags from a completed :class:`ExchangeContext`.

    Client and server conventions share this class and differ only in their
    :class:`ConventionPolicy`. Every method is a pure function of the context:
    it never raises, never mutates the context, and does no I/O. Missing or
    malformed data degrades each tag to its ``"none"``/sentinel value instead.
    """

    def __init__(self, policy: ConventionPolicy, name: str | None = None) -> None:
        self.policy = policy
        self._name = name or policy.name

    @property
    def name(self) -> str:
        return self._name

    def get_name(self) -> str:
        return self._name

    def get_contextual_name(self, context: ExchangeContext) -> str:
        method = self.method(context).value
        return f"http {method.lower()}"

    def supports_context(self, context: object) -> bool:
        return isinstance(context, ExchangeContext)

    def get_low_cardinality_key_values(self, context: ExchangeContext) -> KeyValues:
        return KeyValues.of(
            self.uri(context),
            self.method(context),
            self.status(context),
            self.exception(context),
            self.outcome(context),
        )

    def get_high_cardinality_key_values(self, context: ExchangeContext) -> KeyValues:
        return KeyValues.of(self.uri_expanded(context), self.client_name(context))

    def uri(self, context: ExchangeContext) -> KeyValue:
        return _guarded(LowCardinalityKeyNames.URI, self.policy.uri_default, self._uri, context)

    def method(self, context: ExchangeContext) -> KeyValue:
        return _guarded(LowCardinalityKeyNames.METHOD, NONE_VALUE, self._method, context)

    def status(self, context: ExchangeContext) -> KeyValue:
        return _guarded(LowCardinalityKeyNames.STATUS, self._status_fallback(), self._status, context)

    def exception(self, context: ExchangeContext) -> KeyValue:
        return _guarded(LowCardinalityKeyNames.EXCEPTION, NONE_VALUE, self._exception, context)

    def outcome(self, context: ExchangeContext) -> KeyValue:
        return _guarded(LowCardinalityKeyNames.OUTCOME, HttpOutcome.UNKNOWN.value, self._outcome, context)

    def uri_expanded(self, context: ExchangeContext) -> KeyValue:
        return _guarded(HighCardinalityKeyNames.URI_EXPANDED, NONE_VALUE, self._uri_expanded, context)

    def client_name(self, context: ExchangeContext) -> KeyValue:
        return _guarded(HighCardinalityKeyNames.CLIENT_NAME, NONE_VALUE, self._client_name, context)

    def _uri(self, context: ExchangeContext) -> str:
        if context.uri_template:
            return context.uri_template
        if context.request is None:
            return NONE_VALUE
        for row in self.policy.uri_fallbacks:
            if row.matches(context.response_status):
                return row.value
        return self.policy.uri_default

    def _method(self, context: ExchangeContext) -> str:
        return context.request_method or NONE_VALUE

    def _status_fallback(self) -> str:
        return STATUS_UNKNOWN if self.policy.status_policy == "server" else STATUS_CLIENT_ERROR

    def _status(self, context: ExchangeContext) -> str:
        status = _status_code(context.response_status)
        if self.policy.status_policy == "server":
            return str(status) if status is not None else STATUS_UNKNOWN

        if self._is_io_error(context.error):
            return STATUS_IO_ERROR
        if context.aborted and status is None:
            return STATUS_CLIENT_ERROR
        if status is not None:
            return str(status)
        return STATUS_CLIENT_ERROR

    def _exception(self, context: ExchangeContext) -> str:
        if context.error is None:
            return NONE_VALUE
        return exception_name(context.error)

    def _outcome(self, context: ExchangeContext) -> str:
        return classify(context.aborted, context.response_status).value

    def _uri_expanded(self, context: ExchangeContext) -> str:
        uri = context.request_uri
        if uri is None:
            return NONE_VALUE
        return to_ascii_uri(uri)

    def _client_name(self, context: ExchangeContext) -> str:
        return context.client_host or NONE_VALUE

    def _is_io_error(self, error: BaseException | None) -> bool:
        return error is not None and isinstance(error, self.policy.io_error_types)


def client_convention(name: str | None = None) -> HttpObservationConvention:
    return HttpObservationConvention(CLIENT_POLICY, name=name)


def server_convention(name: str | None = None) -> HttpObservationConvention:
    return HttpObservationConvention(SERVER_POLICY, name=name)
