from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from httpobs.observation.errors import ContextFrozenError


@dataclass(frozen=True)
class RequestDescriptor:
    method: str | None
    uri: str


class ExchangeContext:
    """Snapshot of a single HTTP exchange, filled in by a transport adapter.

    Transport hooks set fields while the exchange is in flight and call
    ``freeze()`` once it completes, is cancelled, or fails. After that, the
    context is read-only and can be handed to a convention.
    """

    def __init__(
        self,
        request: RequestDescriptor | None = None,
        *,
        uri_template: str | None = None,
        response_status: int | None = None,
        error: BaseException | None = None,
        aborted: bool = False,
    ) -> None:
        self._request = request
        self._uri_template = uri_template
        self._response_status = response_status
        self._error = error
        self._aborted = aborted
        self._frozen = False

    def _check_writable(self, field: str) -> None:
        if self._frozen:
            raise ContextFrozenError(field)

    def freeze(self) -> ExchangeContext:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def request(self) -> RequestDescriptor | None:
        return self._request

    @request.setter
    def request(self, value: RequestDescriptor | None) -> None:
        self._check_writable("request")
        self._request = value

    @property
    def uri_template(self) -> str | None:
        return self._uri_template

    @uri_template.setter
    def uri_template(self, value: str | None) -> None:
        self._check_writable("uri_template")
        self._uri_template = value

    @property
    def response_status(self) -> int | None:
        return self._response_status

    @response_status.setter
    def response_status(self, value: int | None) -> None:
        self._check_writable("response_status")
        self._response_status = value

    @property
    def error(self) -> BaseException | None:
        return self._error

    @error.setter
    def error(self, value: BaseException | None) -> None:
        self._check_writable("error")
        self._error = value

    @property
    def aborted(self) -> bool:
        return self._aborted

    @aborted.setter
    def aborted(self, value: bool) -> None:
        self._check_writable("aborted")
        self._aborted = bool(value)

    @property
    def request_method(self) -> str | None:
        if self._request is None or not self._request.method:
            return None
        return self._request.method.upper()

    @property
    def request_uri(self) -> str | None:
        if self._request is None:
            return None
        return self._request.uri

    @property
    def client_host(self) -> str | None:
        uri = self.request_uri
        if not uri:
            return None
        try:
            host = urlsplit(uri).hostname
        except ValueError:
            # e.g. an unbalanced IPv6 bracket in the authority
            return None
        return host or None

    def __repr__(self) -> str:
        fields: dict[str, Any] = {
            "method": self.request_method,
            "uri": self.request_uri,
            "uri_template": self._uri_template,
            "status": self._response_status,
            "error": type(self._error).__name__ if self._error is not None else None,
            "aborted": self._aborted,
            "frozen": self._frozen,
        }
        inner = ", ".join(f"{k}={v!r}" for k, v in fields.items())
        return f"ExchangeContext({inner})"
