"""HTTP observation conventions.

Turns a finished (or aborted) HTTP exchange into two tag sets: a bounded
low-cardinality set that metrics can aggregate on, and a high-cardinality set
for tracing only. Everything in this package is pure and safe to call from
many completion callbacks at once.
"""

from httpobs.observation.context import ExchangeContext, RequestDescriptor
from httpobs.observation.convention import (
    CLIENT_POLICY,
    SERVER_POLICY,
    ConventionPolicy,
    HttpObservationConvention,
    UriFallback,
    client_convention,
    server_convention,
)
from httpobs.observation.errors import ContextFrozenError, ObservationError
from httpobs.observation.keyvalues import (
    HighCardinalityKeyNames,
    KeyValue,
    KeyValues,
    LowCardinalityKeyNames,
)
from httpobs.observation.outcome import HttpOutcome, classify

__all__ = [
    "CLIENT_POLICY",
    "SERVER_POLICY",
    "ContextFrozenError",
    "ConventionPolicy",
    "ExchangeContext",
    "HighCardinalityKeyNames",
    "HttpObservationConvention",
    "HttpOutcome",
    "KeyValue",
    "KeyValues",
    "LowCardinalityKeyNames",
    "ObservationError",
    "RequestDescriptor",
    "UriFallback",
    "classify",
    "client_convention",
    "server_convention",
]
