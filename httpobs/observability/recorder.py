from __future__ import annotations

import structlog

from httpobs.observability.metrics import InMemoryMetrics
from httpobs.observation.context import ExchangeContext
from httpobs.observation.convention import HttpObservationConvention


logger = structlog.get_logger("httpobs.observability")


def record_exchange(
    convention: HttpObservationConvention,
    context: ExchangeContext,
    elapsed_ms: float,
    metrics: InMemoryMetrics | None,
) -> None:
    """Freeze ``context``, feed its tags to ``metrics`` (if given) and emit one log event.

    Telemetry failures are logged and never propagate into the observed exchange.
    """

    context.freeze()
    try:
        low = convention.get_low_cardinality_key_values(context)
        high = convention.get_high_cardinality_key_values(context)
        if metrics is not None:
            metrics.observe_exchange(convention.name, low, elapsed_ms)
        logger.info(
            "http_exchange",
            observation=convention.name,
            contextual_name=convention.get_contextual_name(context),
            elapsed_ms=round(elapsed_ms, 2),
            tags=low.to_dict(),
            trace_tags=high.to_dict(),
        )
    except Exception:
        logger.exception("http_exchange_record_failed", observation=convention.name)
