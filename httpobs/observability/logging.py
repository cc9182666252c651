from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from httpobs.config import get_settings

HANDLER_NAME = "httpobs.json"
PACKAGE_LOGGER = "httpobs"

_CONFIGURED = False


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(level: int | None = None) -> None:
    """Send ``http_exchange`` events and other ``httpobs`` logs to stdout as JSON.

    The level defaults to ``LOG_LEVEL`` and applies to the ``httpobs`` logger
    tree only. The root logger gets one named JSON handler; handlers installed
    by others (test runners, the ASGI server) stay in place.

    Safe to call multiple times (no-op after first call).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    if level is None:
        level = get_settings().log_level_number

    pre_chain = _shared_processors()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if h.get_name() != HANDLER_NAME] + [handler]

    logging.getLogger(PACKAGE_LOGGER).setLevel(level)

    _CONFIGURED = True
