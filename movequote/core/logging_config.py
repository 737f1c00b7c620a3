# movequote/core/logging_config.py
import logging
import sys
from decimal import Decimal
from typing import Any, Dict

import structlog


def render_decimals(_logger: Any, _method: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Money is Decimal everywhere; log it as exact strings, never floats."""
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = str(value)
    return event_dict


def setup_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Pricing runs log one event per run plus one per module decision.
    JSON to stdout in production; console rendering for local debugging.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, str(level).upper(), logging.INFO),
        force=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            render_decimals,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger("movequote")
