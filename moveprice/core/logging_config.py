# moveprice/core/logging_config.py
import logging
import sys

import structlog

from .settings import settings


def setup_logging(
    level: str | None = None, *, cache_logger_on_first_use: bool = True
) -> None:
    """
    Configure structlog + standaard logging.
    Logs gaan als JSON naar stdout; de engine zelf configureert nooit logging,
    dat doet de host applicatie (API, worker, script) bij startup.
    """
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=cache_logger_on_first_use,
    )

