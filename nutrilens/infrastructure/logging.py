"""Logging setup: stdlib root handler plus structlog processors."""

import logging

import structlog

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """
    Configure stdlib logging and structlog once per process.

    Args:
        level: Root log level name (DEBUG, INFO, ...)
    """
    global _configured

    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.getLogger().setLevel(log_level)
    if _configured:
        return

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )
    _configured = True
