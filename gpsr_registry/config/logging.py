"""Structured logging setup.

Modules log through ``logging.getLogger(__name__)``; this wires structlog on
top so output is timestamped and rendered for the current environment.
"""

import logging

import structlog

from gpsr_registry.config.settings import Environment, Settings, get_settings

_LOG_NAME_TO_LEVEL: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog and route stdlib loggers through it."""
    settings = settings or get_settings()
    level = _LOG_NAME_TO_LEVEL[settings.LOG_LEVEL.value]

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.ENVIRONMENT == Environment.DEV
        else structlog.processors.JSONRenderer()
    )
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[
                structlog.stdlib.add_logger_name,
                *shared_processors,
            ],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
