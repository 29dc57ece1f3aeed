"""Structured logging configuration using structlog.

Call setup_logging() once at gateway startup before any log calls.
Every event carries `service` so build and deployment logs from several
gateway processes can be told apart once aggregated.
"""

from __future__ import annotations

import logging

import structlog

SERVICE_NAME = "build-ledger"


def setup_logging(
    *,
    json_output: bool = True,
    log_level: str = "INFO",
    service: str = SERVICE_NAME,
) -> None:
    """Configure structlog for the application.

    Args:
        json_output: If True, render logs as JSON. If False, use dev-friendly console output.
        log_level: Minimum log level to emit (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        service: Value of the `service` key added to every event.
    """

    def add_service(_logger, _method, event_dict):
        event_dict.setdefault("service", service)
        return event_dict

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_service,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping()[log_level.upper()]
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
