"""Structured logging configuration for journalmon.

The monitor's own diagnostics go to stderr through structlog: JSON lines when
supervised, pretty console output on a terminal. Under systemd stderr is
itself captured by journald, which stamps each entry, so timestamps are left
out there. Stdlib loggers (httpx, wsgiref) are routed through the same
formatter.
"""

import logging
import os
import sys

import structlog


def configure_logging(
    service_name: str = "journalmon", level: str = "INFO", json_output: bool | None = None
) -> None:
    """Configure structured logging for the monitor.

    Args:
        service_name: Value bound as ``service`` on every log entry
        level: Log level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
        json_output: Force JSON (True) or console (False) rendering;
            default is JSON unless stderr is a terminal
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    if json_output is None:
        json_output = not sys.stderr.isatty()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]
    # systemd sets JOURNAL_STREAM when stderr is connected to the journal
    if "JOURNAL_STREAM" not in os.environ:
        shared_processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processor=renderer,
    )

    # stdout is left alone: `check-config` and `test` print results there
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # httpx logs every webhook request at INFO
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))

    structlog.contextvars.bind_contextvars(service=service_name)
