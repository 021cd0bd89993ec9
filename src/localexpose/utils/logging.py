"""Structured logging utilities for localexpose."""

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any

import structlog


def setup_logging(level: str = "INFO", format: str = "console", output: str = "stderr") -> None:
    """Configure structured logging.

    Progress events go to stderr by default so that the exposed server URL
    printed on stdout stays machine readable.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        output: Output destination (stdout or stderr)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    stream = sys.stdout if output == "stdout" else sys.stderr

    logging.basicConfig(format="%(message)s", stream=stream, level=log_level)

    if format == "json":
        processors = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)


def vcluster_log_context(vcluster_name: str, vcluster_namespace: str, **kwargs: Any) -> AbstractContextManager:
    """Bind the virtual cluster identity to every log event in the block.

    Args:
        vcluster_name: Virtual cluster name
        vcluster_namespace: Virtual cluster namespace
        **kwargs: Additional context fields

    Returns:
        Context manager binding the fields
    """
    return structlog.contextvars.bound_contextvars(
        vcluster=vcluster_name, vcluster_namespace=vcluster_namespace, **kwargs
    )
