"""
Structured Logging Configuration with structlog
"""

import logging
import sys
from typing import Any

import structlog

from oplog_stream.models.operation import Operation


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Configure structlog for JSON structured logging

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" or "console")
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.JSONRenderer(default=str),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_context(**kwargs: Any) -> None:
    """
    Bind context variables to all log messages in current context

    Args:
        **kwargs: Key-value pairs to add to log context
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop all context variables bound in the current context"""
    structlog.contextvars.clear_contextvars()


def log_operation(logger: structlog.stdlib.BoundLogger, operation: Operation) -> None:
    """
    Log one decoded operation

    Args:
        logger: Structlog logger
        operation: Operation pulled from an oplog stream
    """
    timestamp = operation.timestamp
    logger.info(
        "oplog_operation",
        kind=operation.kind.name.lower(),
        namespace=operation.namespace,
        ts=f"{timestamp.time}.{timestamp.inc}" if timestamp is not None else None,
        op_id=operation.op_id,
    )
