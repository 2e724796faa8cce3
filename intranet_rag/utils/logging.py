"""
Structured logging for the intranet retrieval core.

Everything in this package logs through structlog. Two renderers are
supported: JSON lines (default, suitable for log shipping) and a coloured
console renderer for local work. Each retrieval query runs inside a
correlation scope so every event emitted while answering it carries the
same ``correlation_id``.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4

import structlog
from structlog.types import EventDict, Processor

APP_NAME = "intranet-rag"

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Return the correlation ID bound to the current context, if any."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Bind a correlation ID to the current context.

    Args:
        correlation_id: ID to bind. A new UUID4 is generated when omitted.

    Returns:
        The correlation ID now in effect.
    """
    cid = correlation_id or str(uuid4())
    correlation_id_var.set(cid)
    return cid


def clear_correlation_id() -> None:
    """Remove the correlation ID from the current context."""
    correlation_id_var.set(None)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Run a block under a correlation ID.

    An ID that is already bound (e.g. by the chat layer) is reused and left in
    place; otherwise a fresh one is bound for the duration of the block.
    """
    existing = get_correlation_id()
    if existing is not None and correlation_id is None:
        yield existing
        return

    cid = correlation_id or str(uuid4())
    token = correlation_id_var.set(cid)
    try:
        yield cid
    finally:
        correlation_id_var.reset(token)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Structlog processor: attach the current correlation ID."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Structlog processor: tag the event with the application name."""
    event_dict["app"] = APP_NAME
    return event_dict


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        log_format: ``json`` for machine-readable output, ``console`` for
            human-readable coloured output.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        add_app_context,
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
        std_format = "%(message)s"
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
        std_format = "%(levelname)s %(name)s %(message)s"

    logging.basicConfig(
        format=std_format,
        stream=sys.stdout,
        level=getattr(logging, log_level),
        force=True,
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, optionally named."""
    return structlog.get_logger(name)


class LoggerMixin:
    """
    Give a class a ``logger`` property bound to its class name.

    Usage:
        class DocumentStore(LoggerMixin):
            def clear(self):
                self.logger.info("store_cleared")
    """

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger
