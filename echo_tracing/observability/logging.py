"""JSON logging for the service and for uvicorn.

Every line is one JSON object with ``event``, ``level`` and ``timestamp``;
lines written while a span is active also carry ``trace_id`` and ``span_id``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from opentelemetry import trace
from structlog.types import EventDict, Processor, WrappedLogger


UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_CONFIGURED = False


def add_trace_context(_logger: WrappedLogger, _method_name: str, event_dict: EventDict) -> EventDict:
    """Attach the active span's ids so log lines can be joined with traces."""

    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict.setdefault("trace_id", trace.format_trace_id(span_context.trace_id))
        event_dict.setdefault("span_id", trace.format_span_id(span_context.span_id))
    return event_dict


def _shared_processors() -> list[Processor]:
    # Runs for structlog events and, as foreign_pre_chain, for stdlib records.
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_trace_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _json_handler(stream: TextIO, shared: list[Processor]) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared,
        )
    )
    return handler


def configure_logging(level: int = logging.INFO, stream: TextIO | None = None) -> None:
    """Route structlog and stdlib (uvicorn included) through one JSON handler.

    ``stream`` defaults to stdout. Only the first call has an effect.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = _json_handler(stream if stream is not None else sys.stdout, shared)
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # uvicorn runs with log_config=None; its loggers write through our handler only.
    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = [handler]
        uvicorn_logger.propagate = False
        uvicorn_logger.setLevel(level)

    _CONFIGURED = True


def reset_logging() -> None:
    """Undo configure_logging() so it can run again (tests only)."""

    global _CONFIGURED
    structlog.reset_defaults()
    logging.getLogger().handlers = []
    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True
    _CONFIGURED = False


def level_from_name(name: str) -> int:
    level: Any = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO
