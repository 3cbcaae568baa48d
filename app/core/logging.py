"""
core/logging.py
---------------
structlog setup for the whole application.

Output format follows DEBUG: a coloured console renderer while developing,
one JSON object per line otherwise. Request-scoped values (request id,
method, path, user id) are held in structlog's contextvars and merged into
every event logged while the request is being handled.
"""

import logging
import sys

import structlog

from app.core.config import settings

# Noisy libraries are kept at WARNING outside of DEBUG.
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "passlib")


def configure_logging() -> None:
    if settings.LOG_LEVEL:
        level = logging.getLevelNamesMapping()[settings.LOG_LEVEL.upper()]
    else:
        level = logging.DEBUG if settings.DEBUG else logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    if not settings.DEBUG:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.DEBUG:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request_context(**values) -> None:
    """Attach values to every event logged for the current request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str = __name__):
    return structlog.get_logger(name)
