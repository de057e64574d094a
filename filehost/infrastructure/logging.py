"""structlog setup shared by the API server and the CLI"""
import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.types import Processor

from filehost.core.config import settings
from filehost.infrastructure.logging_processors import (
    add_request_context,
    add_service_context,
    format_exception_info,
    sanitize_sensitive_data,
    set_log_severity,
)

# Loggers that otherwise install their own handlers
_ADOPTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")


def _shared_processors() -> List[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        add_service_context,
        add_request_context,
        structlog.processors.add_log_level,
        set_log_severity,
        format_exception_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        # Runs last so nothing added later escapes redaction
        sanitize_sensitive_data,
    ]


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Route structlog and stdlib logging through one stdout handler

    Args:
        log_level: Overrides settings.log_level
        log_format: "json" or "console", overrides settings.log_format
    """
    level = getattr(logging, (log_level or settings.log_level).upper())
    shared = _shared_processors()

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format or settings.log_format),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    for name in _ADOPTED_LOGGERS:
        adopted = logging.getLogger(name)
        adopted.handlers = [handler]
        adopted.setLevel(level)
        adopted.propagate = False


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)
