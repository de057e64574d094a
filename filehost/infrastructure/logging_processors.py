"""Custom structlog processors for the file hosting service"""

import socket
import sys
import traceback
from typing import Any

from structlog.contextvars import get_contextvars
from structlog.types import EventDict, WrappedLogger

_HOSTNAME = socket.gethostname()

_REQUEST_CONTEXT_KEYS = (
    "correlation_id",
    "tenant_id",
    "request_method",
    "request_path",
    "client_ip",
)

_SENSITIVE_KEYS = (
    "password", "token", "secret", "api_key", "authorization", "bearer", "cookie",
)

REDACTED = "***REDACTED***"


def add_service_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service name, environment and host"""
    from filehost.core.config import settings

    event_dict.setdefault("service", settings.app_name)
    event_dict.setdefault("environment", settings.environment)
    event_dict.setdefault("hostname", _HOSTNAME)
    return event_dict


def add_request_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Copy request-scoped values bound by the middleware"""
    context = get_contextvars()

    for key in _REQUEST_CONTEXT_KEYS:
        if context.get(key) is not None:
            event_dict.setdefault(key, context[key])

    return event_dict


def _is_sensitive(key: str) -> bool:
    lower_key = key.lower()
    return any(sensitive in lower_key for sensitive in _SENSITIVE_KEYS)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if isinstance(key, str) and _is_sensitive(key) else _redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_redact(item) for item in value)
    return value


def sanitize_sensitive_data(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask credentials that ended up in a log call, however deeply nested"""
    return _redact(event_dict)


def format_exception_info(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace exc_info with a structured exception block"""
    exc_info = event_dict.pop("exc_info", None)
    if not exc_info:
        return event_dict

    if isinstance(exc_info, BaseException):
        exc_info = (type(exc_info), exc_info, exc_info.__traceback__)
    elif not isinstance(exc_info, tuple):
        exc_info = sys.exc_info()

    exc_type, exc_value, exc_tb = exc_info
    if exc_type is not None:
        event_dict["exception"] = {
            "type": exc_type.__name__,
            "message": str(exc_value),
            "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
        }

    return event_dict


def set_log_severity(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Upper-case severity field for log aggregation systems"""
    level = event_dict.get("level", method_name)
    event_dict["severity"] = str(level).upper()
    return event_dict
