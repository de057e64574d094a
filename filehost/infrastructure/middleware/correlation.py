import uuid
from contextvars import ContextVar
from typing import Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from filehost.infrastructure.logging import bind_context, unbind_context

CORRELATION_HEADER = "X-Correlation-ID"

# Longer client supplied ids are replaced rather than logged
_MAX_CORRELATION_ID_LENGTH = 128

correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


def _incoming_correlation_id(request: Request) -> Optional[str]:
    value = request.headers.get(CORRELATION_HEADER) or request.headers.get("X-Request-ID")
    if value and len(value) <= _MAX_CORRELATION_ID_LENGTH and value.isprintable():
        return value
    return None


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Tag every request with a correlation id, reusing the caller's when sane"""

    async def dispatch(self, request: Request, call_next):
        correlation_id = _incoming_correlation_id(request) or str(uuid.uuid4())

        token = correlation_id_var.set(correlation_id)
        bind_context(correlation_id=correlation_id)

        try:
            response: Response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            unbind_context("correlation_id")
            correlation_id_var.reset(token)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()
