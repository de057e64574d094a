import re
import time
from typing import Callable, Dict, Optional

from fastapi import Request, Response
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware

from filehost.infrastructure.logging import bind_context, clear_context, get_logger
from filehost.infrastructure.middleware.correlation import get_correlation_id

logger = get_logger(__name__)

# /api/users/{tenant_id}/...
_TENANT_PATH = re.compile(r"^/[^/]+/users/([^/]+)")

_SENSITIVE_HEADERS = frozenset({"authorization", "x-auth-token", "cookie", "set-cookie"})

_EXCLUDED_PATHS = frozenset({"/health", "/ready", "/metrics"})


def client_ip(request: Request) -> str:
    """Client address, trusting the first X-Forwarded-For hop"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


def tenant_from_path(path: str) -> Optional[str]:
    match = _TENANT_PATH.match(path)
    return match.group(1) if match else None


def redact_headers(headers: Headers) -> Dict[str, str]:
    return {
        key: "***REDACTED***" if key.lower() in _SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs one started and one finished event per request"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in _EXCLUDED_PATHS:
            return await call_next(request)

        started = time.perf_counter()

        bind_context(
            correlation_id=get_correlation_id(),
            request_method=request.method,
            request_path=path,
            client_ip=client_ip(request),
        )
        tenant_id = tenant_from_path(path)
        if tenant_id:
            bind_context(tenant_id=tenant_id)

        logger.info(
            "http_request_started",
            query_params=dict(request.query_params) or None,
            headers=redact_headers(request.headers),
            request_size=request.headers.get("content-length", 0),
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "http_request_failed",
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                error_type=type(e).__name__,
                exc_info=True,
            )
            raise
        else:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)

            log = logger.warning if response.status_code >= 400 else logger.info
            log(
                "http_request_completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
                response_size=response.headers.get("content-length", 0),
            )

            response.headers["X-Response-Time"] = f"{duration_ms}ms"
            return response
        finally:
            clear_context()
