import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from filehost.core.exceptions import (BaseAPIException, ConflictError,
                                      InternalServerError, NotFoundError,
                                      PayloadTooLargeError, ValidationError)
from filehost.core.storage import (FileTooLargeError, InvalidOperationError,
                                   InvalidPathError, NodeExistsError,
                                   NodeNotFoundError, NotTextError,
                                   QuotaExceededError, StorageError)
from filehost.infrastructure.middleware.correlation import get_correlation_id

logger = structlog.get_logger(__name__)


def _json_response(exc: BaseAPIException) -> JSONResponse:
    correlation_id = get_correlation_id()
    error_response = exc.to_error_response(correlation_id=correlation_id)

    headers = dict(exc.headers or {})
    if correlation_id:
        headers["X-Correlation-ID"] = correlation_id

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(exclude_none=True),
        headers=headers,
    )


def storage_error_to_api_exception(exc: StorageError) -> BaseAPIException:
    """Translate storage failures into their HTTP equivalents"""
    if isinstance(exc, InvalidPathError):
        return ValidationError(message="Invalid path", details={"path": exc.path, "reason": exc.reason})

    if isinstance(exc, NodeNotFoundError):
        return NotFoundError(resource="File or directory", details={"path": exc.path})

    if isinstance(exc, NodeExistsError):
        return ConflictError(message="Target path already exists", details={"path": exc.path})

    if isinstance(exc, InvalidOperationError):
        return ValidationError(message=exc.reason, details={"path": exc.path})

    if isinstance(exc, NotTextError):
        return ValidationError(
            message="Only text files can be read as text",
            details={"path": exc.path, "mime_type": exc.mime_type},
        )

    if isinstance(exc, QuotaExceededError):
        usage = exc.usage
        return ValidationError(
            message="Disk quota exceeded: not enough space for this file",
            details={
                "error": "QUOTA_EXCEEDED",
                "disk_usage": {
                    "used": usage.used,
                    "total": usage.total,
                    "percentage": usage.percentage,
                    "required": exc.required_bytes,
                },
            },
        )

    if isinstance(exc, FileTooLargeError):
        return PayloadTooLargeError(
            message="File exceeds the maximum file size",
            details={"size": exc.size_bytes, "limit": exc.limit_bytes},
        )

    return InternalServerError(message="Storage operation failed")


async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    api_exc = storage_error_to_api_exception(exc)

    log = logger.warning if api_exc.status_code < 500 else logger.error
    log(
        "storage_exception",
        error_type=type(exc).__name__,
        error=str(exc),
        status_code=api_exc.status_code,
        path=request.url.path,
    )

    return _json_response(api_exc)


async def base_api_exception_handler(
    request: Request, exc: BaseAPIException
) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "api_exception",
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        path=request.url.path,
    )

    return _json_response(exc)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
        )

    logger.warning(
        "validation_error",
        errors=errors,
        path=request.url.path,
    )

    return _json_response(
        ValidationError(message="Request validation failed", details={"errors": errors})
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    correlation_id = get_correlation_id()

    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )

    headers = dict(exc.headers or {})
    if correlation_id:
        headers["X-Correlation-ID"] = correlation_id

    content = {"code": f"FH-{exc.status_code}", "message": str(exc.detail)}
    if correlation_id:
        content["correlation_id"] = correlation_id

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=True,
    )

    return _json_response(InternalServerError(message="An unexpected error occurred"))
