"""HTTP facing errors.

Storage errors are translated into these by the API exception handlers; the
classes only fix the status code and the stable ``FH-`` error code.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    correlation_id: Optional[str] = None


class BaseAPIException(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        self.headers = headers
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return f"FH-{self.status_code}"

    def to_error_response(self, correlation_id: Optional[str] = None) -> ErrorResponse:
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details,
            correlation_id=correlation_id
        )


class ValidationError(BaseAPIException):
    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(BaseAPIException):
    status_code = 401
    default_message = "Authentication required"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(BaseAPIException):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(BaseAPIException):
    status_code = 404

    def __init__(self, resource: str = "Resource", details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{resource} not found", details)


class ConflictError(BaseAPIException):
    status_code = 409
    default_message = "Resource conflict"


class PayloadTooLargeError(BaseAPIException):
    status_code = 413
    default_message = "Payload too large"


class InternalServerError(BaseAPIException):
    pass


ERROR_CODES = {
    "FH-400": "Bad Request - The request was invalid or malformed",
    "FH-401": "Unauthorized - Authentication is required",
    "FH-403": "Forbidden - Access to another tenant's files is denied",
    "FH-404": "Not Found - The requested file or directory does not exist",
    "FH-409": "Conflict - The target path already exists",
    "FH-413": "Payload Too Large - The file exceeds the upload size limit",
    "FH-500": "Internal Server Error - An unexpected error occurred"
}
