"""
Campus Delivery: Error taxonomy

Every failure crossing an HTTP boundary is normalized into a {type, message}
pair. Handlers never retry; they render the pair and stop.
"""
import logging
from enum import Enum

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    NETWORK = "NETWORK"
    AUTHENTICATION = "AUTHENTICATION"
    AUTHORIZATION = "AUTHORIZATION"
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    SERVER = "SERVER"
    UNKNOWN = "UNKNOWN"


DEFAULT_MESSAGES: dict[ErrorType, str] = {
    ErrorType.NETWORK: "Unable to connect to the server. Please check your internet connection and try again.",
    ErrorType.AUTHENTICATION: "Your session has expired. Please log in again.",
    ErrorType.AUTHORIZATION: "You do not have permission to perform this action.",
    ErrorType.VALIDATION: "Please check your input and try again.",
    ErrorType.NOT_FOUND: "The requested resource was not found.",
    ErrorType.SERVER: "Something went wrong on our end. Please try again later.",
    ErrorType.UNKNOWN: "An unexpected error occurred. Please try again.",
}

HTTP_ERROR_MESSAGES: dict[int, str] = {
    400: "Bad request. Please check your input.",
    401: "Authentication required. Please log in.",
    403: "Access denied. You do not have permission.",
    404: "Resource not found.",
    408: "Request timeout. Please try again.",
    429: "Too many requests. Please try again later.",
    500: "Internal server error. Please try again later.",
    502: "Bad gateway. Please try again later.",
    503: "Service unavailable. Please try again later.",
    504: "Gateway timeout. Please try again later.",
}

# Status code used when an error of a given type is rendered by this service
RESPONSE_STATUS: dict[ErrorType, int] = {
    ErrorType.NETWORK: 503,
    ErrorType.AUTHENTICATION: 401,
    ErrorType.AUTHORIZATION: 403,
    ErrorType.VALIDATION: 422,
    ErrorType.NOT_FOUND: 404,
    ErrorType.SERVER: 502,
    ErrorType.UNKNOWN: 500,
}


class NormalizedError(BaseModel):
    type: ErrorType
    message: str


class AppError(Exception):
    """Base class for errors that already know their normalized shape."""

    error_type: ErrorType = ErrorType.UNKNOWN
    status_code: int | None = None

    def __init__(self, message: str | None = None):
        self.message = message or DEFAULT_MESSAGES[self.error_type]
        super().__init__(self.message)

    @property
    def normalized(self) -> NormalizedError:
        return NormalizedError(type=self.error_type, message=self.message)

    @property
    def http_status(self) -> int:
        return self.status_code or RESPONSE_STATUS[self.error_type]


class ValidationFailure(AppError):
    error_type = ErrorType.VALIDATION


class ConflictFailure(ValidationFailure):
    """A well-formed request that conflicts with current state."""

    status_code = 409


class NotAuthenticated(AppError):
    error_type = ErrorType.AUTHENTICATION


class Forbidden(AppError):
    error_type = ErrorType.AUTHORIZATION


class NotFound(AppError):
    error_type = ErrorType.NOT_FOUND


class UpstreamError(AppError):
    """A downstream collaborator failed; carries the normalized classification."""

    def __init__(self, normalized: NormalizedError, upstream_status: int | None = None):
        self.error_type = normalized.type
        self.upstream_status = upstream_status
        super().__init__(normalized.message)


def normalize_error(exc: BaseException, context: str = "") -> NormalizedError:
    """Classify any raised error into the {type, message} display pair."""
    logger.warning("Error in %s: %r", context or "unknown context", exc)

    if isinstance(exc, AppError):
        return exc.normalized

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        message = HTTP_ERROR_MESSAGES.get(status, f"HTTP {status} error occurred.")
        if status == 401:
            error_type = ErrorType.AUTHENTICATION
        elif status == 403:
            error_type = ErrorType.AUTHORIZATION
        elif status == 404:
            error_type = ErrorType.NOT_FOUND
        elif status >= 500:
            error_type = ErrorType.SERVER
        elif status == 400:
            error_type = ErrorType.VALIDATION
        else:
            error_type = ErrorType.UNKNOWN
        return NormalizedError(type=error_type, message=message)

    if isinstance(exc, httpx.RequestError):
        return NormalizedError(type=ErrorType.NETWORK, message=DEFAULT_MESSAGES[ErrorType.NETWORK])

    text = str(exc)
    if "validation" in text or "invalid" in text:
        return NormalizedError(type=ErrorType.VALIDATION, message=text)

    return NormalizedError(type=ErrorType.UNKNOWN, message=DEFAULT_MESSAGES[ErrorType.UNKNOWN])


def upstream_error(exc: Exception, context: str) -> UpstreamError:
    status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
    return UpstreamError(normalize_error(exc, context), upstream_status=status)


def validation_error(errors: dict[str, str | None]) -> ValidationFailure:
    """Collapse per-field messages into a single validation failure."""
    messages = [m for m in errors.values() if m]
    return ValidationFailure(". ".join(messages) if messages else "Please check your input.")
