"""Error taxonomy raised by the Linear client facade.

Every error leaving the facade is an AppError carrying an HTTP-like status
code, a stable error code and, where useful, the identifiers of the failed
call. ``handle_error`` flattens any exception into an ErrorResponse for the
layer that serializes results.
"""

import re
from enum import Enum
from typing import Any, Optional

from linearkit.domain.models.common import ErrorResponse

CLIENT_ERROR_STATUSES = frozenset({400, 404})
_CLIENT_STATUS_IN_MESSAGE = re.compile(r"(?<![\w-])(400|404)(?![\w-])")


class ErrorCode(str, Enum):
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    """Application error with a status code, an error code and optional details."""

    status_code: int = 500
    code: str = ErrorCode.INTERNAL_ERROR.value

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details


class ClientError(AppError):
    """The request was invalid or its target does not exist. Never retried."""

    status_code = 400
    code = ErrorCode.BAD_REQUEST.value


class NotFoundError(ClientError):
    """The requested entity does not exist."""

    status_code = 404
    code = ErrorCode.NOT_FOUND.value


class TransientError(AppError):
    """A remote failure that persisted through every retry attempt."""


class EmptyResultError(AppError):
    """The remote call succeeded but returned no entity where one was required."""


def status_code_of(exc: BaseException) -> Optional[int]:
    """Extracts an HTTP-like status from an exception, if it carries one."""
    if isinstance(exc, AppError):
        return exc.status_code
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    return None


def client_status_of(exc: BaseException) -> Optional[int]:
    """Returns 400 or 404 when the failure has client-error semantics, else None.

    An explicit status attribute wins; otherwise the message is searched for a
    standalone "400" or "404". Issue keys such as "ENG-404" do not count.
    """
    if isinstance(exc, ClientError):
        return exc.status_code
    status = status_code_of(exc)
    if status is not None:
        return status if status in CLIENT_ERROR_STATUSES else None
    match = _CLIENT_STATUS_IN_MESSAGE.search(str(exc))
    return int(match.group(1)) if match else None


def is_client_error(exc: BaseException) -> bool:
    """True if the failure has 400/404 semantics and retrying cannot help."""
    return client_status_of(exc) is not None


def is_retryable(exc: BaseException) -> bool:
    """True for failures worth another attempt."""
    return not (is_client_error(exc) or isinstance(exc, EmptyResultError))


def handle_error(error: Any) -> ErrorResponse:
    """Converts an error into a standardized error response."""
    if isinstance(error, AppError):
        return ErrorResponse(
            status_code=error.status_code,
            code=error.code,
            message=error.message,
            details=error.details,
        )
    if isinstance(error, BaseException):
        return ErrorResponse(
            status_code=500,
            code=ErrorCode.INTERNAL_ERROR.value,
            message=str(error) or type(error).__name__,
            details=None,
        )
    return ErrorResponse(
        status_code=500,
        code=ErrorCode.INTERNAL_ERROR.value,
        message=error if isinstance(error, str) else "An unknown error occurred",
        details=None,
    )
