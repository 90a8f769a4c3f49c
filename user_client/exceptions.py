"""Errors surfaced to the client when an API call or a store transition fails."""

from typing import Optional


class ApiError(Exception):
    """Base class for failed API calls."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BadRequestError(ApiError):
    """400: missing/invalid fields or duplicate username/email."""


class UnauthorizedError(ApiError):
    """401/403: bad credentials or a missing/expired token."""


class NotFoundError(ApiError):
    """404: the user does not exist."""


class ServerError(ApiError):
    """5xx responses."""


class RequestFailedError(ApiError):
    """Timeouts and connection failures; the request never got an answer."""


class FetchInProgressError(Exception):
    """Raised when a page fetch is requested while another one is still in flight."""


_STATUS_ERRORS = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: UnauthorizedError,
    404: NotFoundError,
}


def error_for_status(status_code: int, message: str) -> ApiError:
    if status_code in _STATUS_ERRORS:
        return _STATUS_ERRORS[status_code](message, status_code)
    if status_code >= 500:
        return ServerError(message, status_code)
    return ApiError(message, status_code)
