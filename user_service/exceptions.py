"""Domain errors raised by the persistence service and mapped to HTTP status codes by the handlers."""

from typing import Optional


class UserServiceError(Exception):
    """Base exception for user service failures."""


class ValidationError(UserServiceError):
    """Raised when input data is missing or invalid (400)."""


class DuplicateKeyError(UserServiceError):
    """Raised when a unique attribute (username/email) is already taken (400)."""

    def __init__(self, message: str = "Username or email already exists", field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(UserServiceError):
    """Raised when the requested user id does not exist (404)."""


class AuthError(UserServiceError):
    """Raised when credentials or tokens are invalid (401/403)."""
