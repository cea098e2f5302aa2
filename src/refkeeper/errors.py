from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when no authenticated identity accompanies the request."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class AccessDeniedError(UserError):
    """Raised when a user tries to access a resource they do not have permission for."""


class ValidationError(UserError):
    """Raised when user input fails validation."""


class StoreError(Exception):
    """Transient document store failure.

    Every cascade step is idempotent, so the whole operation that raised
    this error can be retried by the caller.
    """


class StoreTimeoutError(StoreError):
    """Raised when a fanned-out enumeration step exceeds its timeout."""


class BatchTooLargeError(ValueError):
    """Raised when a single batch holds more writes than the store accepts."""
