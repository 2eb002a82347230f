"""Error kinds raised by the user store and mapped to HTTP responses."""
from typing import Any


class EcoLibresError(Exception):
    """Base exception for the application."""

    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(EcoLibresError):
    """A required field is missing or out of range; nothing was written."""

    status_code = 400


class NotFoundError(EcoLibresError):
    """The user, or a route inside the user record, does not exist."""

    status_code = 404


class PersistenceError(EcoLibresError):
    """The backing store was unavailable or rejected the write."""

    status_code = 500
