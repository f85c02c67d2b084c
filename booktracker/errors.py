"""
Error taxonomy for the Book Tracker API.

Every failure the API reports carries an ErrorKind; the HTTP status for a
kind is looked up in STATUS_BY_KIND by the exception handlers in main.py.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorKind(str, Enum):
    """Kinds of failure the API distinguishes."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    ROUTE_NOT_FOUND = "route_not_found"
    INTERNAL = "internal"


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ROUTE_NOT_FOUND: 404,
    ErrorKind.INTERNAL: 500,
}


class BookTrackerError(Exception):
    """Base class for errors reported to API clients."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message: str = "internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class ValidationError(BookTrackerError):
    """Request fields are missing, malformed or out of range."""
    kind = ErrorKind.VALIDATION
    default_message = "invalid request"


class NotFoundError(BookTrackerError):
    """No book matches the given id."""
    kind = ErrorKind.NOT_FOUND
    default_message = "book not found"


class RouteNotFoundError(BookTrackerError):
    """No handler matches the request method and path."""
    kind = ErrorKind.ROUTE_NOT_FOUND
    default_message = "route not found"


class InternalError(BookTrackerError):
    """Unexpected failure, including losing the database mid-request."""
    kind = ErrorKind.INTERNAL
