"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure the service can report to a client is one of four kinds.
Each kind is its own exception class carrying the HTTP status it maps to,
so handlers switch on the TYPE of the error, never on its message text.

    ┌──────────────────────────┬────────┬──────────────────────────────────┐
    │ Exception                │ Status │ Raised when                      │
    ├──────────────────────────┼────────┼──────────────────────────────────┤
    │ ValidationError          │  400   │ bad JSON, empty field, bad id    │
    │ NotFoundError            │  404   │ no record with that id           │
    │ MethodNotAllowedError    │  405   │ method not valid for the path    │
    │ StorageError             │  500   │ connectivity, constraint, scan   │
    └──────────────────────────┴────────┴──────────────────────────────────┘

ConfigError is separate: it is never turned into a response. It stops the
process at startup.

=============================================================================
"""

from typing import List, Optional

from .http.status_codes import HTTPStatus


class ServiceError(Exception):
    """
    Base class for errors that map onto an HTTP response.

    Like HTTPParseError, the exception carries the status code that
    should be sent to the client.
    """

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status: Optional[HTTPStatus] = None):
        super().__init__(message)
        if status is not None:
            self.status = status


class ValidationError(ServiceError):
    """Malformed JSON payload, empty required field or malformed id."""

    status = HTTPStatus.BAD_REQUEST


class NotFoundError(ServiceError):
    """No record matches the requested id."""

    status = HTTPStatus.NOT_FOUND


class MethodNotAllowedError(ServiceError):
    """The HTTP method is not valid for the requested path."""

    status = HTTPStatus.METHOD_NOT_ALLOWED

    def __init__(self, message: str, allowed: Optional[List[str]] = None):
        super().__init__(message)
        self.allowed = allowed or []


class StorageError(ServiceError):
    """The persistence layer failed (connectivity, constraint, scan)."""

    status = HTTPStatus.INTERNAL_SERVER_ERROR


class ConfigError(ValueError):
    """Required configuration is missing or invalid. Fatal at startup."""
