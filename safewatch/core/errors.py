"""
Failure taxonomy shared by every component.

Most of the client core reports failures as values (a ``Failure`` model,
see ``safewatch.models.common``) rather than raising, so one geocoding
miss never aborts a batch. The exception classes below are used at the
few seams that do raise: the backend client's boundary validation and
the device position source.
"""

from enum import Enum


class FailureKind(str, Enum):
    NETWORK = "network"
    GEOCODING_MISS = "geocoding_miss"
    MALFORMED_RESPONSE = "malformed_response"
    LOCATION_UNAVAILABLE = "location_unavailable"
    VALIDATION = "validation"


class SafeWatchError(Exception):
    """Base class; ``kind`` maps the exception onto the failure taxonomy."""

    kind: FailureKind = FailureKind.NETWORK

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class NetworkFailure(SafeWatchError):
    kind = FailureKind.NETWORK

    def __init__(self, message: str = "", status_code: int | None = None, body: dict | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body or {}


class MalformedResponse(SafeWatchError):
    kind = FailureKind.MALFORMED_RESPONSE


class LocationUnavailable(SafeWatchError):
    kind = FailureKind.LOCATION_UNAVAILABLE


class ValidationFailure(SafeWatchError):
    kind = FailureKind.VALIDATION
