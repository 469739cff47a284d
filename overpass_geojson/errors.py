"""
Error taxonomy for overpass-geojson.

Per-attempt errors are raised by the transport and recovered inside the
client loop. Callers of the client receive a QueryResponse instead of an
exception; ``QueryResponse.raise_for_error()`` converts it back.
"""

from enum import Enum
from typing import List, Optional


class ErrorKind(Enum):
    """Failure categories surfaced on results and events."""
    VALIDATION = "validation"
    TRANSPORT = "transport"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    PARSE = "parse"
    EXHAUSTED = "exhausted"
    CONFIGURATION = "configuration"


class OverpassError(Exception):
    """Base class for all overpass-geojson errors."""

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(self, message: str, endpoint: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint


class ConfigurationError(OverpassError):
    """Malformed configuration detected at startup."""
    kind = ErrorKind.CONFIGURATION


class ValidationError(OverpassError):
    """Bounding box, limit or filter outside the allowed domain."""
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class TransportError(OverpassError):
    """Connection failure, DNS failure, timeout or unexpected status."""
    kind = ErrorKind.TRANSPORT


class RateLimitError(TransportError):
    """Upstream answered HTTP 429."""
    kind = ErrorKind.RATE_LIMIT


class UpstreamServerError(TransportError):
    """Upstream answered with a 5xx status."""
    kind = ErrorKind.SERVER

    def __init__(self, message: str, endpoint: Optional[str] = None, status_code: int = 500) -> None:
        super().__init__(message, endpoint=endpoint)
        self.status_code = status_code


class ParseError(TransportError):
    """HTTP 200 whose body is not an Overpass JSON payload."""
    kind = ErrorKind.PARSE


class ExhaustedError(OverpassError):
    """Every endpoint failed for one execute() call."""
    kind = ErrorKind.EXHAUSTED

    def __init__(self, message: str, last_error: Optional[OverpassError] = None) -> None:
        super().__init__(message, endpoint=last_error.endpoint if last_error else None)
        self.last_error = last_error


_KIND_TO_ERROR = {
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.TRANSPORT: TransportError,
    ErrorKind.RATE_LIMIT: RateLimitError,
    ErrorKind.SERVER: UpstreamServerError,
    ErrorKind.PARSE: ParseError,
    ErrorKind.EXHAUSTED: ExhaustedError,
    ErrorKind.CONFIGURATION: ConfigurationError,
}


def error_for_kind(kind: ErrorKind, message: str) -> OverpassError:
    """Build the exception matching an ErrorKind."""
    return _KIND_TO_ERROR.get(kind, OverpassError)(message)
