"""
Error types for the Tuteliq client.

All API failures surface as a single :class:`TuteliqError` tagged with an
:class:`ErrorKind`. Callers branch on ``error.kind`` rather than on the
exception class. Voice session usage and lifecycle failures use
:class:`VoiceStreamError`.
"""

import enum
from typing import Any, Dict, Mapping, Optional


class ErrorKind(str, enum.Enum):
    """Failure categories reported by the client."""

    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    SERVER = "server"
    TIMEOUT = "timeout"
    NETWORK = "network"
    QUOTA_EXCEEDED = "quota_exceeded"
    TIER_ACCESS = "tier_access"


RETRYABLE_KINDS = frozenset(
    {ErrorKind.RATE_LIMIT, ErrorKind.SERVER, ErrorKind.NETWORK, ErrorKind.TIMEOUT}
)

DEFAULT_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.AUTHENTICATION: "Authentication failed. Please check your API key.",
    ErrorKind.RATE_LIMIT: "Rate limit exceeded. Please try again later.",
    ErrorKind.VALIDATION: "Request validation failed.",
    ErrorKind.NOT_FOUND: "Resource not found",
    ErrorKind.SERVER: "Server error. Please try again later.",
    ErrorKind.TIMEOUT: "Request timed out",
    ErrorKind.NETWORK: "Network error. Please check your connection.",
    ErrorKind.QUOTA_EXCEEDED: (
        "Monthly message limit reached. Please upgrade your plan or purchase credits."
    ),
    ErrorKind.TIER_ACCESS: "This endpoint is not available on your current plan.",
}

# Status codes implied by a kind when the caller does not pass one
DEFAULT_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.SERVER: 500,
    ErrorKind.QUOTA_EXCEEDED: 429,
    ErrorKind.TIER_ACCESS: 403,
}

QUOTA_CODE_MARKERS = ("QUOTA", "MONTHLY_LIMIT", "MESSAGE_LIMIT")


class TuteliqError(Exception):
    """
    Error raised by the Tuteliq client.

    Attributes:
        kind: Failure category
        message: Human-readable description
        status_code: HTTP status, if the failure came from a response
        details: Extra error details sent by the API
        code: Machine-readable API error code (e.g. "RATE_LIMIT_EXCEEDED")
        suggestion: Suggested action to resolve the error
        links: Helpful links (e.g. {"upgrade": "https://tuteliq.ai/pricing"})
        retry_after: Server-requested wait in seconds (rate limits only)
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        details: Any = None,
        code: Optional[str] = None,
        suggestion: Optional[str] = None,
        links: Optional[Dict[str, str]] = None,
        retry_after: Optional[float] = None,
    ):
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        self.status_code = status_code if status_code is not None else DEFAULT_STATUS.get(kind)
        self.details = details
        self.code = code
        self.suggestion = suggestion
        self.links = links
        self.retry_after = retry_after
        super().__init__(self.message)

    @property
    def is_retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def __repr__(self) -> str:
        return (
            f"TuteliqError(kind={self.kind.value!r}, message={self.message!r}, "
            f"status_code={self.status_code!r}, code={self.code!r})"
        )


def validation_error(message: str, details: Any = None) -> TuteliqError:
    """Shorthand for client-side input errors."""
    return TuteliqError(ErrorKind.VALIDATION, message, details=details)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in seconds. HTTP-date values are ignored."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds > 0 else None


def error_from_response(
    status_code: int,
    body: Any,
    headers: Optional[Mapping[str, str]] = None,
) -> TuteliqError:
    """
    Map a non-2xx API response to a TuteliqError.

    Args:
        status_code: HTTP status code
        body: Decoded JSON body, or None if the body was not JSON
        headers: Response headers (used for Retry-After)

    Returns:
        TuteliqError with kind chosen from the status code and error code
    """
    error_obj: Mapping[str, Any] = {}
    if isinstance(body, Mapping):
        nested = body.get("error")
        if isinstance(nested, Mapping):
            error_obj = nested
        else:
            error_obj = body

    message = error_obj.get("message") if isinstance(error_obj.get("message"), str) else None
    code = error_obj.get("code") if isinstance(error_obj.get("code"), str) else None
    meta = {
        "status_code": status_code,
        "details": error_obj.get("details"),
        "code": code,
        "suggestion": error_obj.get("suggestion"),
        "links": error_obj.get("links"),
    }

    if status_code in (400, 422):
        kind = ErrorKind.VALIDATION
    elif status_code == 401:
        kind = ErrorKind.AUTHENTICATION
    elif status_code == 403:
        kind = ErrorKind.TIER_ACCESS
    elif status_code == 404:
        kind = ErrorKind.NOT_FOUND
    elif status_code == 429:
        if code and any(marker in code.upper() for marker in QUOTA_CODE_MARKERS):
            kind = ErrorKind.QUOTA_EXCEEDED
        else:
            retry_after = parse_retry_after((headers or {}).get("retry-after"))
            return TuteliqError(ErrorKind.RATE_LIMIT, message, retry_after=retry_after, **meta)
    else:
        kind = ErrorKind.SERVER

    return TuteliqError(kind, message, **meta)


class VoiceStreamErrorKind(str, enum.Enum):
    """Voice session usage and lifecycle failures."""

    NOT_CONNECTED = "not_connected"
    END_ALREADY_PENDING = "end_already_pending"
    CONNECTION_FAILED = "connection_failed"
    CLOSED_BEFORE_READY = "closed_before_ready"
    CLOSED_BEFORE_SUMMARY = "closed_before_summary"


class VoiceStreamError(Exception):
    """Raised by voice stream sessions; ``kind`` tells usage errors from connection loss."""

    def __init__(
        self,
        kind: VoiceStreamErrorKind,
        message: str,
        *,
        close_code: Optional[int] = None,
        close_reason: Optional[str] = None,
    ):
        self.kind = kind
        self.message = message
        self.close_code = close_code
        self.close_reason = close_reason
        super().__init__(message)
