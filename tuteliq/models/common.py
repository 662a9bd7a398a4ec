"""Usage and request accounting models."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Usage:
    """Monthly message usage reported by the API."""

    limit: int
    used: int
    remaining: int


@dataclass
class RateLimitInfo:
    """Per-minute rate limit state reported by the API."""

    limit: int
    remaining: int
    reset: Optional[int] = None


@dataclass
class RequestMeta:
    """Metadata for the most recent successful request."""

    request_id: Optional[str]
    latency_ms: float
    usage: Optional[Usage] = None
