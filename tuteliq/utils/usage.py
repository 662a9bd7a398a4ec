"""Parse usage and rate-limit accounting headers from API responses."""

import logging
from typing import Mapping, Optional

from ..models.common import RateLimitInfo, Usage

logger = logging.getLogger(__name__)


def _int_header(headers: Mapping[str, str], name: str) -> Optional[int]:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.debug(f"Ignoring non-integer {name} header: {value!r}")
        return None


def parse_usage(headers: Mapping[str, str]) -> Optional[Usage]:
    """Monthly usage from x-monthly-* headers, or None if any is missing."""
    limit = _int_header(headers, "x-monthly-limit")
    used = _int_header(headers, "x-monthly-used")
    remaining = _int_header(headers, "x-monthly-remaining")
    if limit is None or used is None or remaining is None:
        return None
    return Usage(limit=limit, used=used, remaining=remaining)


def parse_rate_limit(headers: Mapping[str, str]) -> Optional[RateLimitInfo]:
    """Rate limit state from x-ratelimit-* headers; reset is optional."""
    limit = _int_header(headers, "x-ratelimit-limit")
    remaining = _int_header(headers, "x-ratelimit-remaining")
    if limit is None or remaining is None:
        return None
    return RateLimitInfo(
        limit=limit,
        remaining=remaining,
        reset=_int_header(headers, "x-ratelimit-reset"),
    )
