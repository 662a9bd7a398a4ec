"""Utility modules for the Tuteliq client."""

from .retry import RetryPolicy, compute_backoff, default_is_retryable, with_retry

__all__ = [
    "RetryPolicy",
    "compute_backoff",
    "default_is_retryable",
    "with_retry",
]
