"""Retry helpers with bounded exponential backoff."""

from .retry import RetryConfig, RetryExhaustedError, retry_call, with_retry

__all__ = [
    "RetryConfig",
    "RetryExhaustedError",
    "retry_call",
    "with_retry",
]
