"""Resilience infrastructure: retry policies for HTTP and store calls."""

from collab.resilience.retry import (
    is_retryable_http_error,
    resilient_api_call,
    retry_transient_once,
)

__all__ = [
    "is_retryable_http_error",
    "resilient_api_call",
    "retry_transient_once",
]
