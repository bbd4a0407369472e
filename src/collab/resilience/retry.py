"""Retry policies built on tenacity.

Two policies are provided:

- ``resilient_api_call`` for outbound HTTP calls (messaging provider):
  a few attempts with exponential backoff and jitter, bounded in total
  time, retrying only errors that can succeed on a second try.
- ``retry_transient_once`` for store calls: one automatic retry of a
  :class:`TransientError`.  Safe because status transitions are
  compare-and-swap and either apply once or report they already applied.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import httpx
import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential_jitter,
    wait_fixed,
)

from collab.domain.errors import TransientError

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])


def is_retryable_http_error(exc: BaseException) -> bool:
    """Return True for transport failures, 429, and 5xx responses."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, httpx.TransportError)


def _log_final_failure(retry_state: RetryCallState) -> Any:
    """Log exhaustion and re-raise the last exception.

    Args:
        retry_state: Tenacity retry state with attempt info and exception.
    """
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    api_name = getattr(retry_state.fn, "_api_name", "unknown") if retry_state.fn else "unknown"

    logger.error(
        "API call failed after all retries",
        api_name=api_name,
        attempts=retry_state.attempt_number,
        exception=str(exception),
    )
    assert retry_state.outcome is not None
    return retry_state.outcome.result()


def _before_sleep_log(retry_state: RetryCallState) -> None:
    """Log a warning before each retry attempt.

    Args:
        retry_state: Tenacity retry state with attempt info.
    """
    api_name = getattr(retry_state.fn, "_api_name", "unknown") if retry_state.fn else "unknown"
    logger.warning(
        "Retrying API call",
        api_name=api_name,
        attempt=retry_state.attempt_number,
        wait=retry_state.next_action.sleep if retry_state.next_action else 0,
    )


def resilient_api_call(
    api_name: str,
    attempts: int = 3,
    max_delay: float = 10.0,
) -> Callable[[F], F]:
    """Create a retry decorator for an outbound HTTP call.

    Returns a tenacity retry decorator configured with:
    - *attempts* attempts maximum, stopping early once *max_delay* seconds
      have elapsed
    - Exponential backoff with jitter (0.5s initial, 2s max, 0.5s jitter)
    - Retries only for transport errors, 429, and 5xx responses
    - Warning log before each retry, error log on exhaustion
    - Original exception re-raised after exhaustion

    Args:
        api_name: Human-readable name for the API (used in logs).
        attempts: Maximum number of attempts.
        max_delay: Upper bound in seconds on the whole retry sequence.

    Returns:
        A decorator that wraps the function with retry logic.
    """

    def decorator(func: F) -> F:
        # Store api_name on function for the logging hooks
        func._api_name = api_name  # type: ignore[attr-defined]

        wrapped = retry(
            stop=stop_after_attempt(attempts) | stop_after_delay(max_delay),
            wait=wait_exponential_jitter(initial=0.5, max=2, jitter=0.5),
            retry=retry_if_exception(is_retryable_http_error),
            before_sleep=_before_sleep_log,
            retry_error_callback=_log_final_failure,
            reraise=True,
        )(func)

        return wrapped  # type: ignore[return-value]

    return decorator


def retry_transient_once(func: F) -> F:
    """Retry *func* once, after a short pause, if it raises ``TransientError``."""
    func._api_name = getattr(func, "__name__", "store")  # type: ignore[attr-defined]
    wrapped = retry(
        stop=stop_after_attempt(2),
        wait=wait_fixed(0.2),
        retry=retry_if_exception_type(TransientError),
        before_sleep=_before_sleep_log,
        reraise=True,
    )(func)
    return wrapped  # type: ignore[return-value]
