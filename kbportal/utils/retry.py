"""
Retry Logic Utilities

File-level retry for batch ingestion with exponential backoff.
The ingestion pipeline never retries on its own; the batch orchestrator
re-runs a file whose attempt ended on an unavailable upstream.
"""

from typing import Any, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    stop_after_attempt,
    wait_exponential,
    retry_if_result,
    before_sleep_log,
)
from tenacity.wait import wait_base
from kbportal.config import settings
import logging

logger = logging.getLogger(__name__)


def default_wait() -> wait_base:
    """Exponential backoff between attempts, capped at RETRY_MAX_WAIT"""
    return wait_exponential(
        multiplier=1,
        min=1,
        max=settings.RETRY_MAX_WAIT,
        exp_base=settings.RETRY_EXPONENTIAL_BASE
    )


def _return_last_result(retry_state: RetryCallState) -> Any:
    return retry_state.outcome.result()


def retry_on_result(
    should_retry: Callable[[Any], bool],
    max_attempts: Optional[int] = None,
    wait: Optional[wait_base] = None,
) -> AsyncRetrying:
    """
    Async retrying controller driven by the attempt's result

    Attempts return structured outcomes instead of raising, so the retry
    decision inspects the returned value. When attempts run out the last
    outcome is returned as-is.

    Args:
        should_retry: Predicate over an attempt's result
        max_attempts: Total attempts (default: settings.BATCH_RETRY_MAX_ATTEMPTS,
            or 1 when RETRY_ENABLED is off)
        wait: Tenacity wait strategy (default: exponential backoff)

    Returns:
        AsyncRetrying instance; call it with the coroutine function to run
    """
    if max_attempts is None:
        max_attempts = settings.BATCH_RETRY_MAX_ATTEMPTS if settings.RETRY_ENABLED else 1

    return AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait if wait is not None else default_wait(),
        retry=retry_if_result(should_retry),
        retry_error_callback=_return_last_result,
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
