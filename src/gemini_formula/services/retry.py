"""Retry with exponential backoff around one upstream call."""

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from gemini_formula.config import settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

T = TypeVar("T")


def is_retryable_error(error: BaseException) -> bool:
    """Classify a failure as transient.

    Transient means an HTTP status in RETRYABLE_STATUS_CODES (read from
    ``code`` or ``status_code``) or a message that reports a timeout.
    """
    code = getattr(error, "code", None)
    if code is None:
        code = getattr(error, "status_code", None)
    if code in RETRYABLE_STATUS_CODES:
        return True
    message = str(error).lower()
    return "timeout" in message or "timed out" in message


def retry_with_backoff(
    operation: Callable[[], T],
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation`` with bounded retries on transient failures.

    The wait before attempt ``n + 1`` is ``min(base_delay * 2 ** (n - 1), max_delay)``.
    Non-retryable failures propagate on first occurrence; after the last
    attempt the final failure propagates unchanged.

    Args:
        operation: Zero-argument callable to run
        max_attempts: Total attempts. Defaults to settings.
        base_delay: First backoff in seconds. Defaults to settings.
        max_delay: Backoff cap in seconds. Defaults to settings.
        sleep: Blocking sleep function

    Returns:
        The operation's result
    """
    attempts = settings.retry_max_attempts if max_attempts is None else max_attempts
    if attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    base = settings.retry_base_delay if base_delay is None else base_delay
    cap = settings.retry_max_delay if max_delay is None else max_delay

    retrying = Retrying(
        sleep=sleep,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=base, max=cap),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return retrying(operation)
