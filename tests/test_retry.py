"""
Tests for retry with exponential backoff.
"""

import pytest

from gemini_formula.errors import EmptyResponseError, GeminiAPIError
from gemini_formula.services import is_retryable_error, retry_with_backoff


class Flaky:
    """Callable failing with the scripted errors before succeeding."""

    def __init__(self, *errors: BaseException, result: str = "ok") -> None:
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


@pytest.mark.parametrize("code", [408, 429, 500, 502, 503, 504])
def test_retryable_status_codes(code):
    """Transient HTTP statuses are retryable."""
    assert is_retryable_error(GeminiAPIError("failed", code=code))


@pytest.mark.parametrize("code", [400, 401, 403, 404])
def test_non_retryable_status_codes(code):
    """Other client errors are permanent."""
    assert not is_retryable_error(GeminiAPIError("failed", code=code))


def test_timeout_message_is_retryable():
    """A timeout without status code is still transient."""
    assert is_retryable_error(GeminiAPIError("Gemini request timeout after 30s"))
    assert is_retryable_error(TimeoutError("read timed out"))


def test_empty_response_is_not_retryable():
    assert not is_retryable_error(EmptyResponseError())


def test_returns_first_success_without_sleeping():
    sleeps = []
    operation = Flaky()
    assert retry_with_backoff(operation, max_attempts=3, base_delay=1.0, sleep=sleeps.append) == "ok"
    assert operation.calls == 1
    assert sleeps == []


def test_recovers_after_transient_failures():
    """Transient failures are retried with doubling delays."""
    sleeps = []
    operation = Flaky(GeminiAPIError("busy", code=503), GeminiAPIError("slow", code=429))

    result = retry_with_backoff(
        operation, max_attempts=3, base_delay=1.0, max_delay=10.0, sleep=sleeps.append
    )

    assert result == "ok"
    assert operation.calls == 3
    assert sleeps == [1.0, 2.0]


def test_always_retryable_failure_calls_exactly_max_attempts():
    """Exhausting attempts propagates the last failure unchanged."""
    sleeps = []
    errors = [GeminiAPIError(f"busy {i}", code=503) for i in range(4)]
    operation = Flaky(*errors)

    with pytest.raises(GeminiAPIError) as excinfo:
        retry_with_backoff(operation, max_attempts=4, base_delay=1.0, max_delay=10.0, sleep=sleeps.append)

    assert operation.calls == 4
    assert excinfo.value is errors[3]
    assert sleeps == [1.0, 2.0, 4.0]


def test_non_retryable_failure_calls_once():
    sleeps = []
    error = GeminiAPIError("bad request", code=400)
    operation = Flaky(error)

    with pytest.raises(GeminiAPIError) as excinfo:
        retry_with_backoff(operation, max_attempts=3, base_delay=1.0, sleep=sleeps.append)

    assert operation.calls == 1
    assert excinfo.value is error
    assert sleeps == []


def test_backoff_is_capped():
    sleeps = []
    operation = Flaky(*[GeminiAPIError("busy", code=500) for _ in range(6)])

    with pytest.raises(GeminiAPIError):
        retry_with_backoff(operation, max_attempts=6, base_delay=1.0, max_delay=5.0, sleep=sleeps.append)

    assert sleeps == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        retry_with_backoff(Flaky(), max_attempts=0)
