import pytest

from airtime.core.retry import RetryExhaustedError, backoff_delays, call_with_retry


class Flaky:
    def __init__(self, failures, exc=ConnectionError):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"failure {self.calls}")
        return value


def test_backoff_delays():
    assert backoff_delays(3, 0.5) == [0.5, 1.0]
    assert backoff_delays(3, 0.2) == pytest.approx([0.2, 0.4])
    assert backoff_delays(1, 0.5) == []


def test_fails_twice_then_succeeds():
    slept = []
    func = Flaky(failures=2)
    assert call_with_retry(func, "ok", max_attempts=3, base_delay=0.5, sleep=slept.append) == "ok"
    assert func.calls == 3
    assert slept == [0.5, 1.0]


def test_exhausted_after_three_attempts_without_a_fourth():
    slept = []
    func = Flaky(failures=10)
    with pytest.raises(RetryExhaustedError) as exc_info:
        call_with_retry(func, "ok", max_attempts=3, base_delay=0.5, label="fetch", sleep=slept.append)
    assert func.calls == 3
    assert slept == [0.5, 1.0]
    err = exc_info.value
    assert err.attempts == 3
    assert isinstance(err.last_error, ConnectionError)
    assert err.__cause__ is err.last_error
    assert "fetch failed after 3 attempt(s)" in str(err)


def test_no_retry_on_propagates_immediately():
    slept = []
    func = Flaky(failures=5, exc=PermissionError)
    with pytest.raises(PermissionError):
        call_with_retry(func, "ok", no_retry_on=(PermissionError,), sleep=slept.append)
    assert func.calls == 1
    assert slept == []


def test_exceptions_outside_retry_on_propagate():
    func = Flaky(failures=5, exc=KeyError)
    with pytest.raises(KeyError):
        call_with_retry(func, "ok", retry_on=(ConnectionError,), sleep=lambda s: None)
    assert func.calls == 1


def test_invalid_max_attempts():
    with pytest.raises(ValueError):
        call_with_retry(lambda: None, max_attempts=0)
