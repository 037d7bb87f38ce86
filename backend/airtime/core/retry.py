"""Bounded exponential-backoff retry for outbound calls.

Used for event-bus sends (failures surface to the caller once attempts are
exhausted) and for blob cleanup (failures are logged by the caller and
swallowed).
"""

import logging
import time
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


class RetryExhaustedError(Exception):
    """Every attempt failed. ``last_error`` is the final exception."""

    def __init__(self, label: str, attempts: int, last_error: BaseException):
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{label} failed after {attempts} attempt(s): {last_error}")


def backoff_delays(max_attempts: int, base_delay: float) -> list[float]:
    """Delays slept between attempts: base, 2*base, 4*base, ...

    There is one delay fewer than attempts; nothing is slept after the last one.
    """
    return [base_delay * (2 ** attempt) for attempt in range(max(max_attempts - 1, 0))]


def call_with_retry(
    func: Callable[..., T],
    *args: Any,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = 0.5,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    no_retry_on: Tuple[Type[BaseException], ...] = (),
    label: Optional[str] = None,
    sleep: Optional[Callable[[float], None]] = None,
    **kwargs: Any,
) -> T:
    """Call ``func`` up to ``max_attempts`` times.

    Exceptions in ``no_retry_on`` propagate immediately. Exceptions in
    ``retry_on`` are retried with exponential backoff; once attempts are
    exhausted a :class:`RetryExhaustedError` chained to the last failure is
    raised. Anything else propagates unchanged.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    name = label or getattr(func, "__name__", "call")
    do_sleep = sleep or time.sleep
    delays = backoff_delays(max_attempts, base_delay)

    last_error: Optional[BaseException] = None
    for attempt in range(max_attempts):
        try:
            return func(*args, **kwargs)
        except no_retry_on:
            raise
        except retry_on as e:
            last_error = e
            if attempt < max_attempts - 1:
                delay = delays[attempt]
                log.warning(
                    "event=retry.attempt_failed label=%s attempt=%d/%d next_delay=%.3fs error=%s",
                    name, attempt + 1, max_attempts, delay, e,
                )
                do_sleep(delay)
                continue
            log.error(
                "event=retry.exhausted label=%s attempts=%d error=%s",
                name, max_attempts, e,
            )

    assert last_error is not None
    raise RetryExhaustedError(name, max_attempts, last_error) from last_error
