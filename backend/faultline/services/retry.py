from __future__ import annotations

"""backend/faultline/services/retry.py

Retry-with-backoff driver.

The driver runs an operation up to ``max_attempts`` times and decides what to
do with each failure from its classification alone:

- temporary (``errors.is_temporary``): wait, then try again
- permanent or unclassified: give up at once and re-raise the error as-is

Between attempts the driver waits ``delay + delay / 5`` seconds (a fixed
~20% jitter on top of the current delay), then doubles ``delay`` up to
``max_delay``. The wait is the only place the driver blocks, and the only
place it looks at the cancellation signal: an operation already running is
never interrupted.

Each outcome is logged once here (recovery, permanent abort, exhaustion), so
callers should not log the same failure again.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, TypeVar

from faultline import errors, logger
from faultline.config import get_settings

T = TypeVar("T")

DEFAULT_MAX_DELAY_SECONDS = 5.0


class CancelSignal(Protocol):
    """Anything with ``threading.Event.wait`` semantics."""

    def wait(self, timeout: Optional[float] = None) -> bool:
        ...


class RetryConfigError(errors.FaultlineError, ValueError):
    """The driver was asked to run with an unusable configuration."""


class RetryCancelled(errors.FaultlineError):
    """The cancellation signal fired while waiting between attempts.

    Carries no classification of its own. The error that triggered the wait
    is kept on ``last_error`` and as ``__context__``, outside the cause chain,
    so a cancelled run never reads as temporary.
    """

    def __init__(self, attempt: int, max_attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(attempt, max_attempts)
        self.attempt = attempt
        self.max_attempts = max_attempts
        self.last_error = last_error
        self.__context__ = last_error

    def __str__(self) -> str:
        return f"retry cancelled after attempt {self.attempt} of {self.max_attempts}"


def retry_with_backoff(
    operation: Callable[[], T],
    max_attempts: int,
    initial_delay: float,
    *,
    cancel: Optional[CancelSignal] = None,
    max_delay: float = DEFAULT_MAX_DELAY_SECONDS,
) -> T:
    """Run ``operation`` until it succeeds, fails permanently or runs out of attempts.

    Args:
        operation: zero-argument callable; raising an exception is a failure
        max_attempts: total number of invocations allowed (must be >= 1)
        initial_delay: base wait in seconds before the second attempt
        cancel: signal observed during backoff waits (``threading.Event``)
        max_delay: ceiling for the base delay

    Returns:
        Whatever ``operation`` returned on its successful attempt.

    Raises:
        RetryConfigError: ``max_attempts`` is not positive.
        RetryCancelled: ``cancel`` fired during a wait; unclassified, with the
            last error on ``last_error``.
        Exception: the operation's own error when it is not temporary, or that
            error wrapped as "operation failed after N attempts" on exhaustion.
    """
    if max_attempts <= 0:
        raise RetryConfigError(f"max_attempts must be at least 1, got {max_attempts}")

    if cancel is None:
        cancel = threading.Event()

    delay = initial_delay
    last_err: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            result = operation()
        except Exception as err:
            if not errors.is_temporary(err):
                logger.log_error(
                    "Operation failed with permanent error", err,
                    "attempt", attempt,
                    "retry", False,
                )
                raise
            last_err = err
        else:
            if attempt > 1:
                logger.info(
                    "Operation succeeded after retry",
                    "attempt", attempt,
                    "max_retries", max_attempts,
                )
            return result

        if attempt < max_attempts:
            logger.log_warn(
                "Operation failed with temporary error, retrying", last_err,
                "attempt", attempt,
                "max_retries", max_attempts,
                "retry_delay", delay,
            )
            if cancel.wait(delay + delay / 5):
                raise RetryCancelled(attempt, max_attempts, last_err)
            delay = min(delay * 2, max_delay)
        else:
            logger.log_error(
                "Operation failed after max retries", last_err,
                "attempt", attempt,
                "max_retries", max_attempts,
            )

    raise errors.wrapf(last_err, "operation failed after %d attempts", max_attempts)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry parameters bundled for reuse."""

    max_attempts: int = 5
    initial_delay: float = 0.5
    max_delay: float = DEFAULT_MAX_DELAY_SECONDS

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        settings = get_settings()
        return cls(
            max_attempts=settings.retry_max_attempts,
            initial_delay=settings.retry_initial_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
        )

    def run(self, operation: Callable[[], T], *, cancel: Optional[CancelSignal] = None) -> T:
        return retry_with_backoff(
            operation,
            self.max_attempts,
            self.initial_delay,
            cancel=cancel,
            max_delay=self.max_delay,
        )
