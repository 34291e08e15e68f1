from __future__ import annotations

"""backend/faultline/services/panics.py

Panic safety for threads and scoped blocks.

A "panic" here is any exception escaping the guarded code. The helpers turn
it into a chained error (with the recovery site's stack, while the original
exception keeps its own traceback), log it once at error level, and then:

- panic_handler / safe_go: re-raise the original exception, so the outer
  handler (or ``threading.excepthook`` for threads) still sees the failure
- recover: keep the error on the yielded Recovery and carry on
"""

import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from faultline import errors, logger


def _panic_error(exc: BaseException) -> errors.FaultlineError:
    return errors.with_stack(errors.wrap(exc, "panic recovered"))


@contextmanager
def panic_handler(component: str) -> Iterator[None]:
    """Log an escaping exception for ``component`` and re-raise it unchanged.

    Usable as ``with panic_handler("main"):`` or as ``@panic_handler("main")``.
    """
    try:
        yield
    except Exception as exc:
        logger.log_error(f"[{component}] Panic recovered", _panic_error(exc))
        raise


def safe_go(name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> threading.Thread:
    """Run ``fn(*args, **kwargs)`` on a new daemon thread guarded by panic_handler.

    The started thread is returned so callers can ``join`` it.
    """

    def _run() -> None:
        with panic_handler(name):
            fn(*args, **kwargs)

    thread = threading.Thread(target=_run, name=name, daemon=True)
    thread.start()
    return thread


class Recovery:
    """Outcome of a ``recover`` block."""

    def __init__(self) -> None:
        self.error: Optional[errors.FaultlineError] = None

    @property
    def recovered(self) -> bool:
        return self.error is not None


@contextmanager
def recover(component: str, *kv: Any) -> Iterator[Recovery]:
    """Log and swallow an escaping exception; the error lands on the Recovery."""
    recovery = Recovery()
    try:
        yield recovery
    except Exception as exc:
        recovery.error = _panic_error(exc)
        logger.log_error(f"[{component}] Panic recovered", recovery.error, *kv)
