from __future__ import annotations

"""backend/faultline/errors/classification.py

Retry classification, domains and the exchange error type.

Classification is carried by marking an error with one of two sentinels:

- ERR_TEMPORARY: safe to retry (network hiccups, rate limits, pool exhaustion)
- ERR_PERMANENT: retrying is pointless (validation, not found, bad input)

An unmarked error is neither temporary nor permanent. Callers that decide
whether to retry must treat "unmarked" as its own state; the retry driver
refuses to retry it.
"""

from typing import Optional

from . import chain
from .chain import Domain

# Error domains for categorization
DOMAIN_USECASE = chain.named_domain("usecase")
DOMAIN_ADAPTERS = chain.named_domain("adapters")
DOMAIN_EXCHANGE = chain.named_domain("exchange")

# Sentinel errors for common conditions
ERR_TEMPORARY = chain.new("temporary error")
ERR_PERMANENT = chain.new("permanent error")
ERR_NOT_FOUND = chain.new("not found")
ERR_TIMEOUT = chain.new("timeout")
ERR_RATE_LIMITED = chain.new("rate limited")


def mark_temporary(err: Optional[BaseException]) -> Optional[chain.FaultlineError]:
    return chain.mark(err, ERR_TEMPORARY)


def is_temporary(err: Optional[BaseException]) -> bool:
    return chain.is_(err, ERR_TEMPORARY)


def mark_permanent(err: Optional[BaseException]) -> Optional[chain.FaultlineError]:
    return chain.mark(err, ERR_PERMANENT)


def is_permanent(err: Optional[BaseException]) -> bool:
    """True if any node carries the permanent mark.

    Marks are not exclusive: an error marked both ways reports True from
    both ``is_temporary`` and ``is_permanent``.
    """
    return chain.is_(err, ERR_PERMANENT)


class ExchangeError(chain.FaultlineError):
    """Failure reported by an exchange API."""

    def __init__(self, code: str, message: str, retry: bool):
        super().__init__(code, message, retry)
        self.code = code
        self.message = message
        self.retry = retry

    def __str__(self) -> str:
        return f"exchange error [{self.code}]: {self.message}"


def new_exchange_error(code: str, message: str, retry: bool) -> chain.FaultlineError:
    """Build a fully classified ExchangeError boundary.

    The result carries a stack, the exchange domain, a ``code=... retry=...``
    detail, the temporary or permanent mark with a matching hint, and the
    ``exchange.error.<code>`` telemetry key.
    """
    base = ExchangeError(code, message, retry)

    # One boundary with stack + domain
    wrapped = chain.with_domain(chain.with_stack(base), DOMAIN_EXCHANGE)
    wrapped = chain.with_detailf(wrapped, "code=%s retry=%s", code, str(retry).lower())

    if retry:
        wrapped = mark_temporary(wrapped)
        wrapped = chain.with_hint(wrapped, "This error is temporary and can be retried")
    else:
        wrapped = mark_permanent(wrapped)
        wrapped = chain.with_hint(wrapped, "This error is permanent and should not be retried")

    return chain.with_telemetry(wrapped, "exchange.error." + code)


def wrap_with_domain(
    err: Optional[BaseException],
    message: str,
    domain: Domain,
) -> Optional[chain.FaultlineError]:
    if err is None:
        return None
    # wrap already records the location; no separate stack here
    return chain.with_domain(chain.wrap(err, message), domain)


def wrap_with_stack(err: Optional[BaseException], message: str) -> Optional[chain.FaultlineError]:
    """Wrap and attach a stack. Use only at error boundaries."""
    if err is None:
        return None
    return chain.with_stack(chain.wrap(err, message))


def is_exchange_code(err: Optional[BaseException], code: str) -> bool:
    ex = chain.find(err, ExchangeError)
    return ex is not None and ex.code == code
