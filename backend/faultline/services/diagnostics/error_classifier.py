from __future__ import annotations

"""backend/faultline/services/diagnostics/error_classifier.py

Centralized error classification for API responses and reports.

This module looks at an error chain (marks, domain, exchange codes) and
assigns:
- an ErrorClass: temporary, permanent or unclassified
- a stable, machine-readable `failure_reason` string
- the HTTP status the demo API should answer with

The classification is:
- deterministic (no randomness)
- mark-based (never inspects message text)
- fail-closed: unclassified errors are treated as server errors

Typical failure_reason values:
- exchange-<code>          (e.g. exchange-rate_limit)
- usecase-permanent
- adapters-temporary
- permanent
- temporary
- unknown-error
"""

import enum
from typing import Optional

from faultline import errors

INTERNAL_SERVER_ERROR = 500


class ErrorClass(str, enum.Enum):
    TEMPORARY = "temporary"
    PERMANENT = "permanent"
    UNCLASSIFIED = "unclassified"


def classify_error(err: Optional[BaseException]) -> ErrorClass:
    """Classify by marks. Permanent wins when both marks are present."""
    if errors.is_permanent(err):
        return ErrorClass.PERMANENT
    if errors.is_temporary(err):
        return ErrorClass.TEMPORARY
    return ErrorClass.UNCLASSIFIED


def failure_reason(err: Optional[BaseException]) -> str:
    """Classify an error into a stable failure_reason code.

    It never returns None; at minimum it returns "unknown-error".
    """
    if err is None:
        return "unknown-error"

    # 1) Exchange failures carry their own code
    exchange = errors.find(err, errors.ExchangeError)
    if exchange is not None:
        return f"exchange-{exchange.code.lower()}"

    error_class = classify_error(err)
    domain = errors.get_domain(err)

    # 2) Domain + class when both are known
    if domain and error_class is not ErrorClass.UNCLASSIFIED:
        return f"{domain}-{error_class.value}"

    # 3) Class alone
    if error_class is not ErrorClass.UNCLASSIFIED:
        return error_class.value

    return "unknown-error"


def http_status_for(err: Optional[BaseException], permanent_status: int) -> int:
    """HTTP status for ``err``: ``permanent_status`` if permanent, else 500.

    Each handler picks its own 4xx for permanent failures (404 for lookups,
    400 for validation). Temporary and unclassified failures are both 500.
    """
    if classify_error(err) is ErrorClass.PERMANENT:
        return permanent_status
    return INTERNAL_SERVER_ERROR
