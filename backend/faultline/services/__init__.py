from __future__ import annotations

"""
Service layer.

- retry: retry-with-backoff driver
- panics: panic_handler / safe_go / recover
- users, exchange: demo collaborators for the API and CLI
- diagnostics: error -> status / failure reason mapping
"""

from .panics import Recovery, panic_handler, recover, safe_go  # noqa: F401
from .retry import (  # noqa: F401
    RetryCancelled,
    RetryConfigError,
    RetryPolicy,
    retry_with_backoff,
)
