from __future__ import annotations

"""
Diagnostics and error classification utilities.

This package currently provides:
- error_classifier: map classified errors to stable, machine-readable
  reasons and to HTTP status codes for the API layer.

The goal is to keep error-to-response decisions centralized and
deterministic.
"""

from .error_classifier import (  # noqa: F401
    ErrorClass,
    classify_error,
    failure_reason,
    http_status_for,
)
