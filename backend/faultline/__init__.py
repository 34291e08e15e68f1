# backend/faultline/__init__.py
from __future__ import annotations

"""
Structured logging, classified errors, retry and panic safety.

Errors live in faultline.errors, the logger in faultline.logger, and the
retry driver and panic helpers in faultline.services.
"""

__version__ = "0.1.0"
