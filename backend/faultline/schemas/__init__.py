from __future__ import annotations

"""
Pydantic schemas for request/response models.

This module is the API contract layer. It is used by:
- API routes (request parsing, response serialization)
- the error response helper in app-level handlers
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


# ---------- User Schemas ----------


class UserCreate(BaseModel):
    """
    User creation payload.

    Missing fields default to empty strings so the service layer reports
    them as validation errors; unknown fields are rejected at parse time.
    """

    name: str = ""
    email: str = ""

    class Config:
        extra = "forbid"


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime

    class Config:
        from_attributes = True


# ---------- Error / Health Schemas ----------


class ErrorResponse(BaseModel):
    error: str
    # Domain of the error, when one is attached
    code: Optional[str] = None
    # First hint, when one is attached
    details: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    time: datetime
