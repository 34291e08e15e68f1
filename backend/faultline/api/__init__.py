# backend/faultline/api/__init__.py
from __future__ import annotations

"""
API router aggregation.

This module exposes a single `api_router` that the FastAPI app includes at
the root so routes match the documented paths (`/users`, `/users/{id}`).
"""

from fastapi import APIRouter

from . import users

api_router = APIRouter()
api_router.include_router(users.router)
