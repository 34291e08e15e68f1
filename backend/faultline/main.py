# backend/faultline/main.py
from __future__ import annotations

"""
FastAPI application setup.

This module depends on:
- faultline.config.get_settings for configuration
- faultline.logger for the process-wide structured logger
- faultline.api.api_router for route registration

Run with `faultline serve` or `uvicorn faultline.main:app`.
"""

import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request

from faultline import logger, schemas
from faultline.api import api_router
from faultline.config import get_settings

REQUEST_ID_HEADER = "X-Request-ID"


def create_app() -> FastAPI:
    settings = get_settings()
    logger.set_level(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
    )

    # ---- Request context ----

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or f"req_{time.time_ns()}"
        request.state.request_id = request_id
        token = logger.request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            logger.request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    # ---- Routes ----

    app.include_router(api_router)

    # ---- Healthcheck ----

    @app.get("/health", tags=["health"], response_model=schemas.HealthResponse)
    def health() -> schemas.HealthResponse:
        return schemas.HealthResponse(status="ok", time=datetime.now(timezone.utc))

    return app


app = create_app()
