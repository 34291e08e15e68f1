# backend/faultline/api/users.py
from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from faultline import errors, logger, schemas
from faultline.config import get_settings
from faultline.services.diagnostics import failure_reason, http_status_for
from faultline.services.users import User, UserService

router = APIRouter(prefix="/users", tags=["users"])

# ASCII digits only, optionally signed
_USER_ID_RE = re.compile(r"[+-]?[0-9]+")

_ERROR_RESPONSES = {
    400: {"model": schemas.ErrorResponse},
    404: {"model": schemas.ErrorResponse},
    500: {"model": schemas.ErrorResponse},
}


@lru_cache(maxsize=1)
def get_user_service() -> UserService:
    """Process-wide user store, overridable through dependency_overrides."""
    return UserService(failure_rate=get_settings().user_failure_rate)


def respond_error(status: int, err: BaseException, request_id: str) -> JSONResponse:
    """Log ``err`` once and turn it into the JSON error body."""
    logger.log_error(
        "API request failed", err,
        "request_id", request_id,
        "status", status,
        "failure_reason", failure_reason(err),
    )

    body = schemas.ErrorResponse(error=str(err))

    domain = errors.get_domain(err)
    if domain:
        body.code = str(domain)

    hints = errors.get_all_hints(err)
    if hints:
        body.details = hints[0]

    return JSONResponse(status_code=status, content=body.model_dump(exclude_none=True))


async def _read_body(request: Request, limit: int) -> Optional[bytes]:
    """Read at most ``limit`` bytes of body; None if the body is larger."""
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        return None

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            return None
    return bytes(body)


@router.get("/{user_id}", response_model=schemas.UserRead, responses=_ERROR_RESPONSES)
def get_user(
    user_id: str,
    request: Request,
    service: UserService = Depends(get_user_service),
):
    request_id = request.state.request_id

    if not _USER_ID_RE.fullmatch(user_id):
        err = errors.mark_permanent(errors.errorf("invalid user ID: %r", user_id))
        return respond_error(400, err, request_id)
    parsed_id = int(user_id)

    log = logger.with_context()
    log.info("Fetching user", "user_id", parsed_id)

    try:
        user: User = service.get_user(parsed_id)
    except errors.FaultlineError as err:
        return respond_error(http_status_for(err, 404), err, request_id)

    log.info("User fetched successfully", "user_id", parsed_id)
    return user


@router.post("", status_code=201, response_model=schemas.UserRead, responses=_ERROR_RESPONSES)
async def create_user(
    request: Request,
    service: UserService = Depends(get_user_service),
):
    request_id = request.state.request_id
    limit = get_settings().max_body_bytes

    raw = await _read_body(request, limit)
    if raw is None:
        err = errors.mark_permanent(errors.errorf("request body exceeds %d bytes", limit))
        return respond_error(400, err, request_id)

    try:
        payload = schemas.UserCreate.model_validate_json(raw)
    except ValidationError as exc:
        err = errors.mark_permanent(errors.wrap(exc, "invalid JSON request"))
        return respond_error(400, err, request_id)

    log = logger.with_context()
    log.info("Creating user", "name", payload.name, "email", payload.email)

    try:
        user = service.create_user(payload.name, payload.email)
    except errors.FaultlineError as err:
        return respond_error(http_status_for(err, 400), err, request_id)

    log.info("User created successfully", "user_id", user.id)
    return user
