"""Enrollment and access-token API routes."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field, field_validator

from courseware.access.usecases import EnrollInput, EnrollUseCase
from courseware.errors import CoursewareError, ValidationError
from courseware.web.security import (
    csrf_error,
    error_response,
    is_same_origin,
    private_json,
    require_admin,
    require_user,
)
from courseware.web.wiring import get_services

enrollment_router = APIRouter(tags=["Enrollment"])

MAX_EXPIRY_MINUTES = 60 * 24 * 365


class EnrollmentPayload(BaseModel):
    courseId: str = Field(default="", max_length=100)
    accessCode: str | None = Field(default=None, max_length=256)

    @field_validator("courseId", "accessCode")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class TokenIssuePayload(BaseModel):
    expiryMinutes: float | None = None


def _expires_at(raw: float | None) -> datetime | None:
    if raw is None:
        return None
    if raw <= 0 or raw > MAX_EXPIRY_MINUTES:
        raise ValidationError("invalid_expiry", "expiryMinutes out of range")
    return datetime.now(timezone.utc) + timedelta(minutes=float(raw))


@enrollment_router.post("/api/enrollment")
async def enroll(request: Request, payload: EnrollmentPayload):
    """Enroll the caller; priced courses require a single-use access code."""
    if not is_same_origin(request):
        return csrf_error()
    user, error = require_user(request)
    if error:
        return error

    services = get_services()
    inp = EnrollInput(
        user_id=str(user["sub"]),
        course_id=payload.courseId,
        access_code=payload.accessCode,
    )
    try:
        result = await asyncio.to_thread(EnrollUseCase(services.access_repo, services.vault).execute, inp)
    except CoursewareError as exc:
        return error_response(exc)
    return private_json(result, status_code=201)


@enrollment_router.post("/api/admin/courses/{course_id}/tokens")
async def issue_token(request: Request, course_id: str, payload: TokenIssuePayload | None = None):
    """Issue an access token. The raw value appears in this response only.

    Permissions:
        Caller must have the `admin` role.
    """
    if not is_same_origin(request):
        return csrf_error()
    _, error = require_admin(request)
    if error:
        return error

    try:
        expires_at = _expires_at(payload.expiryMinutes if payload else None)
        issued = await asyncio.to_thread(get_services().vault.issue, course_id, expires_at)
    except CoursewareError as exc:
        return error_response(exc)
    return private_json(issued.to_dict(), status_code=201)


@enrollment_router.get("/api/admin/courses/{course_id}/tokens")
async def list_tokens(request: Request, course_id: str):
    _, error = require_admin(request)
    if error:
        return error
    try:
        tokens = await asyncio.to_thread(get_services().vault.list_tokens, course_id)
    except CoursewareError as exc:
        return error_response(exc)
    return private_json([t.to_public_dict() for t in tokens])
