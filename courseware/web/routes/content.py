"""Page-section API routes: editor save and learner read."""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Request

from courseware.errors import CoursewareError
from courseware.web.security import (
    csrf_error,
    error_response,
    is_same_origin,
    private_json,
    require_admin,
    require_user,
)
from courseware.web.wiring import get_services

content_router = APIRouter(tags=["Content"])


@content_router.put("/api/admin/pages/{page_id}/sections")
async def save_sections(request: Request, page_id: str, payload: dict[str, Any]):
    """Replace the page's sections; code blocks are stored canonically."""
    if not is_same_origin(request):
        return csrf_error()
    _, error = require_admin(request)
    if error:
        return error
    try:
        sections = await asyncio.to_thread(get_services().content.save_page_sections, page_id, payload.get("sections"))
    except CoursewareError as exc:
        return error_response(exc)
    return private_json([s.to_dict() for s in sections])


@content_router.get("/api/pages/{page_id}/sections")
async def list_sections(request: Request, page_id: str):
    """Sections in order, normalised; hidden test cases are withheld from learners."""
    user, error = require_user(request)
    if error:
        return error
    sections = await asyncio.to_thread(get_services().content.list_page_sections, page_id)
    if "admin" in (user.get("roles") or []):
        return private_json([s.to_dict() for s in sections])
    return private_json([s.to_learner_dict() for s in sections])
