"""Progress API routes."""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Request

from courseware.errors import CoursewareError
from courseware.progress.usecases import RecordProgressInput, RecordProgressUseCase
from courseware.web.security import csrf_error, error_response, is_same_origin, private_json, require_user
from courseware.web.wiring import get_services

progress_router = APIRouter(tags=["Progress"])


@progress_router.post("/api/progress")
async def record_progress(request: Request, payload: dict[str, Any]):
    """Merge one progress action into the caller's record for a page.

    Actions:
        complete: mark the page complete (never cleared).
        mcq: store `{selectedOption, isCorrect}` under `sectionId`.
        code: store the submission outcome under `sectionId`.
    """
    if not is_same_origin(request):
        return csrf_error()
    user, error = require_user(request)
    if error:
        return error

    inp = RecordProgressInput(
        user_id=str(user["sub"]),
        page_id=payload.get("pageId") or "",
        action=str(payload.get("action") or ""),
        data=payload.get("data"),
    )
    try:
        record = await asyncio.to_thread(RecordProgressUseCase(get_services().progress).execute, inp)
    except CoursewareError as exc:
        return error_response(exc)
    return private_json(record.to_dict())


@progress_router.get("/api/progress/{page_id}")
async def get_progress(request: Request, page_id: str):
    user, error = require_user(request)
    if error:
        return error
    record = await asyncio.to_thread(get_services().progress.get_progress, str(user["sub"]), page_id)
    if record is None:
        return private_json(
            {
                "userId": user["sub"],
                "pageId": page_id,
                "completedAt": None,
                "mcqAnswers": {},
                "codeSubmissions": {},
            }
        )
    return private_json(record.to_dict())
