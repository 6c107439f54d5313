"""Evaluation API routes: grade a submission and ask for a hint."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Request

from courseware.content.normalizer import parse_test_cases
from courseware.errors import CoursewareError, ValidationError
from courseware.evaluation.ports import FailingTest
from courseware.web.security import csrf_error, error_response, is_same_origin, private_json, require_user
from courseware.web.wiring import get_services

logger = logging.getLogger(__name__)

evaluation_router = APIRouter(tags=["Evaluation"])

MAX_FAILING_TESTS_ACCEPTED = 20


def _unavailable():
    return private_json(
        {"error": "evaluation_unavailable", "detail": "Evaluation is not configured."}, status_code=503
    )


def _resolve_test_cases(payload: dict[str, Any], language: str):
    """Stored cases win over client-sent ones when the section is identified."""
    section_id = payload.get("sectionId")
    if section_id:
        page_id = payload.get("pageId")
        block = get_services().content.get_code_block(
            str(section_id), page_id=str(page_id) if page_id else None
        )
        return block.test_cases(language)
    raw = payload.get("testCases")
    if not isinstance(raw, list):
        raise ValidationError("invalid_test_cases", "testCases must be a list")
    return parse_test_cases(raw)


def _failing_tests(raw: Any) -> list[FailingTest]:
    if raw is None:
        return []
    if not isinstance(raw, list) or len(raw) > MAX_FAILING_TESTS_ACCEPTED:
        raise ValidationError("invalid_failing_tests", "failingTests must be a short list")
    tests = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("invalid_failing_tests", "failingTests items must be objects")
        tests.append(
            FailingTest(
                input=str(item.get("input") or ""),
                expected_output=str(item.get("expectedOutput") or ""),
                actual_output=str(item.get("actualOutput") or item.get("output") or ""),
            )
        )
    return tests


@evaluation_router.post("/api/code-execute")
async def code_execute(request: Request, payload: dict[str, Any]):
    """Evaluate a code submission against its test cases.

    Response always carries `results`, `allPassed` and `output`; judged
    evaluations add `verdict`, `confidence`, `message` and `highlights`, and
    `executed` tells whether the code actually ran.
    """
    if not is_same_origin(request):
        return csrf_error()
    _, error = require_user(request)
    if error:
        return error

    code = payload.get("code")
    language = payload.get("language")
    try:
        if not isinstance(language, str) or not language.strip():
            raise ValidationError("invalid_language", "Language is required")
        cases = await asyncio.to_thread(_resolve_test_cases, payload, language.strip().lower())
        engine = get_services().engine
    except CoursewareError as exc:
        return error_response(exc)
    except ValueError as exc:
        logger.error("evaluation.engine.misconfigured reason=%s", exc)
        return _unavailable()

    try:
        outcome = await asyncio.to_thread(engine.evaluate, code, language, cases)
    except CoursewareError as exc:
        logger.info("evaluation.request.failed code=%s", exc.code)
        return error_response(exc)
    return private_json(outcome.to_dict())


@evaluation_router.post("/api/code-hint")
async def code_hint(request: Request, payload: dict[str, Any]):
    """Explain the most likely bug for up to three failing tests."""
    if not is_same_origin(request):
        return csrf_error()
    _, error = require_user(request)
    if error:
        return error

    try:
        failing = _failing_tests(payload.get("failingTests"))
        language = payload.get("language")
        if not isinstance(language, str) or not language.strip():
            raise ValidationError("invalid_language", "Language is required")
        engine = get_services().engine
    except CoursewareError as exc:
        return error_response(exc)
    except ValueError as exc:
        logger.error("evaluation.engine.misconfigured reason=%s", exc)
        return _unavailable()

    try:
        hint = await asyncio.to_thread(engine.hint, payload.get("code"), language, failing)
    except CoursewareError as exc:
        return error_response(exc)
    return private_json(hint.to_dict())
