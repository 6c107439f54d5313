"""
Use case translating a learner's progress write into store operations.

Accepts the payload shape `{pageId, action, data?}` with action one of
`complete`, `mcq` or `code`. Validation happens before any write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from courseware.errors import ValidationError
from courseware.progress.store import CODE_SUBMISSIONS, MCQ_ANSWERS, ProgressRecord, ProgressStore

logger = logging.getLogger(__name__)

ACTIONS = ("complete", "mcq", "code")
MAX_CODE_CHARS = 50_000
MAX_OUTPUT_CHARS = 20_000
MAX_RESULTS = 100
_VERDICT_KEYS = ("strategy", "executed", "verdict", "confidence", "message")


@dataclass(frozen=True)
class RecordProgressInput:
    user_id: str
    page_id: str
    action: str
    data: Optional[dict[str, Any]] = None


def _stamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_section_id(data: dict) -> str:
    section_id = data.get("sectionId")
    if not isinstance(section_id, str) or not section_id.strip():
        raise ValidationError("missing_section_id", "sectionId is required")
    return section_id.strip()


def _mcq_value(data: dict) -> tuple[str, dict]:
    section_id = _require_section_id(data)
    selected = data.get("selectedOption")
    if not isinstance(selected, str) or not selected:
        raise ValidationError("invalid_selected_option", "selectedOption is required")
    is_correct = data.get("isCorrect")
    if not isinstance(is_correct, bool):
        raise ValidationError("invalid_is_correct", "isCorrect must be a boolean")
    return section_id, {"selectedOption": selected, "isCorrect": is_correct, "answeredAt": _stamp()}


def _code_value(data: dict) -> tuple[str, dict]:
    section_id = _require_section_id(data)
    code = data.get("code")
    if not isinstance(code, str):
        raise ValidationError("invalid_code", "code must be a string")
    if len(code) > MAX_CODE_CHARS:
        raise ValidationError("code_too_large", "Code is too large")
    language = data.get("language")
    if not isinstance(language, str) or not language.strip():
        raise ValidationError("invalid_language", "language is required")
    results = data.get("results")
    if not isinstance(results, list) or len(results) > MAX_RESULTS:
        raise ValidationError("invalid_results", "results must be a list")
    all_passed = data.get("allPassed")
    if not isinstance(all_passed, bool):
        raise ValidationError("invalid_all_passed", "allPassed must be a boolean")
    output = data.get("output") or ""
    if not isinstance(output, str):
        raise ValidationError("invalid_output", "output must be a string")
    value = {
        "code": code,
        "language": language.strip().lower(),
        "allPassed": all_passed,
        "results": results,
        "output": output[:MAX_OUTPUT_CHARS],
        "submittedAt": _stamp(),
    }
    # Keep the judged/executed distinction next to allPassed when the client sends it.
    for key in _VERDICT_KEYS:
        if key in data and data[key] is not None:
            value[key] = data[key]
    return section_id, value


class RecordProgressUseCase:
    def __init__(self, store: ProgressStore) -> None:
        self._store = store

    def execute(self, inp: RecordProgressInput) -> ProgressRecord:
        if not isinstance(inp.page_id, str) or not inp.page_id.strip():
            raise ValidationError("missing_page_id", "pageId is required")
        if inp.action not in ACTIONS:
            raise ValidationError("invalid_action", "Invalid action")
        page_id = inp.page_id.strip()
        if inp.action == "complete":
            record = self._store.mark_complete(inp.user_id, page_id)
        else:
            data = inp.data if isinstance(inp.data, dict) else None
            if data is None:
                raise ValidationError("missing_data", "data is required")
            if inp.action == "mcq":
                section_id, value = _mcq_value(data)
                record = self._store.upsert_field(inp.user_id, page_id, MCQ_ANSWERS, section_id, value)
            else:
                section_id, value = _code_value(data)
                record = self._store.upsert_field(inp.user_id, page_id, CODE_SUBMISSIONS, section_id, value)
        logger.info("progress.recorded action=%s page_id=%s version=%s", inp.action, page_id, record.version)
        return record
