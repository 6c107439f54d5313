"""
Sanitisation of judge output before anything trusts it.

Intent:
    The judge is an external model; its output is adversarial input. Every
    numeric field is clamped into its domain and every string is truncated
    before it can reach a learner or the progress store.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from courseware.evaluation.ports import VERDICTS, Highlight, HintResult, JudgeTransientError, Verdict

logger = logging.getLogger(__name__)

MAX_HIGHLIGHTS = 3
MAX_LINE = 100_000
MAX_COL = 1_000
MAX_MESSAGE_CHARS = 2_000
MAX_REASON_CHARS = 200

_CODE_FENCE_PATTERN = re.compile(r"```(?:[a-zA-Z0-9_-]+)?\s*(.*?)\s*```", re.DOTALL)


def clamp_int(value: Any, low: int, high: int) -> int:
    """Coerce to int within [low, high]; non-numbers fall back to `low`."""
    if isinstance(value, bool):
        return low
    try:
        number = float(value)
    except (TypeError, ValueError):
        return low
    if not math.isfinite(number):
        return low
    return max(low, min(high, int(number)))


def clamp_confidence(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return max(0.0, min(1.0, number))


def truncate(value: Any, max_chars: int) -> str:
    if not isinstance(value, str):
        return ""
    text = value.strip()
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 3].rstrip() + "..."


def _unwrap_code_block(raw: str) -> str:
    """Strip triple-backtick fences (```json ... ```) emitted by many LLMs."""
    stripped = raw.strip()
    match = _CODE_FENCE_PATTERN.search(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def parse_json_object(raw: Any) -> dict:
    """Decode judge output into a dict or raise JudgeTransientError."""
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise JudgeTransientError("empty_response")
    try:
        obj = json.loads(_unwrap_code_block(raw))
    except ValueError as exc:
        logger.warning("evaluation.judge.parse_failed reason=json_decode length=%s", len(raw))
        raise JudgeTransientError("malformed_json") from exc
    if not isinstance(obj, dict):
        raise JudgeTransientError("malformed_json")
    return obj


def sanitize_highlights(raw: Any) -> tuple[Highlight, ...]:
    """Keep at most three well-formed ranges, in the order received."""
    if not isinstance(raw, (list, tuple)):
        return ()
    items: list[Highlight] = []
    for entry in raw:
        if len(items) >= MAX_HIGHLIGHTS:
            break
        if not isinstance(entry, dict):
            continue
        start_line = clamp_int(entry.get("startLine"), 1, MAX_LINE)
        end_line = clamp_int(entry.get("endLine"), 1, MAX_LINE)
        start_col = clamp_int(entry.get("startCol"), 1, MAX_COL)
        end_col = clamp_int(entry.get("endCol"), 1, MAX_COL)
        if end_line < start_line:
            start_line, end_line = end_line, start_line
        items.append(
            Highlight(
                start_line=start_line,
                start_col=start_col,
                end_line=end_line,
                end_col=end_col,
                reason=truncate(entry.get("reason"), MAX_REASON_CHARS),
            )
        )
    return tuple(items)


def sanitize_verdict(raw: Any) -> Verdict:
    """Turn an untrusted judge payload into a bounded `Verdict`.

    Raises:
        JudgeTransientError: when the payload is not a JSON object or carries
            no recognisable verdict. A malformed answer is never downgraded to
            a `fail`.
    """
    obj = parse_json_object(raw)
    label = obj.get("verdict")
    label = label.strip().lower() if isinstance(label, str) else ""
    if label not in VERDICTS:
        raise JudgeTransientError("invalid_verdict")
    return Verdict(
        verdict=label,
        confidence=clamp_confidence(obj.get("confidence")),
        message=truncate(obj.get("message"), MAX_MESSAGE_CHARS),
        highlights=sanitize_highlights(obj.get("highlights")),
    )


def sanitize_hint(raw: Any) -> HintResult:
    obj = parse_json_object(raw)
    message = truncate(obj.get("message"), MAX_MESSAGE_CHARS) or "No hint available."
    return HintResult(message=message, highlights=sanitize_highlights(obj.get("highlights")))
