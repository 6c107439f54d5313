"""
DSPy judge program: run the review signatures and return raw dict payloads.

Intent:
    Called by the local judge adapter when DSPy is importable and configured.
    The returned dicts are still untrusted; the engine sanitises them.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Sequence

import dspy

from courseware.content.blocks import TestCase
from courseware.evaluation.adapters.dspy.signatures import CodeHintSignature, CodeVerdictSignature
from courseware.evaluation.ports import FailingTest
from courseware.evaluation.prompts import MAX_CODE_CHARS, MAX_TEST_FIELD_CHARS, clip

logger = logging.getLogger(__name__)

_CONFIGURED: dict[str, bool] = {}


def _ensure_ollama_host_env() -> str | None:
    """DSPy (LiteLLM) expects OLLAMA_API_BASE; propagate OLLAMA_BASE_URL."""
    base_url = (os.getenv("OLLAMA_BASE_URL") or "").strip()
    if not base_url:
        return None
    if not (os.getenv("OLLAMA_API_BASE") or "").strip():
        os.environ["OLLAMA_API_BASE"] = base_url
    return base_url


def configure(*, model_name: str) -> None:
    """Configure DSPy once per model with the JSON adapter when available."""
    if _CONFIGURED.get(model_name):
        return
    api_base = _ensure_ollama_host_env()
    lm_kwargs = {"api_base": api_base} if api_base else {}
    lm = dspy.LM(f"ollama_chat/{model_name}", **lm_kwargs)
    adapter_cls = getattr(dspy, "JSONAdapter", None)
    if adapter_cls is not None:
        dspy.configure(lm=lm, adapter=adapter_cls())
    else:
        dspy.configure(lm=lm)
    _CONFIGURED[model_name] = True
    logger.info("evaluation.judge.dspy_configured model=%s", model_name)


def _field(out: Any, name: str, default: Any) -> Any:
    value = getattr(out, name, default)
    return default if value is None else value


def run_verdict(*, code: str, language: str, test_cases: Sequence[TestCase]) -> dict:
    tests_json = json.dumps(
        [
            {
                "input": clip(tc.input, max_chars=MAX_TEST_FIELD_CHARS),
                "expectedOutput": clip(tc.expected_output, max_chars=MAX_TEST_FIELD_CHARS),
            }
            for tc in test_cases
        ],
        ensure_ascii=False,
    )
    predict = dspy.Predict(CodeVerdictSignature)
    out = predict(language=language, code=clip(code, max_chars=MAX_CODE_CHARS), tests_json=tests_json)
    return {
        "verdict": _field(out, "verdict", ""),
        "confidence": _field(out, "confidence", 0.0),
        "message": _field(out, "message", ""),
        "highlights": _field(out, "highlights", []),
    }


def run_hint(*, code: str, language: str, failing_tests: Sequence[FailingTest]) -> dict:
    failing_json = json.dumps(
        [
            {
                "input": clip(t.input, max_chars=MAX_TEST_FIELD_CHARS),
                "expectedOutput": clip(t.expected_output, max_chars=MAX_TEST_FIELD_CHARS),
                "actualOutput": clip(t.actual_output, max_chars=MAX_TEST_FIELD_CHARS),
            }
            for t in failing_tests
        ],
        ensure_ascii=False,
    )
    predict = dspy.Predict(CodeHintSignature)
    out = predict(language=language, code=clip(code, max_chars=MAX_CODE_CHARS), failing_tests_json=failing_json)
    return {"message": _field(out, "message", ""), "highlights": _field(out, "highlights", [])}
