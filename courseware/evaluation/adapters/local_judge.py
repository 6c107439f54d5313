"""
Local judge adapter backed by DSPy or a plain Ollama client call.

Intent:
    Review code without executing it. Prefer the DSPy program when a model
    and base URL are configured and `dspy` imports; otherwise ask Ollama
    directly for a JSON answer. Either way the payload goes back to the
    engine unsanitised.

Privacy:
    Never log learner code, test data or raw model output; log only sizes,
    exception class names and the backend used.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Sequence

from courseware.content.blocks import TestCase
from courseware.evaluation.ports import FailingTest, JudgeTransientError
from courseware.evaluation.prompts import build_hint_prompt, build_judge_prompt

logger = logging.getLogger(__name__)


def _response_text(raw: Any) -> str:
    """Extract the text field from the various Ollama client return types."""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        val = raw.get("response") or raw.get("message")
        return str(val or "")
    val = getattr(raw, "response", None)
    if val is not None:
        return str(val)
    return str(raw)


class _LocalJudgeAdapter:
    def __init__(self) -> None:
        raw_model = (os.getenv("AI_JUDGE_MODEL") or "").strip()
        self._dspy_model = raw_model
        self._model = raw_model or "gpt-oss:latest"
        raw_base_url = (os.getenv("OLLAMA_BASE_URL") or "").strip()
        self._dspy_base_url = raw_base_url
        self._base_url = raw_base_url or "http://ollama:11434"
        self._timeout = int(os.getenv("AI_TIMEOUT_JUDGE", "20"))

    def _dspy_program(self):
        """Return the DSPy judge program module, or None to use Ollama directly."""
        if not self._dspy_model or not self._dspy_base_url:
            logger.debug("evaluation.judge.dspy_skipped reason=missing_config")
            return None
        try:
            from courseware.evaluation.adapters.dspy import judge_program
        except ImportError as exc:
            logger.warning("evaluation.judge.dspy_import_failed reason=%s", exc.__class__.__name__)
            return None
        judge_program.configure(model_name=self._dspy_model)
        return judge_program

    def _generate(self, prompt: str) -> str:
        import ollama

        try:
            client = ollama.Client(self._base_url, timeout=self._timeout)
            raw = client.generate(
                model=self._model,
                prompt=prompt,
                format="json",
                options={"temperature": 0},
            )
        except TimeoutError as exc:
            raise JudgeTransientError("timeout") from exc
        except ollama.ResponseError as exc:
            raise JudgeTransientError(f"response_error:{getattr(exc, 'status_code', '?')}") from exc
        except (ConnectionError, OSError) as exc:
            raise JudgeTransientError("connection_error") from exc
        except Exception as exc:  # httpx transport errors surface with varying types
            if "timeout" in exc.__class__.__name__.lower():
                raise JudgeTransientError("timeout") from exc
            raise JudgeTransientError(exc.__class__.__name__) from exc
        return _response_text(raw)

    def judge(self, *, code: str, language: str, test_cases: Sequence[TestCase]) -> Any:
        program = self._dspy_program()
        if program is not None:
            try:
                result = program.run_verdict(code=code, language=language, test_cases=test_cases)
                logger.info("evaluation.judge.completed backend=dspy tests=%s", len(test_cases))
                return result
            except TimeoutError as exc:
                raise JudgeTransientError("timeout") from exc
            except Exception as exc:
                logger.warning("evaluation.judge.dspy_failed reason=%s", exc.__class__.__name__)
        text = self._generate(build_judge_prompt(code=code, language=language, test_cases=test_cases))
        logger.info("evaluation.judge.completed backend=ollama tests=%s length=%s", len(test_cases), len(text))
        return text

    def hint(self, *, code: str, language: str, failing_tests: Sequence[FailingTest]) -> Any:
        program = self._dspy_program()
        if program is not None:
            try:
                return program.run_hint(code=code, language=language, failing_tests=failing_tests)
            except TimeoutError as exc:
                raise JudgeTransientError("timeout") from exc
            except Exception as exc:
                logger.warning("evaluation.hint.dspy_failed reason=%s", exc.__class__.__name__)
        return self._generate(build_hint_prompt(code=code, language=language, failing_tests=failing_tests))


def build() -> _LocalJudgeAdapter:
    """Factory used by the engine DI to construct the adapter instance."""
    return _LocalJudgeAdapter()
