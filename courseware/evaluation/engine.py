"""
Evaluation engine: turn (code, language, test cases) into an outcome.

Intent:
    Offer one caller contract over two interchangeable strategies:

    - JudgedStrategy: an external reviewer classifies the code without
      running it. Its output is sanitised and its `all_passed` is synthetic.
    - DirectExecutionStrategy: run the candidate per test case in an isolated
      executor and compare trimmed output; `all_passed` is definitive.

Errors:
    Judge timeouts, connection failures and malformed answers become
    `ExternalDependencyError` after one re-attempt. No partial verdict is ever
    returned as if it were final.
"""

from __future__ import annotations

import logging
from importlib import import_module
from typing import Optional, Protocol, Sequence

from courseware import telemetry
from courseware.content.blocks import TestCase
from courseware.errors import ExternalDependencyError, ValidationError
from courseware.evaluation.config import EvaluationConfig, load_evaluation_config
from courseware.evaluation.ports import (
    STRATEGY_DIRECT,
    STRATEGY_JUDGED,
    EvaluationOutcome,
    ExecutionResult,
    ExecutorProtocol,
    FailingTest,
    HintResult,
    JudgeAdapterProtocol,
    JudgeError,
    JudgePermanentError,
    SandboxError,
)
from courseware.evaluation.sanitize import sanitize_hint, sanitize_verdict

logger = logging.getLogger(__name__)

MAX_CODE_CHARS = 50_000
MAX_TEST_CASES = 100
MAX_HINT_FAILING_TESTS = 3
JUDGE_ATTEMPTS = 2


class EvaluationStrategy(Protocol):
    name: str

    def evaluate(self, *, code: str, language: str, test_cases: Sequence[TestCase]) -> EvaluationOutcome:
        ...


def _call_judge(action: str, call):
    """Invoke the judge with one re-attempt; map failures to ExternalDependencyError."""
    last_reason = "unknown"
    for attempt in range(1, JUDGE_ATTEMPTS + 1):
        try:
            return call()
        except JudgePermanentError as exc:
            last_reason = exc.__class__.__name__
            logger.warning("evaluation.%s.failed reason=permanent attempt=%s", action, attempt)
            break
        except (JudgeError, TimeoutError) as exc:
            last_reason = str(exc) or exc.__class__.__name__
            logger.warning(
                "evaluation.%s.failed reason=%s attempt=%s", action, exc.__class__.__name__, attempt
            )
    telemetry.increment_counter("evaluation_judge_failures_total", action=action)
    logger.info("evaluation.%s.giving_up last_reason=%s", action, last_reason[:80])
    raise ExternalDependencyError("review_failed", "Review failed, please try again.")


class JudgedStrategy:
    """Non-executing evaluation via an external reviewer."""

    name = STRATEGY_JUDGED

    def __init__(self, judge: JudgeAdapterProtocol, *, max_test_cases: int = 10) -> None:
        self._judge = judge
        self._max_test_cases = max_test_cases

    def evaluate(self, *, code: str, language: str, test_cases: Sequence[TestCase]) -> EvaluationOutcome:
        forwarded = list(test_cases)[: self._max_test_cases]

        def _review():
            raw = self._judge.judge(code=code, language=language, test_cases=forwarded)
            return sanitize_verdict(raw)

        verdict = _call_judge("judge", _review)
        all_passed = verdict.all_passed
        # Synthetic per-case results keep older renderers working; nothing ran.
        results = [
            ExecutionResult(passed=all_passed, output="", expected=tc.expected_output.strip(), hidden=tc.hidden)
            for tc in forwarded
        ]
        output = f"Review: {verdict.verdict} ({round(verdict.confidence * 100)}% confidence)"
        if verdict.message:
            output += "\n" + verdict.message
        telemetry.increment_counter("evaluation_verdicts_total", verdict=verdict.verdict)
        logger.info(
            "evaluation.judge.completed verdict=%s all_passed=%s tests_forwarded=%s tests_total=%s",
            verdict.verdict,
            all_passed,
            len(forwarded),
            len(test_cases),
        )
        return EvaluationOutcome(
            strategy=self.name, results=results, all_passed=all_passed, output=output, verdict=verdict
        )

    def hint(self, *, code: str, language: str, failing_tests: Sequence[FailingTest]) -> HintResult:
        selected = list(failing_tests)[:MAX_HINT_FAILING_TESTS]

        def _ask():
            raw = self._judge.hint(code=code, language=language, failing_tests=selected)
            return sanitize_hint(raw)

        return _call_judge("hint", _ask)


class DirectExecutionStrategy:
    """Run the candidate against every case in an isolated executor."""

    name = STRATEGY_DIRECT

    def __init__(self, executor: ExecutorProtocol) -> None:
        self._executor = executor

    def evaluate(self, *, code: str, language: str, test_cases: Sequence[TestCase]) -> EvaluationOutcome:
        results: list[ExecutionResult] = []
        for tc in test_cases:
            try:
                raw_output = self._executor.run(code=code, language=language, input=tc.input)
            except SandboxError as exc:
                if str(exc).startswith("unsupported_language"):
                    raise ValidationError("unsupported_language", f"Language '{language}' cannot be executed") from exc
                logger.warning("evaluation.direct.executor_failed reason=%s", exc)
                raise ExternalDependencyError("execution_failed", "Execution failed, please try again.") from exc
            output = (raw_output or "").strip()
            expected = tc.expected_output.strip()
            results.append(ExecutionResult(passed=output == expected, output=output, expected=expected, hidden=tc.hidden))
        all_passed = all(r.passed for r in results)
        lines = []
        for idx, r in enumerate(results, start=1):
            mark = "✓" if r.passed else "✗"
            lines.append(f"Test {idx}: {mark} {'(hidden)' if r.hidden else r.output}")
        logger.info(
            "evaluation.direct.completed all_passed=%s tests=%s passed=%s",
            all_passed,
            len(results),
            sum(1 for r in results if r.passed),
        )
        return EvaluationOutcome(strategy=self.name, results=results, all_passed=all_passed, output="\n".join(lines))


class EvaluationEngine:
    """Caller-facing facade; strategy is swappable without changing callers."""

    def __init__(self, strategy: EvaluationStrategy, *, judge: Optional[JudgeAdapterProtocol] = None) -> None:
        self._strategy = strategy
        self._judge = judge

    @property
    def strategy_name(self) -> str:
        return self._strategy.name

    def evaluate(self, code: str, language: str, test_cases: Sequence[TestCase]) -> EvaluationOutcome:
        """Validate inputs, then delegate to the configured strategy."""
        if not isinstance(code, str) or not code.strip():
            raise ValidationError("invalid_code", "Code must be a non-empty string")
        if len(code) > MAX_CODE_CHARS:
            raise ValidationError("code_too_large", "Code is too large")
        if not isinstance(language, str) or not language.strip():
            raise ValidationError("invalid_language", "Language is required")
        cases = list(test_cases)
        if not cases:
            raise ValidationError("no_test_cases", "At least one test case is required")
        if len(cases) > MAX_TEST_CASES:
            raise ValidationError("too_many_test_cases", "Too many test cases")
        return self._strategy.evaluate(code=code, language=language.strip().lower(), test_cases=cases)

    def hint(self, code: str, language: str, failing_tests: Sequence[FailingTest]) -> HintResult:
        if not isinstance(code, str) or not code.strip():
            raise ValidationError("invalid_code", "Code must be a non-empty string")
        if self._judge is None:
            raise ExternalDependencyError("hint_unavailable", "Hints are not available right now.")
        return JudgedStrategy(self._judge).hint(code=code, language=language.strip().lower(), failing_tests=failing_tests)


def load_judge(path: str) -> JudgeAdapterProtocol:
    module = import_module(path)
    return module.build()  # type: ignore[attr-defined]


def build_engine(config: EvaluationConfig | None = None) -> EvaluationEngine:
    """Wire the engine from configuration (DI via dotted adapter paths)."""
    cfg = config or load_evaluation_config()
    judge = load_judge(cfg.judge_adapter_path)
    if cfg.strategy == STRATEGY_DIRECT:
        from courseware.evaluation.sandbox import build as build_sandbox

        executor = build_sandbox(timeout_seconds=cfg.sandbox_timeout_seconds, memory_mb=cfg.sandbox_memory_mb)
        strategy: EvaluationStrategy = DirectExecutionStrategy(executor)
    else:
        strategy = JudgedStrategy(judge, max_test_cases=cfg.max_judge_test_cases)
    logger.info("evaluation.engine.configured strategy=%s judge=%s", strategy.name, cfg.judge_adapter_path)
    return EvaluationEngine(strategy, judge=judge)
