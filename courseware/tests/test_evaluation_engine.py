"""
EvaluationEngine: judged and direct strategies behind one contract.

Approach:
    Fake judges and executors; no model and no subprocess involved.
"""
from __future__ import annotations

import json

import pytest

from courseware import telemetry
from courseware.content.blocks import TestCase
from courseware.errors import ExternalDependencyError, ValidationError
from courseware.evaluation.config import EvaluationConfig
from courseware.evaluation.engine import (
    DirectExecutionStrategy,
    EvaluationEngine,
    JudgedStrategy,
    build_engine,
)
from courseware.evaluation.ports import FailingTest, JudgePermanentError, JudgeTransientError, SandboxError

CASES = [
    TestCase(input="2", expected_output="4"),
    TestCase(input="3", expected_output="9 ", hidden=True),
]


class _FakeJudge:
    def __init__(self, answers):
        self.answers = list(answers)
        self.calls = 0
        self.seen_cases = None

    def _next(self):
        self.calls += 1
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def judge(self, *, code, language, test_cases):
        self.seen_cases = list(test_cases)
        return self._next()

    def hint(self, *, code, language, failing_tests):
        self.seen_cases = list(failing_tests)
        return self._next()


class _SquareExecutor:
    def __init__(self):
        self.calls = []

    def run(self, *, code, language, input):
        self.calls.append(input)
        if language != "python":
            raise SandboxError(f"unsupported_language:{language}")
        return f"{int(input) ** 2}\n"


def test_judged_pass_above_threshold_is_synthetic_pass():
    judge = _FakeJudge([{"verdict": "pass", "confidence": 0.81, "message": "Looks right."}])
    outcome = EvaluationEngine(JudgedStrategy(judge)).evaluate("def solution(x): ...", "python", CASES)

    assert outcome.all_passed is True
    assert outcome.executed is False
    assert all(r.passed for r in outcome.results)
    assert all(r.output == "" for r in outcome.results)
    assert outcome.output.startswith("Review: pass (81% confidence)")
    body = outcome.to_dict()
    assert body["verdict"] == "pass"
    assert body["confidence"] == 0.81
    assert body["results"][1] == {"passed": True, "output": "", "expected": "", "hidden": True}
    assert telemetry.counter_total("evaluation_verdicts_total") == 1


def test_judged_fail_with_high_confidence_is_not_passed():
    judge = _FakeJudge([{"verdict": "fail", "confidence": 0.9, "message": "Off by one."}])
    outcome = EvaluationEngine(JudgedStrategy(judge)).evaluate("code", "javascript", CASES)
    assert outcome.all_passed is False
    assert [r.passed for r in outcome.results] == [False, False]


def test_judged_forwards_at_most_configured_cases():
    many = [TestCase(input=str(i), expected_output=str(i)) for i in range(25)]
    judge = _FakeJudge([json.dumps({"verdict": "unsure", "confidence": 0.5})])
    outcome = EvaluationEngine(JudgedStrategy(judge, max_test_cases=10)).evaluate("code", "python", many)
    assert len(judge.seen_cases) == 10
    assert len(outcome.results) == 10


def test_judge_retried_once_then_external_dependency_error():
    judge = _FakeJudge([JudgeTransientError("timeout"), "not json at all"])
    engine = EvaluationEngine(JudgedStrategy(judge))
    with pytest.raises(ExternalDependencyError) as exc:
        engine.evaluate("code", "python", CASES)
    assert exc.value.code == "review_failed"
    assert judge.calls == 2
    assert telemetry.counter_total("evaluation_judge_failures_total") == 1


def test_judge_recovers_on_second_attempt():
    judge = _FakeJudge([TimeoutError(), {"verdict": "pass", "confidence": 0.9}])
    outcome = EvaluationEngine(JudgedStrategy(judge)).evaluate("code", "python", CASES)
    assert outcome.all_passed is True
    assert judge.calls == 2


def test_permanent_judge_error_is_not_retried():
    judge = _FakeJudge([JudgePermanentError("misconfigured"), {"verdict": "pass", "confidence": 1}])
    with pytest.raises(ExternalDependencyError):
        EvaluationEngine(JudgedStrategy(judge)).evaluate("code", "python", CASES)
    assert judge.calls == 1


def test_direct_execution_compares_trimmed_output():
    executor = _SquareExecutor()
    outcome = EvaluationEngine(DirectExecutionStrategy(executor)).evaluate("code", "Python", CASES)

    assert outcome.executed is True
    assert outcome.verdict is None
    assert outcome.all_passed is True
    assert executor.calls == ["2", "3"]
    assert outcome.output.splitlines() == ["Test 1: ✓ 4", "Test 2: ✓ (hidden)"]
    body = outcome.to_dict()
    assert "verdict" not in body
    assert body["results"][1]["expected"] == ""


def test_direct_execution_all_passed_is_conjunction():
    cases = [TestCase(input="2", expected_output="4"), TestCase(input="3", expected_output="10")]
    outcome = EvaluationEngine(DirectExecutionStrategy(_SquareExecutor())).evaluate("code", "python", cases)
    assert [r.passed for r in outcome.results] == [True, False]
    assert outcome.all_passed is False


def test_direct_execution_unsupported_language_is_validation_error():
    with pytest.raises(ValidationError) as exc:
        EvaluationEngine(DirectExecutionStrategy(_SquareExecutor())).evaluate("code", "java", CASES)
    assert exc.value.code == "unsupported_language"


@pytest.mark.parametrize(
    "code,language,cases,error",
    [
        ("", "python", CASES, "invalid_code"),
        ("   ", "python", CASES, "invalid_code"),
        ("x" * 50_001, "python", CASES, "code_too_large"),
        ("code", "", CASES, "invalid_language"),
        ("code", "python", [], "no_test_cases"),
        ("code", "python", [TestCase(input="1", expected_output="1")] * 101, "too_many_test_cases"),
    ],
)
def test_engine_validates_before_any_call(code, language, cases, error):
    judge = _FakeJudge([])
    with pytest.raises(ValidationError) as exc:
        EvaluationEngine(JudgedStrategy(judge)).evaluate(code, language, cases)
    assert exc.value.code == error
    assert judge.calls == 0


def test_hint_uses_at_most_three_failing_tests():
    judge = _FakeJudge([{"message": "Check the loop bound.", "highlights": [{"startLine": 3, "endLine": 3}]}])
    failing = [FailingTest(input=str(i), expected_output="x", actual_output="y") for i in range(5)]
    hint = EvaluationEngine(JudgedStrategy(judge), judge=judge).hint("code", "python", failing)
    assert len(judge.seen_cases) == 3
    assert hint.message == "Check the loop bound."
    assert hint.highlights[0].start_line == 3


def test_hint_without_judge_is_unavailable():
    engine = EvaluationEngine(DirectExecutionStrategy(_SquareExecutor()))
    with pytest.raises(ExternalDependencyError) as exc:
        engine.hint("code", "python", [])
    assert exc.value.code == "hint_unavailable"


def _config(**overrides) -> EvaluationConfig:
    values = dict(
        strategy="judged",
        judge_backend="stub",
        judge_adapter_path="courseware.evaluation.adapters.stub_judge",
        judge_model="gpt-oss:latest",
        timeout_judge_seconds=20,
        ollama_base_url="http://ollama:11434",
        max_judge_test_cases=10,
        sandbox_timeout_seconds=5,
        sandbox_memory_mb=256,
        allow_direct_execution=False,
    )
    values.update(overrides)
    return EvaluationConfig(**values)


def test_build_engine_with_stub_never_passes():
    engine = build_engine(_config())
    assert engine.strategy_name == "judged"
    outcome = engine.evaluate("def solution(x): return x", "python", [TestCase(input="1", expected_output="1")])
    assert outcome.all_passed is False
    assert outcome.verdict.verdict == "unsure"


def test_build_engine_direct_strategy():
    engine = build_engine(_config(strategy="direct"))
    assert engine.strategy_name == "direct"
