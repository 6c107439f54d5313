"""
Ports for the evaluation context: result types, protocols, and errors.

Intent:
    Provide framework-agnostic contracts between the evaluation engine and
    concrete judge adapters (stub, local Ollama/DSPy) or executors (sandbox).

Design:
    - Result dataclasses: ExecutionResult, Highlight, Verdict, EvaluationOutcome, HintResult
    - Protocols: JudgeAdapterProtocol, ExecutorProtocol
    - Error taxonomy: transient vs. permanent judge failures
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Sequence

from courseware.content.blocks import TestCase

# Policy constant; not learner-configurable.
ACCEPTANCE_THRESHOLD = 0.75

VERDICTS = ("pass", "fail", "unsure")

STRATEGY_JUDGED = "judged"
STRATEGY_DIRECT = "direct"


# ----------------------------- Result types ---------------------------------


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one test case (executed or synthesised by the judge)."""

    passed: bool
    output: str
    expected: str
    hidden: bool = False

    def to_dict(self) -> dict:
        # Hidden cases never reveal their data to the learner.
        if self.hidden:
            return {"passed": self.passed, "output": "", "expected": "", "hidden": True}
        return {"passed": self.passed, "output": self.output, "expected": self.expected, "hidden": False}


@dataclass(frozen=True)
class Highlight:
    """1-based source range the judge points at, with a short reason."""

    start_line: int
    start_col: int
    end_line: int
    end_col: int
    reason: str

    def to_dict(self) -> dict:
        return {
            "startLine": self.start_line,
            "startCol": self.start_col,
            "endLine": self.end_line,
            "endCol": self.end_col,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class Verdict:
    """Judged classification of a submission.

    `all_passed` is synthetic: it only says the judge asserted `pass` with a
    confidence at or above `ACCEPTANCE_THRESHOLD`, not that code ran.
    """

    verdict: str
    confidence: float
    message: str
    highlights: tuple[Highlight, ...] = ()

    @property
    def all_passed(self) -> bool:
        return self.verdict == "pass" and self.confidence >= ACCEPTANCE_THRESHOLD


@dataclass
class EvaluationOutcome:
    """Uniform result for both strategies (progress storage treats them alike)."""

    strategy: str
    results: List[ExecutionResult] = field(default_factory=list)
    all_passed: bool = False
    output: str = ""
    verdict: Optional[Verdict] = None

    @property
    def executed(self) -> bool:
        return self.strategy == STRATEGY_DIRECT

    def to_dict(self) -> dict:
        data: dict = {
            "strategy": self.strategy,
            "executed": self.executed,
            "results": [r.to_dict() for r in self.results],
            "allPassed": self.all_passed,
            "output": self.output,
        }
        if self.verdict is not None:
            data["verdict"] = self.verdict.verdict
            data["confidence"] = self.verdict.confidence
            data["message"] = self.verdict.message
            data["highlights"] = [h.to_dict() for h in self.verdict.highlights]
        return data


@dataclass(frozen=True)
class HintResult:
    message: str
    highlights: tuple[Highlight, ...] = ()

    def to_dict(self) -> dict:
        return {"message": self.message, "highlights": [h.to_dict() for h in self.highlights]}


@dataclass(frozen=True)
class FailingTest:
    input: str
    expected_output: str
    actual_output: str


# ----------------------------- Protocols ------------------------------------


class JudgeAdapterProtocol(Protocol):
    """Non-executing reviewer. Returns untrusted JSON text or an unsanitised dict."""

    def judge(self, *, code: str, language: str, test_cases: Sequence[TestCase]) -> Any:
        ...

    def hint(self, *, code: str, language: str, failing_tests: Sequence[FailingTest]) -> Any:
        ...


class ExecutorProtocol(Protocol):
    """Runs a candidate solution for one input and returns its printed result."""

    def run(self, *, code: str, language: str, input: str) -> str:
        ...


# ------------------------------ Errors --------------------------------------


class JudgeError(Exception):
    """Base class for judge adapter failures."""


class JudgeTransientError(JudgeError):
    """Recoverable judge error (timeout, connection, malformed output)."""


class JudgePermanentError(JudgeError):
    """Non-recoverable judge error (misconfiguration)."""


class SandboxError(Exception):
    """Executor could not run the candidate at all."""


__all__ = [
    "ACCEPTANCE_THRESHOLD",
    "VERDICTS",
    "STRATEGY_JUDGED",
    "STRATEGY_DIRECT",
    "ExecutionResult",
    "Highlight",
    "Verdict",
    "EvaluationOutcome",
    "HintResult",
    "FailingTest",
    "JudgeAdapterProtocol",
    "ExecutorProtocol",
    "JudgeError",
    "JudgeTransientError",
    "JudgePermanentError",
    "SandboxError",
]
