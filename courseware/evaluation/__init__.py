"""Evaluation context: judged and direct strategies behind one engine."""

from .engine import DirectExecutionStrategy, EvaluationEngine, JudgedStrategy, build_engine
from .ports import ACCEPTANCE_THRESHOLD, EvaluationOutcome, Highlight, Verdict

__all__ = [
    "ACCEPTANCE_THRESHOLD",
    "DirectExecutionStrategy",
    "EvaluationEngine",
    "EvaluationOutcome",
    "Highlight",
    "JudgedStrategy",
    "Verdict",
    "build_engine",
]
