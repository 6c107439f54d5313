"""
Per-submission state machine as seen by a learner's client.

States:
    idle -> running -> recorded | error

`reset` returns to idle from any state with the code reverted to the
block's starter text for the selected language and the recorded verdict and
highlights cleared. There is no automatic retry; after an error the learner
simply submits again.
"""

from __future__ import annotations

from typing import Optional

from courseware.content.blocks import CodeBlock
from courseware.errors import CoursewareError
from courseware.evaluation.ports import EvaluationOutcome

IDLE = "idle"
RUNNING = "running"
RECORDED = "recorded"
ERROR = "error"


class InvalidTransition(RuntimeError):
    pass


class SubmissionSession:
    def __init__(self, block: CodeBlock, *, language: Optional[str] = None) -> None:
        self._block = block
        self.language = language or block.default_language
        self.code = block.starter_code(self.language)
        self.state = IDLE
        self.outcome: Optional[EvaluationOutcome] = None
        self.error_code: Optional[str] = None

    def select_language(self, language: str) -> None:
        if self.state == RUNNING:
            raise InvalidTransition("cannot switch language while running")
        self.language = language
        self.reset()

    def edit(self, code: str) -> None:
        if self.state == RUNNING:
            raise InvalidTransition("cannot edit while running")
        self.code = code

    def start(self) -> None:
        if self.state == RUNNING:
            raise InvalidTransition("already running")
        self.state = RUNNING
        self.outcome = None
        self.error_code = None

    def record(self, outcome: EvaluationOutcome) -> None:
        if self.state != RUNNING:
            raise InvalidTransition("no evaluation in flight")
        self.outcome = outcome
        self.state = RECORDED

    def fail(self, error: CoursewareError) -> None:
        if self.state != RUNNING:
            raise InvalidTransition("no evaluation in flight")
        self.error_code = error.code
        self.state = ERROR

    def reset(self) -> None:
        if self.state == RUNNING:
            raise InvalidTransition("cannot reset while running")
        self.code = self._block.starter_code(self.language)
        self.outcome = None
        self.error_code = None
        self.state = IDLE

    @property
    def highlights(self):
        if self.outcome is None or self.outcome.verdict is None:
            return ()
        return self.outcome.verdict.highlights
