"""Per-learner progress records with lost-update resistant merges."""

from courseware.progress.store import (
    CODE_SUBMISSIONS,
    MCQ_ANSWERS,
    ProgressRecord,
    ProgressRepoProtocol,
    ProgressStore,
)
from courseware.progress.usecases import RecordProgressInput, RecordProgressUseCase

__all__ = [
    "CODE_SUBMISSIONS",
    "MCQ_ANSWERS",
    "ProgressRecord",
    "ProgressRepoProtocol",
    "ProgressStore",
    "RecordProgressInput",
    "RecordProgressUseCase",
]
