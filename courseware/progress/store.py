"""
Per-learner, per-page progress with non-clobbering concurrent writes.

Intent:
    Merge one section's answer or submission into a learner's progress record
    without touching any other section, `completedAt`, or the other map.

Concurrency:
    Every write is read-modify-write guarded by compare-and-swap on the
    record's `version`. The insert branch relies on the repository refusing a
    second row for the same (user_id, page_id). A lost race is retried from a
    fresh read a bounded number of times before `ConcurrencyError` surfaces.
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from courseware import telemetry
from courseware.errors import ConcurrencyError, ValidationError

logger = logging.getLogger(__name__)

MCQ_ANSWERS = "mcqAnswers"
CODE_SUBMISSIONS = "codeSubmissions"
FIELDS = (MCQ_ANSWERS, CODE_SUBMISSIONS)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProgressRecord:
    user_id: str
    page_id: str
    completed_at: Optional[datetime] = None
    mcq_answers: Dict[str, dict] = field(default_factory=dict)
    code_submissions: Dict[str, dict] = field(default_factory=dict)
    version: int = 0

    def field_map(self, name: str) -> Dict[str, dict]:
        return self.mcq_answers if name == MCQ_ANSWERS else self.code_submissions

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "pageId": self.page_id,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "mcqAnswers": copy.deepcopy(self.mcq_answers),
            "codeSubmissions": copy.deepcopy(self.code_submissions),
        }


class ProgressRepoProtocol(Protocol):
    def load(self, user_id: str, page_id: str) -> Optional[ProgressRecord]:
        ...

    def insert(self, record: ProgressRecord) -> bool:
        """Create the record with version 1; False if one already exists."""
        ...

    def update(self, record: ProgressRecord, *, expected_version: int) -> bool:
        """Write back iff the stored version still equals `expected_version`."""
        ...

    def list_for_pages(self, user_id: str, page_ids: Sequence[str]) -> List[ProgressRecord]:
        ...


def _max_attempts() -> int:
    raw = (os.getenv("PROGRESS_MAX_CAS_ATTEMPTS") or "").strip()
    try:
        value = int(raw)
    except ValueError:
        value = 3
    return max(1, min(value, 10))


class ProgressStore:
    """Read-modify-write progress merges with optimistic concurrency."""

    def __init__(self, repo: ProgressRepoProtocol, *, max_attempts: Optional[int] = None) -> None:
        self._repo = repo
        self._max_attempts = max_attempts or _max_attempts()

    def _apply(self, user_id: str, page_id: str, mutate: Callable[[ProgressRecord], None], *, action: str) -> ProgressRecord:
        for attempt in range(1, self._max_attempts + 1):
            current = self._repo.load(user_id, page_id)
            if current is None:
                record = ProgressRecord(user_id=user_id, page_id=page_id)
                mutate(record)
                if self._repo.insert(record):
                    record.version = 1
                    return record
            else:
                record = copy.deepcopy(current)
                mutate(record)
                if self._repo.update(record, expected_version=current.version):
                    record.version = current.version + 1
                    return record
            telemetry.increment_counter("progress_cas_conflicts_total", action=action)
            logger.info(
                "progress.write.conflict action=%s page_id=%s attempt=%s", action, page_id, attempt
            )
        raise ConcurrencyError("progress_conflict", "Progress could not be saved, please try again.")

    def upsert_field(self, user_id: str, page_id: str, field_name: str, section_id: str, value: dict) -> ProgressRecord:
        """Set `field_name[section_id] = value`, preserving every other entry."""
        if field_name not in FIELDS:
            raise ValidationError("invalid_field", "Unknown progress field")
        if not section_id:
            raise ValidationError("missing_section_id", "sectionId is required")

        def _mutate(record: ProgressRecord) -> None:
            record.field_map(field_name)[section_id] = copy.deepcopy(value)

        return self._apply(user_id, page_id, _mutate, action=field_name)

    def mark_complete(self, user_id: str, page_id: str) -> ProgressRecord:
        """Move `completedAt` forward to now; it is never cleared."""
        now = _now()

        def _mutate(record: ProgressRecord) -> None:
            if record.completed_at is None or record.completed_at < now:
                record.completed_at = now

        return self._apply(user_id, page_id, _mutate, action="complete")

    def get_progress(self, user_id: str, page_id: str) -> Optional[ProgressRecord]:
        return self._repo.load(user_id, page_id)

    def list_progress(self, user_id: str, page_ids: Sequence[str]) -> List[ProgressRecord]:
        if not page_ids:
            return []
        return self._repo.list_for_pages(user_id, list(page_ids))
