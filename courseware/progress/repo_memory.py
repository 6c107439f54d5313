"""In-memory progress storage with version compare-and-swap."""

from __future__ import annotations

import copy
from threading import Lock
from typing import Dict, List, Optional, Sequence, Tuple

from courseware.progress.store import ProgressRecord


class MemoryProgressRepo:
    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], ProgressRecord] = {}
        self._lock = Lock()

    def load(self, user_id: str, page_id: str) -> Optional[ProgressRecord]:
        with self._lock:
            rec = self._records.get((user_id, page_id))
            return copy.deepcopy(rec) if rec else None

    def insert(self, record: ProgressRecord) -> bool:
        key = (record.user_id, record.page_id)
        with self._lock:
            if key in self._records:
                return False
            stored = copy.deepcopy(record)
            stored.version = 1
            self._records[key] = stored
            return True

    def update(self, record: ProgressRecord, *, expected_version: int) -> bool:
        key = (record.user_id, record.page_id)
        with self._lock:
            current = self._records.get(key)
            if current is None or current.version != expected_version:
                return False
            stored = copy.deepcopy(record)
            stored.version = expected_version + 1
            self._records[key] = stored
            return True

    def list_for_pages(self, user_id: str, page_ids: Sequence[str]) -> List[ProgressRecord]:
        with self._lock:
            return [
                copy.deepcopy(self._records[(user_id, pid)])
                for pid in page_ids
                if (user_id, pid) in self._records
            ]
