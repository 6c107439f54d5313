"""In-memory page-section storage for dev runs and tests."""

from __future__ import annotations

from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import uuid4


class MemoryContentRepo:
    """Stores raw section rows; normalisation happens in the service layer."""

    def __init__(self) -> None:
        self._rows: Dict[str, dict] = {}
        self._ids_by_page: Dict[str, List[str]] = {}
        self._lock = Lock()

    def replace_page_sections(self, page_id: str, rows: List[dict[str, Any]]) -> List[dict]:
        with self._lock:
            for old_id in self._ids_by_page.pop(page_id, []):
                self._rows.pop(old_id, None)
            stored: List[dict] = []
            for row in rows:
                sid = row.get("id") or str(uuid4())
                if sid in self._rows:
                    # Id is held by another page or repeated in this save.
                    sid = str(uuid4())
                record = {
                    "id": sid,
                    "page_id": page_id,
                    "type": row["type"],
                    "order_index": int(row["order_index"]),
                    "content": row["content"],
                }
                self._rows[sid] = record
                stored.append(dict(record))
            self._ids_by_page[page_id] = [r["id"] for r in stored]
        return stored

    def list_page_sections(self, page_id: str) -> List[dict]:
        with self._lock:
            rows = [dict(self._rows[sid]) for sid in self._ids_by_page.get(page_id, []) if sid in self._rows]
        return sorted(rows, key=lambda r: r["order_index"])

    def get_section(self, section_id: str) -> Optional[dict]:
        with self._lock:
            row = self._rows.get(section_id)
            return dict(row) if row else None
