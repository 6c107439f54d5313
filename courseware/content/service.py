"""
Use cases for reading and writing page sections through the normaliser.

Intent:
    Keep the web adapter thin: editor saves are validated and normalised
    before they reach storage, learner reads are normalised on the way out so
    legacy rows always render in the canonical shape.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional, Protocol

from courseware.content.blocks import CodeBlock, PageSection
from courseware.content.normalizer import normalize_section, section_for_storage
from courseware.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAX_SECTIONS_PER_PAGE = 100


class ContentRepoProtocol(Protocol):
    def replace_page_sections(self, page_id: str, rows: List[dict[str, Any]]) -> List[dict]:
        ...

    def list_page_sections(self, page_id: str) -> List[dict]:
        ...

    def get_section(self, section_id: str) -> Optional[dict]:
        ...


def _parse_content(value: Any) -> Any:
    """Rows written by older clients may hold JSON text instead of an object."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return {}


def _client_id(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _to_section(row: dict) -> PageSection:
    return PageSection(
        id=str(row["id"]),
        page_id=str(row["page_id"]),
        order_index=int(row["order_index"]),
        block=normalize_section(str(row["type"]), _parse_content(row.get("content"))),
    )


class ContentService:
    def __init__(self, repo: ContentRepoProtocol) -> None:
        self._repo = repo

    def save_page_sections(self, page_id: str, sections: Any) -> List[PageSection]:
        """Replace a page's sections with their canonical, storage-ready form.

        Behavior:
            - Rejects non-list payloads and items without a known `type`.
            - Re-numbers `orderIndex` 0..n-1 in the submitted order.
            - Code blocks lose the editor-only `_editingLang` marker.
        """
        if not isinstance(sections, list):
            raise ValidationError("invalid_sections", "sections must be a list")
        if len(sections) > MAX_SECTIONS_PER_PAGE:
            raise ValidationError("too_many_sections", "Too many sections on one page")
        rows: List[dict[str, Any]] = []
        for position, item in enumerate(sections):
            if not isinstance(item, dict):
                raise ValidationError("invalid_section", "Each section must be an object")
            block_type = str(item.get("type") or "")
            content = section_for_storage(block_type, _parse_content(item.get("content")))
            rows.append(
                {
                    "id": _client_id(item.get("id")),
                    "type": block_type.strip().lower(),
                    "order_index": position,
                    "content": content,
                }
            )
        stored = self._repo.replace_page_sections(page_id, rows)
        logger.info("content.sections.saved page_id=%s count=%s", page_id, len(stored))
        return [_to_section(row) for row in stored]

    def list_page_sections(self, page_id: str) -> List[PageSection]:
        return [_to_section(row) for row in self._repo.list_page_sections(page_id)]

    def get_code_block(self, section_id: str, *, page_id: str | None = None) -> CodeBlock:
        """Return the canonical code block stored under `section_id`."""
        row = self._repo.get_section(section_id)
        if row is None or (page_id is not None and str(row["page_id"]) != page_id):
            raise NotFoundError("section_not_found", "Section not found")
        section = _to_section(row)
        if not isinstance(section.block, CodeBlock):
            raise ValidationError("not_a_code_section", "Section is not a coding challenge")
        return section.block
