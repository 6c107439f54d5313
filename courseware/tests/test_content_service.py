"""
ContentService over the in-memory repo: editor saves and learner reads.
"""
from __future__ import annotations

import pytest

from courseware.content.blocks import CodeBlock, TextBlock
from courseware.content.repo_memory import MemoryContentRepo
from courseware.content.service import ContentService
from courseware.errors import NotFoundError, ValidationError


def _service() -> tuple[ContentService, MemoryContentRepo]:
    repo = MemoryContentRepo()
    return ContentService(repo), repo


def test_save_renumbers_and_stores_canonical_code():
    svc, repo = _service()
    sections = svc.save_page_sections(
        "page-1",
        [
            {"type": "text", "content": {"html": "<p>Intro</p>"}, "orderIndex": 7},
            {
                "type": "code",
                "content": {
                    "starterCode": "def solution(x):\n    return x",
                    "language": "python",
                    "testCases": [{"input": "1", "expectedOutput": "1"}],
                    "_editingLang": "python",
                },
            },
        ],
    )
    assert [s.order_index for s in sections] == [0, 1]
    raw = repo.list_page_sections("page-1")[1]["content"]
    assert "_editingLang" not in raw
    assert "starterCode" not in raw
    assert raw["defaultLanguage"] == "python"


def test_legacy_rows_read_back_canonical():
    svc, repo = _service()
    repo.replace_page_sections(
        "page-2",
        [
            {
                "id": "s1",
                "type": "code",
                "order_index": 0,
                "content": '{"starterCode": "x", "language": "javascript", "testCases": []}',
            },
            {"id": "s0", "type": "text", "order_index": 1, "content": {"html": "hi"}},
        ],
    )
    sections = svc.list_page_sections("page-2")
    assert isinstance(sections[0].block, CodeBlock)
    assert sections[0].block.starter_code("javascript") == "x"
    assert isinstance(sections[1].block, TextBlock)


def test_save_rejects_malformed_payloads_before_writing():
    svc, repo = _service()
    with pytest.raises(ValidationError):
        svc.save_page_sections("p", {"type": "text"})
    with pytest.raises(ValidationError):
        svc.save_page_sections("p", [{"type": "video", "content": {}}])
    with pytest.raises(ValidationError):
        svc.save_page_sections("p", ["not an object"])
    assert repo.list_page_sections("p") == []


def test_get_code_block_checks_page_and_type():
    svc, _ = _service()
    saved = svc.save_page_sections(
        "page-3",
        [{"type": "code", "content": {"language": "python"}}, {"type": "text", "content": {"html": ""}}],
    )
    code_id, text_id = saved[0].id, saved[1].id

    assert svc.get_code_block(code_id, page_id="page-3").default_language == "python"
    with pytest.raises(NotFoundError):
        svc.get_code_block(code_id, page_id="other-page")
    with pytest.raises(NotFoundError):
        svc.get_code_block("missing")
    with pytest.raises(ValidationError):
        svc.get_code_block(text_id)


def test_section_id_owned_by_another_page_is_not_taken_over():
    svc, _ = _service()
    svc.save_page_sections("page-a", [{"id": "s1", "type": "text", "content": {"html": "A"}}])
    [b] = svc.save_page_sections("page-b", [{"id": "s1", "type": "text", "content": {"html": "B"}}])

    assert b.id != "s1"
    [a] = svc.list_page_sections("page-a")
    assert (a.id, a.page_id, a.block.html) == ("s1", "page-a", "A")

    svc.save_page_sections("page-a", [])
    assert [s.block.html for s in svc.list_page_sections("page-b")] == ["B"]


def test_repeated_ids_in_one_save_get_distinct_rows():
    svc, _ = _service()
    saved = svc.save_page_sections(
        "page-1",
        [
            {"id": "dup", "type": "text", "content": {"html": "one"}},
            {"id": "dup", "type": "text", "content": {"html": "two"}},
        ],
    )
    assert len({s.id for s in saved}) == 2
    assert [s.block.html for s in svc.list_page_sections("page-1")] == ["one", "two"]
