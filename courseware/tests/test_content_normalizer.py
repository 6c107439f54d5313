"""
ContentNormalizer: every stored shape of a code block reads as canonical.
"""
from __future__ import annotations

import pytest

from courseware.content.blocks import SUPPORTED_LANGUAGES, CodeBlock, McqBlock, TestCase, TextBlock
from courseware.content.normalizer import (
    normalize,
    normalize_section,
    parse_test_cases,
    prepare_for_storage,
    section_for_storage,
)
from courseware.errors import ValidationError

LEGACY = {
    "starterCode": "function f(){}",
    "language": "javascript",
    "testCases": [{"input": "1", "expectedOutput": "1"}],
}


def test_legacy_block_maps_language_to_sole_key():
    block = normalize(LEGACY)

    assert block.default_language == "javascript"
    assert block.starter_code("javascript") == "function f(){}"
    assert block.test_cases_by_language == {"javascript": [TestCase(input="1", expected_output="1")]}
    # Every supported language is present in the starter map.
    assert set(block.starter_code_by_language) == set(SUPPORTED_LANGUAGES)
    assert all(block.starter_code(lang) == "" for lang in SUPPORTED_LANGUAGES if lang != "javascript")


def test_normalize_is_idempotent_for_legacy_and_canonical():
    once = normalize(LEGACY)
    assert normalize(once) == once
    assert normalize(once.to_dict()) == once

    canonical = {
        "title": "Sum",
        "defaultLanguage": "python",
        "starterCodeByLanguage": {"python": "def solution(x):\n    pass"},
        "testCasesByLanguage": {"python": [{"input": "2", "expectedOutput": "4", "hidden": True}]},
    }
    first = normalize(canonical)
    assert normalize(first.to_dict()) == first


def test_missing_fields_default_without_raising():
    block = normalize({})
    assert block.title == ""
    assert block.description == ""
    assert block.default_language == "javascript"
    assert block.test_cases_by_language == {"javascript": []}
    assert normalize(None) == normalize({})
    assert normalize("not a block") == normalize({})


def test_unknown_keys_are_dropped():
    block = normalize({**LEGACY, "legacyFlag": True, "foo": {"bar": 1}})
    data = block.to_dict()
    assert "legacyFlag" not in data
    assert "foo" not in data


def test_editor_key_aliases_are_read():
    block = normalize(
        {
            "defaultLanguage": "python",
            "starterCodeByLang": {"Python": "def solution(x): return x"},
            "testCasesByLang": {"python": [{"input": "a", "expected_output": "a"}]},
        }
    )
    assert block.starter_code("python") == "def solution(x): return x"
    assert block.test_cases("python")[0].expected_output == "a"


def test_partial_migration_legacy_only_fills_gaps():
    block = normalize(
        {
            "defaultLanguage": "python",
            "starterCodeByLanguage": {"python": "canonical"},
            "testCasesByLanguage": {"python": [{"input": "1", "expectedOutput": "2"}]},
            "starterCode": "legacy",
            "language": "python",
            "testCases": [{"input": "9", "expectedOutput": "9"}],
        }
    )
    assert block.starter_code("python") == "canonical"
    assert block.test_cases("python") == [TestCase(input="1", expected_output="2")]

    gap = normalize(
        {
            "defaultLanguage": "python",
            "starterCodeByLanguage": {"python": "canonical"},
            "starterCode": "function legacy(){}",
            "language": "javascript",
            "testCases": [{"input": "9", "expectedOutput": "9"}],
        }
    )
    assert gap.starter_code("javascript") == "function legacy(){}"
    assert gap.test_cases("javascript") == [TestCase(input="9", expected_output="9")]


def test_editing_marker_kept_by_normalize_and_stripped_for_storage():
    raw = {**LEGACY, "_editingLang": "python"}
    block = normalize(raw)
    assert block.editing_language == "python"
    assert block.to_dict()["_editingLang"] == "python"

    stored = prepare_for_storage(raw)
    assert "_editingLang" not in stored
    assert set(stored) == {"title", "description", "defaultLanguage", "starterCodeByLanguage", "testCasesByLanguage"}


def test_numeric_test_values_become_strings():
    cases = parse_test_cases([{"input": 3, "expectedOutput": 9}, "junk", {"input": "x", "expected": "y"}])
    assert cases == [TestCase(input="3", expected_output="9"), TestCase(input="x", expected_output="y")]


@pytest.mark.parametrize("flag", ["false", "true", 1, "yes", None])
def test_only_boolean_true_marks_a_case_hidden(flag):
    [case] = parse_test_cases([{"input": "1", "expectedOutput": "1", "hidden": flag}])
    assert case.hidden is False


def test_boolean_hidden_flag_is_kept():
    [case] = parse_test_cases([{"input": "1", "expectedOutput": "1", "hidden": True}])
    assert case.hidden is True


def test_for_language_and_visible_cases():
    block = normalize(
        {
            "defaultLanguage": "python",
            "starterCodeByLanguage": {"python": "starter"},
            "testCasesByLanguage": {
                "python": [
                    {"input": "1", "expectedOutput": "1"},
                    {"input": "2", "expectedOutput": "2", "hidden": True},
                ]
            },
        }
    )
    starter, cases = block.for_language()
    assert starter == "starter"
    assert len(cases) == 2
    assert [tc.input for tc in block.visible_test_cases("python")] == ["1"]
    assert block.without_hidden().test_cases("python") == [TestCase(input="1", expected_output="1")]


def test_normalize_section_dispatches_by_type():
    assert isinstance(normalize_section("code", LEGACY), CodeBlock)
    assert normalize_section("text", {"html": "<p>x</p>"}) == TextBlock(html="<p>x</p>")
    mcq = normalize_section(
        "MCQ", {"question": "2+2?", "options": [{"id": "a", "text": "4", "isCorrect": True}, {"text": "5"}]}
    )
    assert isinstance(mcq, McqBlock)
    assert mcq.option("a").is_correct is True
    assert mcq.options[1].id == "option-2"

    with pytest.raises(ValidationError) as exc:
        normalize_section("video", {})
    assert exc.value.code == "invalid_section_type"


def test_section_for_storage_writes_canonical_code_shape():
    stored = section_for_storage("code", LEGACY)
    assert "starterCode" not in stored
    assert stored["starterCodeByLanguage"]["javascript"] == "function f(){}"
    assert stored["testCasesByLanguage"]["javascript"] == [{"input": "1", "expectedOutput": "1", "hidden": False}]
