"""
Normalisation boundary for persisted content blocks.

Intent:
    Accept any shape a code block has ever been stored in (legacy
    single-language, canonical multi-language, editor scratch) and return the
    canonical `CodeBlock`. Pure functions only; callers persist the result via
    `prepare_for_storage`, which drops editor-only markers.

Behavior:
    - Never raises on missing optional fields: absent maps become empty,
      absent strings become "", an absent language becomes the default.
    - Idempotent: normalize(normalize(x)) == normalize(x).
    - Legacy `{starterCode, language, testCases}` maps `language` to the sole
      key of both maps. Saving always writes the canonical shape (one-way).
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from courseware.content.blocks import (
    BLOCK_TYPES,
    DEFAULT_LANGUAGE,
    EDITING_MARKER_KEY,
    SUPPORTED_LANGUAGES,
    CodeBlock,
    ContentBlock,
    ImageBlock,
    McqBlock,
    McqOption,
    TestCase,
    TextBlock,
)
from courseware.errors import ValidationError

_STARTER_KEYS = ("starterCodeByLanguage", "starterCodeByLang")
_TESTS_KEYS = ("testCasesByLanguage", "testCasesByLang")


def _str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _language(value: Any) -> str:
    lang = _str(value).strip().lower()
    return lang or ""


def _empty_starters() -> Dict[str, str]:
    return {lang: "" for lang in SUPPORTED_LANGUAGES}


def _test_case(raw: Any) -> TestCase | None:
    if isinstance(raw, TestCase):
        return raw
    if not isinstance(raw, Mapping):
        return None
    expected = raw.get("expectedOutput")
    if expected is None:
        expected = raw.get("expected_output", raw.get("expected"))
    return TestCase(
        input=_str(raw.get("input")),
        expected_output=_str(expected),
        hidden=raw.get("hidden") is True,
    )


def parse_test_cases(raw: Any) -> List[TestCase]:
    if not isinstance(raw, (list, tuple)):
        return []
    cases = []
    for item in raw:
        tc = _test_case(item)
        if tc is not None:
            cases.append(tc)
    return cases


def _first_mapping(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Mapping[str, Any] | None:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, Mapping):
            return value
    return None


def _is_canonical(raw: Mapping[str, Any]) -> bool:
    return _first_mapping(raw, _STARTER_KEYS) is not None or _first_mapping(raw, _TESTS_KEYS) is not None


def normalize(raw: Any) -> CodeBlock:
    """Return the canonical `CodeBlock` for any persisted code-block shape."""
    if isinstance(raw, CodeBlock):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        raw = {}

    starters = _empty_starters()
    tests: Dict[str, List[TestCase]] = {}

    legacy_lang = _language(raw.get("language"))
    has_legacy = "starterCode" in raw or "testCases" in raw or bool(legacy_lang)

    if _is_canonical(raw):
        for lang, code in (_first_mapping(raw, _STARTER_KEYS) or {}).items():
            key = _language(lang)
            if key:
                starters[key] = _str(code)
        for lang, cases in (_first_mapping(raw, _TESTS_KEYS) or {}).items():
            key = _language(lang)
            if key:
                tests[key] = parse_test_cases(cases)
        default_language = _language(raw.get("defaultLanguage")) or legacy_lang or DEFAULT_LANGUAGE
        # Partially migrated blobs: legacy fields only fill gaps.
        if has_legacy:
            lang = legacy_lang or default_language
            if not starters.get(lang) and isinstance(raw.get("starterCode"), str):
                starters[lang] = raw["starterCode"]
            if lang not in tests and "testCases" in raw:
                tests[lang] = parse_test_cases(raw.get("testCases"))
    else:
        default_language = legacy_lang or _language(raw.get("defaultLanguage")) or DEFAULT_LANGUAGE
        starters[default_language] = _str(raw.get("starterCode"))
        tests[default_language] = parse_test_cases(raw.get("testCases"))

    editing = _language(raw.get(EDITING_MARKER_KEY)) or None

    return CodeBlock(
        title=_str(raw.get("title")),
        description=_str(raw.get("description")),
        default_language=default_language,
        starter_code_by_language=starters,
        test_cases_by_language=tests,
        editing_language=editing,
    )


def prepare_for_storage(block: Any) -> dict[str, Any]:
    """Normalise and return the canonical dict without editor scratch state."""
    canonical = normalize(block)
    data = canonical.to_dict()
    data.pop(EDITING_MARKER_KEY, None)
    return data


def _normalize_mcq(raw: Mapping[str, Any]) -> McqBlock:
    options = []
    raw_options = raw.get("options")
    if isinstance(raw_options, (list, tuple)):
        for idx, item in enumerate(raw_options):
            if not isinstance(item, Mapping):
                continue
            opt_id = _str(item.get("id")) or f"option-{idx + 1}"
            options.append(McqOption(id=opt_id, text=_str(item.get("text")), is_correct=bool(item.get("isCorrect", False))))
    return McqBlock(question=_str(raw.get("question")), options=options, explanation=_str(raw.get("explanation")))


def normalize_section(block_type: str, raw: Any) -> ContentBlock:
    """Dispatch normalisation by block type; unknown types are rejected."""
    kind = (block_type or "").strip().lower()
    if kind not in BLOCK_TYPES:
        raise ValidationError("invalid_section_type", "Unknown content block type")
    if kind == "code":
        return normalize(raw)
    data = raw if isinstance(raw, Mapping) else {}
    if kind == "text":
        return TextBlock(html=_str(data.get("html")))
    if kind == "image":
        return ImageBlock(url=_str(data.get("url")), alt=_str(data.get("alt")), caption=_str(data.get("caption")))
    return _normalize_mcq(data)


def section_for_storage(block_type: str, raw: Any) -> dict[str, Any]:
    """Canonical persisted content for any block type."""
    block = normalize_section(block_type, raw)
    if isinstance(block, CodeBlock):
        return prepare_for_storage(block)
    return block.to_dict()
