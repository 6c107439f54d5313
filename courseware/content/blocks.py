"""
Content block model: a tagged union of text, image, mcq and code blocks.

Intent:
    Replace duck-typed access to JSON blobs with explicit types. Every field
    has a defined default so that the normaliser can always produce a value.

Notes:
    Dictionaries returned by `to_dict()` use the persisted (camelCase) key
    names so stored rows and API payloads share one shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union

SUPPORTED_LANGUAGES = ("c", "cpp", "java", "python", "javascript", "typescript")
DEFAULT_LANGUAGE = "javascript"
EDITING_MARKER_KEY = "_editingLang"

BLOCK_TYPES = ("text", "image", "mcq", "code")


@dataclass(frozen=True)
class TestCase:
    """One grading case; `hidden` cases are graded but never shown."""

    __test__ = False  # not a pytest test class

    input: str
    expected_output: str
    hidden: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"input": self.input, "expectedOutput": self.expected_output, "hidden": self.hidden}


@dataclass
class CodeBlock:
    """Canonical multi-language coding challenge."""

    title: str = ""
    description: str = ""
    default_language: str = DEFAULT_LANGUAGE
    starter_code_by_language: Dict[str, str] = field(default_factory=dict)
    test_cases_by_language: Dict[str, List[TestCase]] = field(default_factory=dict)
    # Editor-only scratch state; never persisted.
    editing_language: Optional[str] = None

    type = "code"

    def starter_code(self, language: str) -> str:
        return self.starter_code_by_language.get(language, "")

    def test_cases(self, language: str) -> List[TestCase]:
        return list(self.test_cases_by_language.get(language, []))

    def visible_test_cases(self, language: str) -> List[TestCase]:
        return [tc for tc in self.test_cases(language) if not tc.hidden]

    def for_language(self, language: str | None = None) -> tuple[str, List[TestCase]]:
        """Starter text and grading cases for `language` (default language if unset)."""
        lang = (language or self.default_language).strip().lower()
        return self.starter_code(lang), self.test_cases(lang)

    def without_hidden(self) -> "CodeBlock":
        """Copy safe to send to learners: hidden cases removed."""
        return replace(
            self,
            test_cases_by_language={
                lang: [tc for tc in cases if not tc.hidden] for lang, cases in self.test_cases_by_language.items()
            },
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "defaultLanguage": self.default_language,
            "starterCodeByLanguage": dict(self.starter_code_by_language),
            "testCasesByLanguage": {
                lang: [tc.to_dict() for tc in cases] for lang, cases in self.test_cases_by_language.items()
            },
        }
        if self.editing_language:
            data[EDITING_MARKER_KEY] = self.editing_language
        return data


@dataclass
class TextBlock:
    html: str = ""

    type = "text"

    def to_dict(self) -> dict[str, Any]:
        return {"html": self.html}


@dataclass
class ImageBlock:
    url: str = ""
    alt: str = ""
    caption: str = ""

    type = "image"

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "alt": self.alt, "caption": self.caption}


@dataclass(frozen=True)
class McqOption:
    id: str
    text: str
    is_correct: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "isCorrect": self.is_correct}


@dataclass
class McqBlock:
    question: str = ""
    options: List[McqOption] = field(default_factory=list)
    explanation: str = ""

    type = "mcq"

    def option(self, option_id: str) -> Optional[McqOption]:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "question": self.question,
            "options": [opt.to_dict() for opt in self.options],
            "explanation": self.explanation,
        }


ContentBlock = Union[TextBlock, ImageBlock, McqBlock, CodeBlock]


@dataclass
class PageSection:
    """One positioned block on a page."""

    id: str
    page_id: str
    order_index: int
    block: ContentBlock

    @property
    def type(self) -> str:
        return self.block.type

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pageId": self.page_id,
            "type": self.block.type,
            "orderIndex": self.order_index,
            "content": self.block.to_dict(),
        }

    def to_learner_dict(self) -> dict[str, Any]:
        data = self.to_dict()
        if isinstance(self.block, CodeBlock):
            data["content"] = self.block.without_hidden().to_dict()
        return data
