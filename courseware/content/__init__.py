"""Content context: block model and the normalisation boundary."""

from .blocks import CodeBlock, ContentBlock, PageSection, TestCase
from .normalizer import normalize, normalize_section, parse_test_cases, prepare_for_storage

__all__ = [
    "CodeBlock",
    "ContentBlock",
    "PageSection",
    "TestCase",
    "normalize",
    "normalize_section",
    "parse_test_cases",
    "prepare_for_storage",
]
