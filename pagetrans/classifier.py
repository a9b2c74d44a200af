"""
Content classification: which text leaves may be translated.

A node is rejected when it is invisible, sits in an input-like control
or a code context, looks like code itself, is a code file name, a
programming-language name, a bare number or a copyright notice, or has
already been handled in the current session.

False negatives (skipping prose) are preferred over false positives
(rewriting identifiers, numerals or text the user is editing).

Example:
    >>> classifier = ContentClassifier(page, PageMode.REPLACE, translated)
    >>> eligible = [n for n in page.text_nodes() if classifier.is_eligible(n)]
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional

import soupsieve as sv
from bs4 import Tag

from pagetrans.constants import (
    CODE_ATTRIBUTES,
    CODE_CLASS_KEYWORDS,
    CODE_CONTAINER_SELECTORS,
    CODE_FILE_SUFFIXES,
    COMPARE_ATTR,
    COMPARE_ORIGINAL_ATTR,
    EXCLUDE_TAGS,
    INPUT_TAGS,
    MONOSPACE_CODE_CONTAINERS,
    MONOSPACE_FONTS,
    PROGRAMMING_LANGUAGES,
)
from pagetrans.dom import Page, TextNode, class_list

CODE_PATTERNS = [
    re.compile(r"^\s*[{}\[\]();,]\s*$"),                            # punctuation only
    re.compile(r"^\s*[a-zA-Z_$][a-zA-Z0-9_$]*\s*[=:(){\[\]]+"),      # assignment / call
    re.compile(r"^\s*(</?[a-zA-Z][^>]*>|<!--.*-->)"),               # HTML tag or comment
    re.compile(r"^\s*(//|/\*|\*|#|<!--)"),                          # comment leaders
    re.compile(r"^\s*(import|export|function|class|const|let|var|if|for|while|return)\s"),
    re.compile(r"^\s*\d+\s*[|\-+]"),                                # line numbers, table rules
    re.compile(r"^\s*[+\-]\s*"),                                    # diff markers
    re.compile(r"^\s*[a-zA-Z0-9_]+\s*[:=]\s*['\"]"),                # key: "value"
    re.compile(r"^\s*\$\s+"),                                       # shell prompt
]

PURE_NUMBER_PATTERN = re.compile(r"^([+-]?(\d+(\.\d+)?|\.\d+)(e[+-]?\d+)?%?)$", re.IGNORECASE)
COPYRIGHT_PATTERN = re.compile(r"^©|^\(c\)|copyright")

_CODE_CONTAINER_MATCHER = sv.compile(", ".join(CODE_CONTAINER_SELECTORS))
_MONOSPACE_CONTAINER_MATCHER = sv.compile(MONOSPACE_CODE_CONTAINERS)


class PageMode(str, Enum):
    """How translations are rendered into the page."""
    REPLACE = "replace"
    COMPARE = "compare"

    @classmethod
    def parse(cls, value) -> "PageMode":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        if normalized == "translated":
            return cls.REPLACE
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown page mode: {value}. Expected 'replace' or 'compare'")


# ---------------------------------------------------------------------------
# Text predicates
# ---------------------------------------------------------------------------

def looks_like_code(text: str) -> bool:
    """True when the text itself reads like source code or shell input."""
    trimmed = text.strip()
    if len(trimmed) < 3:
        return False
    return any(pattern.search(trimmed) for pattern in CODE_PATTERNS)


def is_code_file_name(text: str) -> bool:
    return text.strip().lower().endswith(CODE_FILE_SUFFIXES)


def is_programming_language_name(text: str) -> bool:
    return text.strip().lower() in PROGRAMMING_LANGUAGES


def is_pure_number(text: str) -> bool:
    """Integers, decimals, percentages and scientific literals ("42.5%", "3.14e10")."""
    return bool(PURE_NUMBER_PATTERN.match(text.strip()))


def is_copyright_text(text: str) -> bool:
    return bool(COPYRIGHT_PATTERN.search(text.strip().lower()))


# ---------------------------------------------------------------------------
# Context predicates
# ---------------------------------------------------------------------------

def _ancestors(node: TextNode):
    parent = node.parent
    while isinstance(parent, Tag) and parent.name != "[document]":
        yield parent
        parent = parent.parent


def is_input_context(node: TextNode) -> bool:
    """Inside an input control, a contenteditable region or an *input* class."""
    for element in _ancestors(node):
        if element.name in INPUT_TAGS or element.has_attr("contenteditable"):
            return True
        if "input" in " ".join(class_list(element)).lower():
            return True
    return False


def _has_code_class(element: Tag) -> bool:
    for cls in class_list(element):
        if any(key in cls for key in CODE_CLASS_KEYWORDS):
            return True
    return False


def is_code_context(page: Page, node: TextNode) -> bool:
    """Inside code markup, a code viewer/editor or monospace code container."""
    for element in _ancestors(node):
        if element.name in EXCLUDE_TAGS:
            return True
        if _CODE_CONTAINER_MATCHER.match(element) or _has_code_class(element):
            return True
        if any(element.has_attr(attr) for attr in CODE_ATTRIBUTES):
            return True
        if element.get("role") == "gridcell":
            return True
        font = page.computed_style(element).get("font-family", "")
        if any(name in font for name in MONOSPACE_FONTS):
            if _MONOSPACE_CONTAINER_MATCHER.closest(element) is not None:
                return True
    return False


def has_compare_ancestor(node: TextNode) -> bool:
    return any(element.get(COMPARE_ATTR) == "1" for element in _ancestors(node))


def has_sibling_compare_wrapper(node: TextNode) -> bool:
    """A sibling compare wrapper already carries this node's text."""
    parent = node.parent
    if parent is None:
        return False
    text = node.text
    for sibling in parent.children:
        if isinstance(sibling, Tag) and sibling.get(COMPARE_ATTR) == "1":
            if sibling.get(COMPARE_ORIGINAL_ATTR) == text:
                return True
    return False


class ContentClassifier:
    """Decides, per text node, whether it may be translated.

    Args:
        page: Document the nodes belong to
        mode: Render mode of the session
        translated: Session's set of already-translated nodes (replace mode)
    """

    def __init__(self, page: Page, mode: PageMode = PageMode.REPLACE, translated=None):
        self.page = page
        self.mode = PageMode.parse(mode)
        self.translated = translated if translated is not None else set()

    def is_eligible(self, node: TextNode) -> bool:
        return self.rejection_reason(node) is None

    def rejection_reason(self, node: TextNode) -> Optional[str]:
        """Name of the first rule that rejects node, or None if eligible."""
        text = node.text
        parent = node.parent
        if parent is None:
            return "detached"
        if not text.strip():
            return "blank"
        if not self.page.is_visible(parent):
            return "invisible"
        if is_input_context(node):
            return "input"
        if looks_like_code(text):
            return "code-text"
        if is_code_context(self.page, node):
            return "code-context"
        if is_code_file_name(text):
            return "file-name"
        if is_programming_language_name(text):
            return "language-name"
        if is_pure_number(text):
            return "number"
        if is_copyright_text(text):
            return "copyright"
        if self.mode is PageMode.REPLACE:
            if node in self.translated:
                return "translated"
        else:
            if has_compare_ancestor(node) or has_sibling_compare_wrapper(node):
                return "compared"
        return None
