"""
Render strategies: apply a translation result to a text node.

ReplaceRenderer rewrites the node's text in place. CompareRenderer swaps
the node for a two-line wrapper showing the original above the
translation. Neither keeps undo state of its own: OriginalSnapshot.restore()
reverses both using the snapshot and the marker attributes.
"""

from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from typing import Iterable

from bs4 import Tag

from pagetrans.classifier import PageMode
from pagetrans.constants import (
    COMPARE_ATTR,
    COMPARE_DEFAULT_COLOR,
    COMPARE_ID_ATTR,
    COMPARE_ORIGINAL_ATTR,
    COMPARE_ORIGINAL_COLOR,
    LOADING_INDICATOR_CLASS,
    TRANSLATED_ATTR,
)
from pagetrans.dom import Page, TextNode, class_list
from pagetrans.translate.orchestrator import TranslationResult

logger = logging.getLogger(__name__)

# Prune detached nodes from the translated set once it grows past this
DEFAULT_PRUNE_THRESHOLD = 5000


class TranslatedNodeSet:
    """Session-scoped set of text nodes already translated in replace mode.

    When the set grows past its threshold, nodes that have left the
    document are dropped; if it is still over the threshold afterwards
    the threshold doubles, so pruning cost stays amortised.
    """

    def __init__(self, prune_threshold: int = DEFAULT_PRUNE_THRESHOLD):
        self.prune_threshold = prune_threshold
        self._nodes: set[TextNode] = set()

    def add(self, node: TextNode) -> None:
        self._nodes.add(node)
        if len(self._nodes) > self.prune_threshold:
            self.prune()

    def prune(self) -> int:
        """Drop detached nodes; returns how many were dropped."""
        before = len(self._nodes)
        self._nodes = {node for node in self._nodes if node.is_attached}
        dropped = before - len(self._nodes)
        if len(self._nodes) > self.prune_threshold:
            self.prune_threshold *= 2
        logger.debug("Pruned %d detached nodes from translated set", dropped)
        return dropped

    def clear(self) -> None:
        self._nodes.clear()

    def __contains__(self, node) -> bool:
        return node in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self):
        return iter(self._nodes)


def is_engine_marker(node) -> bool:
    """True for elements the engine itself inserts into the page."""
    if not isinstance(node, Tag):
        return False
    return node.get(COMPARE_ATTR) == "1" or LOADING_INDICATOR_CLASS in class_list(node)


def contains_engine_marker(nodes: Iterable) -> bool:
    return any(is_engine_marker(node) for node in nodes)


class RenderStrategy(ABC):
    """Applies one translation result to one text node."""

    mode: PageMode

    def __init__(self, page: Page, translated: TranslatedNodeSet):
        self.page = page
        self.translated = translated

    @abstractmethod
    def apply(self, node: TextNode, result: TranslationResult) -> bool:
        """Write result into the page; returns True if the page changed."""


class ReplaceRenderer(RenderStrategy):
    """Overwrite the node's text, keeping its surrounding whitespace."""

    mode = PageMode.REPLACE

    def apply(self, node: TextNode, result: TranslationResult) -> bool:
        translation = result.translation or ""
        if result.failed or not translation.strip():
            return False
        text = node.text
        leading = text[: len(text) - len(text.lstrip())]
        trailing = text[len(text.rstrip()):]
        self.page.set_text(node, f"{leading}{translation.strip()}{trailing}")
        self.translated.add(node)
        parent = node.parent
        if parent is not None:
            self.page.set_attribute(parent, TRANSLATED_ATTR, "true")
        return True


class CompareRenderer(RenderStrategy):
    """Replace the node with an original/translation pair."""

    mode = PageMode.COMPARE

    def __init__(self, page: Page, translated: TranslatedNodeSet):
        super().__init__(page, translated)
        self._ids = itertools.count(1)

    def apply(self, node: TextNode, result: TranslationResult) -> bool:
        translation = result.translation or ""
        if result.failed or not translation.strip():
            return False
        parent = node.parent
        original = node.text
        color = self.page.computed_style(parent).get("color") or COMPARE_DEFAULT_COLOR

        page = self.page
        wrapper = page.new_tag(
            "span",
            attrs={
                COMPARE_ATTR: "1",
                COMPARE_ID_ATTR: str(next(self._ids)),
                COMPARE_ORIGINAL_ATTR: original,
            },
            style="display:inline-block;",
        )
        original_span = page.new_tag("span", style=f"color:{COMPARE_ORIGINAL_COLOR};")
        original_span.append(original)
        translation_span = page.new_tag("span", style=f"color:{color};")
        translation_span.append(translation)
        wrapper.append(original_span)
        wrapper.append(page.new_tag("br"))
        wrapper.append(translation_span)

        page.replace_node(node, wrapper)
        return True


def create_renderer(mode, page: Page, translated: TranslatedNodeSet) -> RenderStrategy:
    if PageMode.parse(mode) is PageMode.COMPARE:
        return CompareRenderer(page, translated)
    return ReplaceRenderer(page, translated)
