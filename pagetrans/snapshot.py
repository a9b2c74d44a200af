"""
Original-content snapshot and restore.

The snapshot records the pristine text of every non-blank text node once
per session. restore() puts that text back and removes everything the
render strategies and the scheduler wrote into the page, so both render
modes are undone without strategy-specific state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from bs4 import Tag

from pagetrans.constants import (
    COMPARE_ATTR,
    COMPARE_ORIGINAL_ATTR,
    LOADING_INDICATOR_CLASS,
    TRANSLATED_ATTR,
)
from pagetrans.dom import DetachedNodeError, Page, TextNode, class_list

logger = logging.getLogger(__name__)


@dataclass
class RestoreReport:
    """What a restore() call changed."""
    restored: int = 0
    skipped: int = 0
    wrappers_removed: int = 0
    indicators_removed: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.restored or self.wrappers_removed or self.indicators_removed)


def is_loading_indicator(element) -> bool:
    return isinstance(element, Tag) and LOADING_INDICATOR_CLASS in class_list(element)


def is_compare_wrapper(element) -> bool:
    return isinstance(element, Tag) and element.get(COMPARE_ATTR) == "1"


def remove_loading_indicators(page: Page) -> int:
    """Remove every loading indicator in page; returns how many were removed."""
    indicators = page.find_elements(is_loading_indicator)
    for indicator in indicators:
        page.remove(indicator)
    return len(indicators)


class OriginalSnapshot:
    """Mapping from text node to its original string.

    Usage:
        snapshot = OriginalSnapshot(page)
        snapshot.snapshot()
        ...  # translate
        report = snapshot.restore()
    """

    def __init__(self, page: Page):
        self.page = page
        self._originals: dict[TextNode, str] = {}

    def snapshot(self, root: Optional[Tag] = None) -> int:
        """Record every non-blank text node not yet recorded.

        Existing entries are never overwritten, so calling this again after
        translation has started cannot capture translated text.

        Returns:
            Number of entries added by this call
        """
        added = 0
        for node in self.page.text_nodes(root):
            text = node.text
            if not text.strip() or node in self._originals:
                continue
            self._originals[node] = text
            added += 1
        logger.debug("Snapshot recorded %d new text nodes (%d total)", added, len(self._originals))
        return added

    def record(self, node: TextNode) -> bool:
        """Record node's current text unless it already has an entry.

        Returns:
            True if an entry was added
        """
        if node in self._originals or not node.text.strip():
            return False
        self._originals[node] = node.text
        return True

    def original_of(self, node: TextNode) -> Optional[str]:
        return self._originals.get(node)

    def restore(self) -> RestoreReport:
        """Write original text back and strip engine markers. Idempotent."""
        report = RestoreReport()
        page = self.page

        for node, original in list(self._originals.items()):
            if not node.is_attached:
                report.skipped += 1
                continue
            if node.text == original:
                continue
            try:
                page.set_text(node, original)
                report.restored += 1
            except (DetachedNodeError, ValueError) as e:
                logger.warning("Could not restore text node: %s", e)
                report.skipped += 1

        report.indicators_removed = remove_loading_indicators(page)

        for element in page.find_elements(lambda el: el.has_attr(TRANSLATED_ATTR)):
            page.remove_attribute(element, TRANSLATED_ATTR)

        for wrapper in page.find_elements(is_compare_wrapper):
            if not page.contains(wrapper):
                # nested inside a wrapper that was already replaced
                continue
            original = wrapper.get(COMPARE_ORIGINAL_ATTR, "")
            try:
                page.replace_node(wrapper, page.new_text(original))
                report.wrappers_removed += 1
            except DetachedNodeError as e:
                logger.warning("Could not remove compare wrapper: %s", e)

        if report.changed:
            logger.info(
                "Restored %d nodes, removed %d compare wrappers and %d indicators",
                report.restored, report.wrappers_removed, report.indicators_removed,
            )
        return report

    def clear(self) -> None:
        self._originals.clear()

    def __len__(self) -> int:
        return len(self._originals)

    def __contains__(self, node) -> bool:
        return node in self._originals
