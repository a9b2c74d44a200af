"""
DOM-like document model for page translation.

A Page wraps a BeautifulSoup tree and adds what a live browser document
offers and BeautifulSoup does not:

- TextNode handles with a stable identity, so a text leaf can be rewritten
  in place and still be recognised by the snapshot and the translated set
- a mutation API that emits MutationRecords to cancellable subscriptions
- scroll and resize events on a simple viewport
- computed styles (tag defaults, the hidden attribute, inline style
  declarations, inheritance of visibility / font-family / color)
- bounding rectangles from a pluggable layout

Design:
- All engine writes go through the Page so observers see them
- Layout and style caches are dropped on every mutation
- bs4 strings are immutable, so "setting text" swaps the underlying
  NavigableString and re-points the handle at the new one
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional, Union
from urllib.parse import urlparse

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

logger = logging.getLogger(__name__)

CHILD_LIST = "childList"
CHARACTER_DATA = "characterData"
ATTRIBUTES = "attributes"

EVENTS = ("scroll", "resize")

BLOCK_TAGS = frozenset([
    "address", "article", "aside", "blockquote", "body", "dd", "details", "dialog", "div",
    "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2", "h3",
    "h4", "h5", "h6", "header", "hr", "html", "li", "main", "nav", "ol", "p", "pre",
    "section", "summary", "table", "tbody", "td", "tfoot", "th", "thead", "tr", "ul",
])

HIDDEN_TAGS = frozenset([
    "head", "script", "style", "template", "noscript", "title", "meta", "link",
])

TAG_DEFAULT_STYLES = {
    "pre": {"font-family": "monospace"},
    "code": {"font-family": "monospace"},
    "kbd": {"font-family": "monospace"},
    "samp": {"font-family": "monospace"},
    "tt": {"font-family": "monospace"},
}

INHERITED_PROPERTIES = ("visibility", "font-family", "color")

ROOT_STYLE = {"display": "block", "visibility": "visible", "font-family": "", "color": ""}


class DetachedNodeError(Exception):
    """Raised when writing to a node that is no longer in the document."""


@dataclass(frozen=True)
class Rect:
    """Vertical extent of a box; top and bottom in pixels."""
    top: float
    bottom: float

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def shifted(self, dy: float) -> "Rect":
        return Rect(self.top + dy, self.bottom + dy)

    def union(self, other: "Rect") -> "Rect":
        return Rect(min(self.top, other.top), max(self.bottom, other.bottom))


@dataclass
class MutationRecord:
    """One change to the document.

    Attributes:
        kind: 'childList', 'characterData' or 'attributes'
        target: Element whose children changed, or the changed node
        added: Nodes inserted (Tags or TextNodes)
        removed: Nodes taken out (Tags or TextNodes)
        attribute: Attribute name for 'attributes' records
    """
    kind: str
    target: object
    added: list = field(default_factory=list)
    removed: list = field(default_factory=list)
    attribute: Optional[str] = None


MutationCallback = Callable[[list[MutationRecord]], None]


class Subscription:
    """Cancellable registration on a page's mutation stream."""

    def __init__(
        self,
        page: "Page",
        callback: MutationCallback,
        child_list: bool = True,
        character_data: bool = False,
        attributes: bool = False,
    ):
        self.page = page
        self.callback = callback
        self.child_list = child_list
        self.character_data = character_data
        self.attributes = attributes
        self.active = True

    def wants(self, record: MutationRecord) -> bool:
        if record.kind == CHILD_LIST:
            return self.child_list
        if record.kind == CHARACTER_DATA:
            return self.character_data
        return self.attributes

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self in self.page._subscriptions:
            self.page._subscriptions.remove(self)


class TextNode:
    """Handle for a single text leaf.

    The handle is the node's identity: it survives text rewrites, and it
    stays valid (but detached) once the leaf is removed from the page.
    """

    def __init__(self, page: "Page", string: NavigableString):
        self.page = page
        self._string = string

    @property
    def text(self) -> str:
        return str(self._string)

    @text.setter
    def text(self, value: str) -> None:
        self.page.set_text(self, value)

    @property
    def parent(self) -> Optional[Tag]:
        return self._string.parent

    @property
    def previous_sibling(self):
        return self.page._wrap(self._string.previous_sibling)

    @property
    def is_attached(self) -> bool:
        return self.page.contains(self._string)

    def __repr__(self) -> str:
        preview = self.text if len(self.text) <= 30 else self.text[:27] + "..."
        state = "" if self.is_attached else " detached"
        return f"<TextNode {preview!r}{state}>"


Node = Union[Tag, TextNode]


def parse_inline_style(value: Optional[str]) -> dict[str, str]:
    """Parse a style attribute into lower-cased property -> value."""
    declarations: dict[str, str] = {}
    if not value:
        return declarations
    for part in value.split(";"):
        if ":" not in part:
            continue
        prop, _, val = part.partition(":")
        prop = prop.strip().lower()
        val = val.replace("!important", "").strip()
        if prop and val:
            declarations[prop] = val
    return declarations


def is_text_string(item) -> bool:
    """True for real text leaves (not comments, doctypes or CDATA)."""
    return isinstance(item, NavigableString) and not isinstance(item, PreformattedString)


def class_list(element: Tag) -> list[str]:
    value = element.get("class")
    if not value:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)


class FlowLayout:
    """Approximate vertical layout: every visible text leaf starts a new
    line box, wraps at chars_per_line and takes line_height per line.

    Elements span the union of their text boxes. Subtrees with
    display:none take no space.
    """

    def __init__(self, line_height: float = 20.0, chars_per_line: int = 80):
        self.line_height = line_height
        self.chars_per_line = chars_per_line

    def compute(self, page: "Page") -> tuple[dict[int, Rect], float]:
        boxes: dict[int, Rect] = {}
        y = 0.0
        for item in page.body.descendants:
            if not is_text_string(item):
                continue
            text = str(item).strip()
            parent = item.parent
            if not text or parent is None or not page.is_rendered(parent):
                continue
            lines = max(1, math.ceil(len(text) / self.chars_per_line))
            rect = Rect(y, y + lines * self.line_height)
            boxes[id(item)] = rect
            y = rect.bottom
            for ancestor in item.parents:
                previous = boxes.get(id(ancestor))
                boxes[id(ancestor)] = rect if previous is None else previous.union(rect)
        return boxes, y


class Page:
    """A live HTML document with a viewport.

    Usage:
        page = Page("<p>Hello world</p>", url="https://example.com/")
        for node in page.text_nodes():
            print(node.text, page.bounding_rect(node.parent))
    """

    def __init__(
        self,
        html: str,
        url: str = "",
        viewport_height: float = 800.0,
        layout: Optional[FlowLayout] = None,
        parser: str = "html.parser",
    ):
        self.soup = BeautifulSoup(html, parser)
        self.url = url
        self.viewport_height = float(viewport_height)
        self.scroll_y = 0.0
        self.layout = layout or FlowLayout()
        self.version = 0
        self._handles: dict[int, TextNode] = {}
        self._listeners: dict[str, list[Callable[[], None]]] = {event: [] for event in EVENTS}
        self._subscriptions: list[Subscription] = []
        self._style_cache: dict[int, dict[str, str]] = {}
        self._layout_cache: Optional[tuple[dict[int, Rect], float]] = None

    @classmethod
    def from_file(cls, path: Path, url: str = "", **kwargs) -> "Page":
        return cls(Path(path).read_text(encoding="utf-8"), url=url, **kwargs)

    # ------------------------------------------------------------------
    # Tree access
    # ------------------------------------------------------------------

    @property
    def body(self) -> Tag:
        return self.soup.body or self.soup

    @property
    def domain(self) -> str:
        if not self.url:
            return ""
        parsed = urlparse(self.url if "://" in self.url else "https://" + self.url)
        return parsed.hostname or ""

    def node_for(self, string: NavigableString) -> TextNode:
        """Return the stable handle for a bs4 string, creating it on first use."""
        node = self._handles.get(id(string))
        if node is None or node._string is not string:
            node = TextNode(self, string)
            self._handles[id(string)] = node
        return node

    def text_nodes(self, root: Optional[Tag] = None) -> Iterator[TextNode]:
        """Walk text leaves under root (default: body) in document order."""
        root = root if root is not None else self.body
        for item in list(root.descendants):
            if is_text_string(item):
                yield self.node_for(item)

    def contains(self, item) -> bool:
        raw = self._raw(item)
        if raw is self.soup:
            return True
        return any(parent is self.soup for parent in raw.parents)

    def find_elements(self, predicate: Callable[[Tag], bool]) -> list[Tag]:
        return [el for el in self.soup.find_all(True) if predicate(el)]

    def to_html(self) -> str:
        return str(self.soup)

    def _raw(self, node):
        return node._string if isinstance(node, TextNode) else node

    def _wrap(self, raw):
        if raw is None:
            return None
        if is_text_string(raw):
            return self.node_for(raw)
        return raw

    # ------------------------------------------------------------------
    # Mutation API
    # ------------------------------------------------------------------

    def new_tag(self, name: str, attrs: Optional[dict] = None, style: Optional[str] = None) -> Tag:
        tag = self.soup.new_tag(name, attrs=dict(attrs or {}))
        if style:
            tag["style"] = style
        return tag

    def new_text(self, value: str) -> TextNode:
        return self.node_for(NavigableString(value))

    def set_text(self, node: TextNode, value: str) -> None:
        raw = node._string
        if not self.contains(raw):
            raise DetachedNodeError(f"cannot write to detached node {node!r}")
        if str(raw) == value:
            return
        replacement = type(raw)(value)
        raw.replace_with(replacement)
        self._handles.pop(id(raw), None)
        node._string = replacement
        self._handles[id(replacement)] = node
        self._notify(MutationRecord(CHARACTER_DATA, node))

    def insert_before(self, reference: Node, new: Node) -> None:
        raw_ref = self._raw(reference)
        parent = raw_ref.parent
        if parent is None:
            raise DetachedNodeError("cannot insert before a detached node")
        raw_ref.insert_before(self._raw(new))
        self._notify(MutationRecord(CHILD_LIST, parent, added=[new]))

    def replace_node(self, old: Node, new: Union[Node, str]) -> Node:
        if isinstance(new, str) and not isinstance(new, NavigableString):
            new = self.new_text(new)
        raw_old = self._raw(old)
        parent = raw_old.parent
        if parent is None:
            raise DetachedNodeError("cannot replace a detached node")
        raw_old.replace_with(self._raw(new))
        self._notify(MutationRecord(CHILD_LIST, parent, added=[new], removed=[old]))
        return new

    def remove(self, node: Node) -> None:
        raw = self._raw(node)
        parent = raw.parent
        if parent is None:
            return
        raw.extract()
        self._notify(MutationRecord(CHILD_LIST, parent, removed=[node]))

    def append_html(self, parent: Tag, html: str) -> list:
        """Parse an HTML fragment and append it to parent."""
        fragment = BeautifulSoup(html, "html.parser")
        added = []
        for child in list(fragment.contents):
            parent.append(child.extract())
            added.append(self._wrap(child))
        if added:
            self._notify(MutationRecord(CHILD_LIST, parent, added=added))
        return added

    def set_attribute(self, element: Tag, name: str, value: str) -> None:
        element[name] = value
        self._notify(MutationRecord(ATTRIBUTES, element, attribute=name))

    def remove_attribute(self, element: Tag, name: str) -> None:
        if element.has_attr(name):
            del element[name]
            self._notify(MutationRecord(ATTRIBUTES, element, attribute=name))

    # ------------------------------------------------------------------
    # Observation and events
    # ------------------------------------------------------------------

    def observe(
        self,
        callback: MutationCallback,
        child_list: bool = True,
        character_data: bool = False,
        attributes: bool = False,
    ) -> Subscription:
        subscription = Subscription(self, callback, child_list, character_data, attributes)
        self._subscriptions.append(subscription)
        return subscription

    def add_listener(self, event: str, callback: Callable[[], None]) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}. Expected one of {EVENTS}")
        self._listeners[event].append(callback)

    def remove_listener(self, event: str, callback: Callable[[], None]) -> None:
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)

    def scroll_to(self, y: float) -> None:
        limit = max(0.0, self.document_height - self.viewport_height)
        y = min(max(0.0, float(y)), limit)
        if y == self.scroll_y:
            return
        self.scroll_y = y
        self._dispatch("scroll")

    def scroll_by(self, dy: float) -> None:
        self.scroll_to(self.scroll_y + dy)

    def resize(self, viewport_height: float) -> None:
        self.viewport_height = float(viewport_height)
        self._dispatch("resize")

    def _dispatch(self, event: str) -> None:
        for callback in list(self._listeners[event]):
            try:
                callback()
            except Exception:
                logger.exception("%s listener failed", event)

    def _notify(self, record: MutationRecord) -> None:
        self.version += 1
        self._style_cache.clear()
        self._layout_cache = None
        for subscription in list(self._subscriptions):
            if subscription.active and subscription.wants(record):
                try:
                    subscription.callback([record])
                except Exception:
                    logger.exception("Mutation observer failed")

    # ------------------------------------------------------------------
    # Style and geometry
    # ------------------------------------------------------------------

    def computed_style(self, element: Optional[Tag]) -> dict[str, str]:
        """Resolve display, visibility, font-family and color for element."""
        if element is None or isinstance(element, BeautifulSoup) or not isinstance(element, Tag):
            return dict(ROOT_STYLE)
        cached = self._style_cache.get(id(element))
        if cached is not None:
            return dict(cached)

        parent_style = self.computed_style(element.parent)
        declared = dict(TAG_DEFAULT_STYLES.get(element.name, {}))
        declared.update(parse_inline_style(element.get("style")))

        style = {prop: declared.get(prop, parent_style.get(prop, "")) for prop in INHERITED_PROPERTIES}
        if element.has_attr("hidden"):
            style["display"] = "none"
        elif "display" in declared:
            style["display"] = declared["display"].lower()
        elif element.name in HIDDEN_TAGS:
            style["display"] = "none"
        else:
            style["display"] = "block" if element.name in BLOCK_TAGS else "inline"
        style["visibility"] = style["visibility"].lower()

        self._style_cache[id(element)] = style
        return dict(style)

    def is_rendered(self, element: Tag) -> bool:
        """False when element or an ancestor has display:none."""
        for el in self._element_chain(element):
            if self.computed_style(el)["display"] == "none":
                return False
        return True

    def is_visible(self, element: Tag) -> bool:
        """False when element or an ancestor is display:none or visibility:hidden."""
        for el in self._element_chain(element):
            style = self.computed_style(el)
            if style["display"] == "none" or style["visibility"] in ("hidden", "collapse"):
                return False
        return True

    def _element_chain(self, element: Tag) -> Iterator[Tag]:
        current = element
        while isinstance(current, Tag) and not isinstance(current, BeautifulSoup):
            yield current
            current = current.parent

    def _layout(self) -> tuple[dict[int, Rect], float]:
        if self._layout_cache is None:
            self._layout_cache = self.layout.compute(self)
        return self._layout_cache

    @property
    def document_height(self) -> float:
        return self._layout()[1]

    def bounding_rect(self, node: Optional[Node]) -> Rect:
        """Box of node in viewport coordinates (zero-size if it has no text box)."""
        if node is None:
            return Rect(0.0, 0.0)
        boxes, _ = self._layout()
        rect = boxes.get(id(self._raw(node)))
        if rect is None:
            return Rect(0.0, 0.0)
        return rect.shifted(-self.scroll_y)

    def in_viewport(self, rect: Rect) -> bool:
        return rect.bottom > 0 and rect.top < self.viewport_height
