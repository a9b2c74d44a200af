"""
Tests for the replace and compare render strategies.

Run with: pytest tests/test_render.py -v
"""

from pagetrans.constants import COMPARE_ATTR, COMPARE_ID_ATTR, COMPARE_ORIGINAL_ATTR, TRANSLATED_ATTR
from pagetrans.dom import Page
from pagetrans.render import (
    CompareRenderer,
    ReplaceRenderer,
    TranslatedNodeSet,
    create_renderer,
    is_engine_marker,
)
from pagetrans.translate.orchestrator import TranslationResult


def hello_page(html="<body><p>Hello world</p></body>"):
    page = Page(html)
    node = next(n for n in page.text_nodes() if n.text.strip() == "Hello world")
    return page, node


def ok(translation: str) -> TranslationResult:
    return TranslationResult("Hello world", translation, "google", target_lang="fr")


def failed() -> TranslationResult:
    return TranslationResult(
        "Hello world", "Translation failed: all down", "google", target_lang="fr", error="all down"
    )


class TestReplaceRenderer:
    """Tests for in-place replacement."""

    def test_writes_translation_and_marks(self):
        page, node = hello_page()
        translated = TranslatedNodeSet()
        renderer = ReplaceRenderer(page, translated)

        assert renderer.apply(node, ok("Bonjour le monde"))
        assert node.text == "Bonjour le monde"
        assert node in translated
        assert page.soup.p[TRANSLATED_ATTR] == "true"

    def test_keeps_surrounding_whitespace(self):
        page, node = hello_page("<body><p>  Hello world \n</p></body>")
        ReplaceRenderer(page, TranslatedNodeSet()).apply(node, ok("Bonjour le monde"))
        assert node.text == "  Bonjour le monde \n"

    def test_empty_or_failed_result_leaves_text(self):
        """Nothing is written and the node stays eligible for a retry."""
        page, node = hello_page()
        translated = TranslatedNodeSet()
        renderer = ReplaceRenderer(page, translated)

        assert not renderer.apply(node, ok("   "))
        assert not renderer.apply(node, failed())
        assert node.text == "Hello world"
        assert node not in translated
        assert not page.soup.p.has_attr(TRANSLATED_ATTR)


class TestCompareRenderer:
    """Tests for side-by-side wrappers."""

    def test_wrapper_structure(self):
        page, node = hello_page('<body><p style="color: #333">Hello world</p></body>')
        renderer = CompareRenderer(page, TranslatedNodeSet())

        assert renderer.apply(node, ok("Bonjour le monde"))

        wrapper = page.soup.find(attrs={COMPARE_ATTR: "1"})
        assert wrapper is not None
        assert wrapper[COMPARE_ORIGINAL_ATTR] == "Hello world"
        assert wrapper[COMPARE_ID_ATTR] == "1"
        assert "inline-block" in wrapper["style"]
        original_span, br, translation_span = wrapper.contents
        assert original_span.get_text() == "Hello world"
        assert "#888" in original_span["style"]
        assert br.name == "br"
        assert translation_span.get_text() == "Bonjour le monde"
        assert "#333" in translation_span["style"]
        assert not node.is_attached

    def test_default_color_and_increasing_ids(self):
        page = Page("<body><p>Hello world</p><p>Good morning</p></body>")
        renderer = CompareRenderer(page, TranslatedNodeSet())
        for node in list(page.text_nodes()):
            renderer.apply(node, ok(f"FR {node.text}"))

        wrappers = page.soup.find_all(attrs={COMPARE_ATTR: "1"})
        assert [w[COMPARE_ID_ATTR] for w in wrappers] == ["1", "2"]
        assert "#222" in wrappers[0].contents[2]["style"]
        assert all(is_engine_marker(w) for w in wrappers)

    def test_failed_result_leaves_node(self):
        page, node = hello_page()
        assert not CompareRenderer(page, TranslatedNodeSet()).apply(node, failed())
        assert node.is_attached
        assert page.soup.find(attrs={COMPARE_ATTR: "1"}) is None

    def test_factory(self):
        page, _ = hello_page()
        assert isinstance(create_renderer("compare", page, TranslatedNodeSet()), CompareRenderer)
        assert isinstance(create_renderer("translated", page, TranslatedNodeSet()), ReplaceRenderer)


class TestTranslatedNodeSet:
    """Tests for the bounded translated-node set."""

    def test_prunes_detached_nodes(self):
        page = Page("".join(f"<p>Line {i}</p>" for i in range(5)))
        nodes = list(page.text_nodes())
        translated = TranslatedNodeSet(prune_threshold=3)
        for node in nodes[:3]:
            translated.add(node)
        page.remove(nodes[0])
        page.remove(nodes[1])

        translated.add(nodes[3])

        assert len(translated) == 2
        assert nodes[0] not in translated
        assert nodes[3] in translated

    def test_threshold_grows_when_all_attached(self):
        page = Page("".join(f"<p>Line {i}</p>" for i in range(4)))
        translated = TranslatedNodeSet(prune_threshold=2)
        for node in page.text_nodes():
            translated.add(node)
        assert len(translated) == 4
        assert translated.prune_threshold >= 4
