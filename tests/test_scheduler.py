"""
Tests for viewport-driven scheduling.

Pages use the default FlowLayout: every paragraph below is one 20px line.

Run with: pytest tests/test_scheduler.py -v
"""

import asyncio
import time

import pytest
from conftest import FakeTranslator

from pagetrans.constants import COMPARE_ATTR, LOADING_INDICATOR_CLASS
from pagetrans.dom import CHILD_LIST, MutationRecord, Page
from pagetrans.scheduler import SchedulerState, ViewportScheduler, is_own_mutation
from pagetrans.state import TranslationState
from pagetrans.translate.orchestrator import TranslationOrchestrator


def paragraphs(count: int) -> str:
    body = "".join(f"<p>Paragraph {i} text</p>" for i in range(count))
    return f"<html><body>{body}</body></html>"


def translated_texts(page):
    return [n.text for n in page.text_nodes() if n.text.startswith("[fr] ")]


class CountingScheduler(ViewportScheduler):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.scans = 0

    async def scan_once(self):
        self.scans += 1
        return await super().scan_once()


class SlowBatchTranslator(FakeTranslator):
    def __init__(self, delay: float):
        super().__init__("google", batch=True)
        self.delay = delay

    def translate_batch(self, texts, source_lang, target_lang):
        time.sleep(self.delay)
        return super().translate_batch(texts, source_lang, target_lang)


class DetachingTranslator(FakeTranslator):
    """Removes one paragraph from the page while its batch is in flight."""

    def __init__(self, page, index: int):
        super().__init__("google", batch=True)
        self.page = page
        self.index = index

    def translate_batch(self, texts, source_lang, target_lang):
        if not self.batch_calls:
            self.page.remove(self.page.soup.find_all("p")[self.index])
        return super().translate_batch(texts, source_lang, target_lang)


@pytest.fixture
def engine():
    return FakeTranslator("google", batch=True)


@pytest.fixture
def orch(engine, settings):
    return TranslationOrchestrator([engine], settings=settings)


class TestViewport:
    """Tests for on-screen gating."""

    def test_only_visible_nodes_are_translated(self, orch, settings):
        """Ten paragraphs, five fit the viewport; scrolling picks up the rest."""
        page = Page(paragraphs(10), url="https://example.com/", viewport_height=100)
        scheduler = ViewportScheduler(page, orch, settings)

        async def run():
            await scheduler.start("fr", "replace", "google")
            first = list(translated_texts(page))
            page.scroll_by(100)
            await scheduler.wait_idle()
            return first

        first = asyncio.run(run())

        assert first == [f"[fr] Paragraph {i} text" for i in range(5)]
        assert translated_texts(page) == [f"[fr] Paragraph {i} text" for i in range(10)]
        assert scheduler.progress.translated == 10

    def test_resize_triggers_scan(self, orch, settings):
        page = Page(paragraphs(4), viewport_height=40)

        async def run():
            scheduler = ViewportScheduler(page, orch, settings)
            await scheduler.start("fr", "replace", "google")
            page.resize(200)
            await scheduler.wait_idle()

        asyncio.run(run())
        assert len(translated_texts(page)) == 4

    def test_batches_follow_batch_size(self, engine, settings):
        settings.batch_size = 2
        orch = TranslationOrchestrator([engine], settings=settings)
        page = Page(paragraphs(5))

        asyncio.run(ViewportScheduler(page, orch, settings).start("fr", "replace", "google"))

        assert [len(batch) for batch in engine.batch_calls] == [2, 2, 1]

    def test_engine_receives_trimmed_text(self, engine, orch, settings):
        page = Page("<body><p>\n   Hello world  \n</p></body>")
        asyncio.run(ViewportScheduler(page, orch, settings).start("fr", "replace", "google"))

        assert engine.batch_calls == [["Hello world"]]
        assert page.soup.p.get_text() == "\n   [fr] Hello world  \n"

    def test_code_is_left_alone(self, orch, settings):
        page = Page("<body><p>Install it</p><pre>npm install pagetrans</pre><p>42</p></body>")
        asyncio.run(ViewportScheduler(page, orch, settings).start("fr", "replace", "google"))

        assert page.soup.pre.get_text() == "npm install pagetrans"
        assert page.soup.find_all("p")[1].get_text() == "42"
        assert page.soup.p.get_text() == "[fr] Install it"


class TestCompareMode:
    def test_wrappers_are_not_duplicated(self, orch, settings):
        """A second scan finds nothing left to wrap."""
        page = Page(paragraphs(3))
        scheduler = ViewportScheduler(page, orch, settings)

        async def run():
            await scheduler.start("fr", "compare", "google")
            return await scheduler.scan_once()

        assert asyncio.run(run()) == 0
        assert len(page.soup.find_all(attrs={COMPARE_ATTR: "1"})) == 3

    def test_round_trip(self, orch, settings):
        page = Page(paragraphs(3))
        original = page.to_html()
        scheduler = ViewportScheduler(page, orch, settings)

        asyncio.run(scheduler.start("fr", "compare", "google"))
        assert page.to_html() != original
        scheduler.stop()

        assert page.to_html() == original


class TestMutations:
    """Tests for the mutation stream."""

    def test_own_mutations_do_not_rescan(self, orch, settings):
        page = Page(paragraphs(3))
        scheduler = CountingScheduler(page, orch, settings)

        asyncio.run(scheduler.start("fr", "compare", "google"))

        assert scheduler.scans == 1

    def test_is_own_mutation(self):
        page = Page("<body><p>Hello world</p></body>")
        indicator = page.new_tag("span", attrs={"class": LOADING_INDICATOR_CLASS})
        foreign = page.new_tag("div")

        assert is_own_mutation(MutationRecord(CHILD_LIST, page.body, added=[indicator]))
        assert is_own_mutation(MutationRecord(CHILD_LIST, page.body, removed=[indicator]))
        assert not is_own_mutation(MutationRecord(CHILD_LIST, page.body, added=[foreign]))
        assert not is_own_mutation(MutationRecord(CHILD_LIST, page.body, added=[indicator, foreign]))

    def test_new_content_is_translated(self, orch, settings):
        page = Page(paragraphs(2))
        scheduler = ViewportScheduler(page, orch, settings)

        async def run():
            await scheduler.start("fr", "replace", "google")
            page.append_html(page.body, "<p>Fresh content</p>")
            await scheduler.wait_idle()

        asyncio.run(run())
        fresh = page.soup.find_all("p")[-1]
        assert fresh.get_text() == "[fr] Fresh content"

        scheduler.stop()
        assert fresh.get_text() == "Fresh content"
        assert "[fr]" not in page.to_html()

    def test_requests_coalesce(self, orch, settings):
        """Several requests while a scan is queued yield one more scan."""
        page = Page(paragraphs(10), viewport_height=100)
        scheduler = CountingScheduler(page, orch, settings)

        async def run():
            await scheduler.start("fr", "replace", "google")
            page.scroll_by(50)
            page.scroll_by(50)
            page.resize(120)
            await scheduler.wait_idle()

        asyncio.run(run())
        assert scheduler.scans == 2


class TestLifecycle:
    """Tests for start, stop and progress."""

    def test_stop_restores_and_is_idempotent(self, orch, settings):
        page = Page(paragraphs(3))
        original = page.to_html()
        state = TranslationState()
        scheduler = ViewportScheduler(page, orch, settings, state=state)

        asyncio.run(scheduler.start("fr", "replace", "google"))
        assert state.is_translated
        assert state.stop_handle is not None

        assert scheduler.stop() is True
        assert scheduler.stop() is False
        assert page.to_html() == original
        assert not state.is_translated
        assert scheduler.status == SchedulerState.STOPPED
        assert LOADING_INDICATOR_CLASS not in page.to_html()

    def test_no_work_after_stop(self, orch, engine, settings):
        page = Page(paragraphs(3))
        scheduler = ViewportScheduler(page, orch, settings)

        async def run():
            await scheduler.start("fr", "replace", "google")
            scheduler.stop()
            page.append_html(page.body, "<p>Fresh content</p>")
            page.scroll_by(10)
            await scheduler.wait_idle()

        asyncio.run(run())
        assert len(engine.batch_calls) == 1
        assert "[fr]" not in page.to_html()

    def test_start_only_once(self, orch, settings):
        scheduler = ViewportScheduler(Page(paragraphs(1)), orch, settings)

        async def run():
            await scheduler.start("fr", "replace", "google")
            await scheduler.start("fr", "replace", "google")

        with pytest.raises(RuntimeError):
            asyncio.run(run())

    def test_progress_callback(self, orch, settings):
        seen = []
        page = Page(paragraphs(3))
        scheduler = ViewportScheduler(
            page, orch, settings, progress_callback=lambda p: seen.append((p.completed, p.translated))
        )

        asyncio.run(scheduler.start("fr", "replace", "google"))

        assert seen == [(3, 3)]
        assert scheduler.progress.total == 3

    def test_dictionary_domain_comes_from_url(self, engine, settings):
        from pagetrans.translate.dictionary import DictionaryStore

        dictionary = DictionaryStore()
        dictionary.add("example.com", "Paragraph 0 text", "Premier paragraphe")
        orch = TranslationOrchestrator([engine], dictionary=dictionary, settings=settings)
        page = Page(paragraphs(2), url="https://example.com/docs")

        asyncio.run(ViewportScheduler(page, orch, settings).start("fr", "replace", "google"))

        assert page.soup.p.get_text() == "Premier paragraphe"
        assert engine.batch_calls == [["Paragraph 1 text"]]

    def test_stop_during_batch_discards_results(self, settings):
        """Results arriving after stop() are dropped and no further batch starts."""
        settings.batch_size = 2
        engine = SlowBatchTranslator(delay=0.2)
        orch = TranslationOrchestrator([engine], settings=settings)
        page = Page(paragraphs(5))
        original = page.to_html()
        scheduler = ViewportScheduler(page, orch, settings)

        async def run():
            started = asyncio.create_task(scheduler.start("fr", "replace", "google"))
            await asyncio.sleep(0.05)
            assert scheduler.stop()
            await started

        asyncio.run(run())

        assert len(engine.batch_calls) == 1
        assert scheduler.progress.translated == 0
        assert page.to_html() == original

    def test_detached_node_is_skipped(self, settings):
        """A node removed mid-batch is skipped; the rest of the batch renders."""
        page = Page(paragraphs(3))
        engine = DetachingTranslator(page, index=1)
        orch = TranslationOrchestrator([engine], settings=settings)
        scheduler = ViewportScheduler(page, orch, settings)

        asyncio.run(scheduler.start("fr", "replace", "google"))

        assert [p.get_text() for p in page.soup.find_all("p")] == [
            "[fr] Paragraph 0 text", "[fr] Paragraph 2 text",
        ]
        assert scheduler.progress.skipped == 1
        assert scheduler.progress.translated == 2
        assert LOADING_INDICATOR_CLASS not in page.to_html()
