"""
Viewport-driven scheduling of page translation.

The scheduler translates only the text that is on screen. A scan walks
the whole document through the classifier, keeps the nodes whose parent
box overlaps the viewport, and sends them to the orchestrator in
batches. Scroll, resize and child-list mutations request a new scan.

States:
    IDLE -> SCANNING -> BATCH_DISPATCH -> IDLE ... -> STOPPED

Scan requests coalesce: while a scan runs, further requests only set a
pending flag, and one more scan runs when the current one ends.
Mutations made by the engine itself (loading indicators, compare
wrappers) are filtered out of the mutation stream.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from pagetrans.classifier import ContentClassifier, PageMode
from pagetrans.config import Settings
from pagetrans.constants import LOADING_INDICATOR_CLASS, LOADING_INDICATOR_STYLE
from pagetrans.dom import DetachedNodeError, MutationRecord, Page, Subscription, TextNode
from pagetrans.render import (
    RenderStrategy,
    TranslatedNodeSet,
    contains_engine_marker,
    create_renderer,
    is_engine_marker,
)
from pagetrans.snapshot import OriginalSnapshot, is_loading_indicator, remove_loading_indicators
from pagetrans.state import TranslationState
from pagetrans.translate.orchestrator import TranslationOrchestrator

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    BATCH_DISPATCH = "batch_dispatch"
    STOPPED = "stopped"


@dataclass
class ScanProgress:
    """Running totals for a session.

    Attributes:
        total: Nodes queued for translation so far
        completed: Queued nodes that have been handled
        translated: Nodes the render strategy changed
        failed: Nodes whose translation failed
        skipped: Nodes detached before their result arrived
    """
    total: int = 0
    completed: int = 0
    translated: int = 0
    failed: int = 0
    skipped: int = 0


ProgressCallback = Callable[[ScanProgress], None]


def is_own_mutation(record: MutationRecord) -> bool:
    """True when a record only adds or removes the engine's own marker elements."""
    if not contains_engine_marker(record.added + record.removed):
        return False
    return all(is_engine_marker(node) for node in record.added)


class ViewportScheduler:
    """Translate on-screen text incrementally until stopped.

    Args:
        page: Document to translate
        orchestrator: Resolves texts to translations
        settings: Session settings (batch size)
        state: Observable status shared with the caller
        progress_callback: Called with ScanProgress after each batch
        domain: Site used for dictionary lookups (default: page.domain)

    Usage:
        scheduler = ViewportScheduler(page, orchestrator, settings, state)
        await scheduler.start("fr", "replace", "google")
        page.scroll_by(600)
        await scheduler.wait_idle()
        scheduler.stop()
    """

    def __init__(
        self,
        page: Page,
        orchestrator: TranslationOrchestrator,
        settings: Optional[Settings] = None,
        state: Optional[TranslationState] = None,
        progress_callback: Optional[ProgressCallback] = None,
        domain: Optional[str] = None,
    ):
        self.page = page
        self.orchestrator = orchestrator
        self.settings = settings or orchestrator.settings
        self.state = state or TranslationState()
        self.progress_callback = progress_callback
        self.domain = page.domain if domain is None else domain

        self.snapshot = OriginalSnapshot(page)
        self.translated = TranslatedNodeSet()
        self.progress = ScanProgress()
        self.status = SchedulerState.IDLE

        self.target_lang = self.settings.default_target_lang
        self.source_lang = "auto"
        self.engine = self.settings.default_engine
        self.mode = PageMode.parse(self.settings.page_mode)
        self.use_cache = True

        self.classifier: Optional[ContentClassifier] = None
        self.renderer: Optional[RenderStrategy] = None
        self._subscription: Optional[Subscription] = None
        self._scan_task: Optional[asyncio.Task] = None
        self._rescan_pending = False
        self._started = False
        self._stopped = False

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    async def start(
        self,
        target_lang: Optional[str] = None,
        mode=None,
        engine: Optional[str] = None,
        source_lang: str = "auto",
        use_cache: bool = True,
    ) -> None:
        """Snapshot the page, arm listeners and run the first scan."""
        if self._started or self._stopped:
            raise RuntimeError("A scheduler can only be started once")
        self._started = True
        self.target_lang = target_lang or self.settings.default_target_lang
        self.mode = PageMode.parse(mode or self.settings.page_mode)
        self.engine = engine or self.settings.default_engine
        self.source_lang = source_lang
        self.use_cache = use_cache

        self.snapshot.snapshot()
        self.classifier = ContentClassifier(self.page, self.mode, self.translated)
        self.renderer = create_renderer(self.mode, self.page, self.translated)

        self.page.add_listener("scroll", self.request_scan)
        self.page.add_listener("resize", self.request_scan)
        self._subscription = self.page.observe(self._on_mutations, child_list=True)
        self.state.mark_translated(self.stop)

        logger.info(
            "Page translation started: %s -> %s via %s (%s mode)",
            self.source_lang, self.target_lang, self.engine, self.mode.value,
        )
        self.request_scan()
        await self.wait_idle()

    # ------------------------------------------------------------------
    # Scan requests
    # ------------------------------------------------------------------

    def _on_mutations(self, records: list[MutationRecord]) -> None:
        if any(not is_own_mutation(record) for record in records):
            self.request_scan()

    def request_scan(self) -> None:
        """Ask for a scan; coalesces with a scan already running."""
        if self._stopped or not self._started:
            return
        if self._scan_task is not None and not self._scan_task.done():
            self._rescan_pending = True
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop yet: the next wait_idle() picks the request up
            self._rescan_pending = True
            return
        self._rescan_pending = False
        self._scan_task = loop.create_task(self._run_scans())

    async def _run_scans(self) -> None:
        while not self._stopped:
            self._rescan_pending = False
            try:
                await self.scan_once()
            except Exception:
                logger.exception("Page scan failed")
            if not self._rescan_pending:
                break
        if not self._stopped:
            self.status = SchedulerState.IDLE

    async def wait_idle(self) -> None:
        """Wait until no scan is running or pending."""
        while not self._stopped:
            if self._rescan_pending and (self._scan_task is None or self._scan_task.done()):
                self.request_scan()
            task = self._scan_task
            if task is None or task.done():
                return
            await task

    # ------------------------------------------------------------------
    # Scanning and dispatch
    # ------------------------------------------------------------------

    def collect_candidates(self) -> list[TextNode]:
        """Eligible nodes whose parent box overlaps the viewport, in document order."""
        page = self.page
        candidates = []
        for node in page.text_nodes():
            if not self.classifier.is_eligible(node):
                continue
            if page.in_viewport(page.bounding_rect(node.parent)):
                candidates.append(node)
        return candidates

    async def scan_once(self) -> int:
        """One scan pass; returns the number of nodes dispatched."""
        if self._stopped:
            return 0
        self.status = SchedulerState.SCANNING
        candidates = self.collect_candidates()
        if not candidates:
            return 0
        logger.debug("Scan found %d on-screen candidates", len(candidates))
        self.progress.total += len(candidates)

        size = max(1, self.settings.batch_size)
        dispatched = 0
        for start in range(0, len(candidates), size):
            if self._stopped:
                break
            self.status = SchedulerState.BATCH_DISPATCH
            batch = candidates[start:start + size]
            await self._dispatch_batch(batch)
            dispatched += len(batch)
        return dispatched

    def _insert_indicator(self, node: TextNode):
        parent = node.parent
        if parent is None:
            return None
        if any(is_loading_indicator(child) for child in parent.children):
            return None
        try:
            indicator = self.page.new_tag(
                "span", attrs={"class": LOADING_INDICATOR_CLASS}, style=LOADING_INDICATOR_STYLE
            )
            self.page.insert_before(node, indicator)
        except (DetachedNodeError, ValueError) as e:
            logger.warning("Could not insert loading indicator: %s", e)
            return None
        return indicator

    async def _dispatch_batch(self, nodes: list[TextNode]) -> None:
        indicators = {}
        for node in nodes:
            # nodes added after start() have no snapshot entry yet
            self.snapshot.record(node)
            indicator = self._insert_indicator(node)
            if indicator is not None:
                indicators[node] = indicator

        texts = [node.text.strip() for node in nodes]
        results = await self.orchestrator.resolve_batch(
            texts,
            self.source_lang,
            self.target_lang,
            self.engine,
            use_cache=self.use_cache,
            domain=self.domain,
        )

        for node, result in zip(nodes, results):
            if self._stopped:
                logger.debug("Session stopped; discarding remaining batch results")
                return
            indicator = indicators.get(node)
            if indicator is not None:
                self.page.remove(indicator)
            self.progress.completed += 1
            if not node.is_attached:
                self.progress.skipped += 1
                continue
            try:
                changed = self.renderer.apply(node, result)
            except DetachedNodeError as e:
                logger.debug("Node left the page before rendering: %s", e)
                self.progress.skipped += 1
                continue
            if changed:
                self.progress.translated += 1
            elif result.failed:
                self.progress.failed += 1
        self._report_progress()

    def _report_progress(self) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(self.progress)
        except Exception:
            logger.exception("Progress callback failed")

    # ------------------------------------------------------------------
    # Stop
    # ------------------------------------------------------------------

    def stop(self) -> bool:
        """Halt the session and restore the page. Idempotent.

        Returns:
            True if this call stopped a session
        """
        if self._stopped:
            return False
        self._stopped = True
        self.status = SchedulerState.STOPPED

        self.page.remove_listener("scroll", self.request_scan)
        self.page.remove_listener("resize", self.request_scan)
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

        remove_loading_indicators(self.page)
        self.snapshot.restore()
        self.translated.clear()
        self.snapshot.clear()
        self.state.mark_stopped()
        logger.info("Page translation stopped")
        return True
