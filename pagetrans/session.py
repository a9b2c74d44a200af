"""
Command surface for page translation.

PageTranslator owns one page and at most one running scheduler. It is
what a messaging layer or the CLI talks to: start, stop, status and the
always/never-site driven auto start.

Example:
    >>> translator = PageTranslator(page, orchestrator)
    >>> asyncio.run(translator.start_page_translation("fr", "compare", "google"))
    >>> translator.is_page_translated()
    True
    >>> translator.stop_page_translation()
    True
"""

from __future__ import annotations

import logging
from typing import Optional

from pagetrans.config import Settings
from pagetrans.dom import Page
from pagetrans.scheduler import ProgressCallback, ScanProgress, ViewportScheduler
from pagetrans.state import TranslationState
from pagetrans.translate.dictionary import DictionaryStore
from pagetrans.translate.orchestrator import TranslationOrchestrator

logger = logging.getLogger(__name__)


class PageTranslator:
    """Start/stop/status for translating one page.

    Args:
        page: Document to translate
        orchestrator: Resolves texts to translations
        settings: Read once per session (default: the orchestrator's)
        state: Observable status; a fresh one is created if omitted
        dictionary: Site lists for auto_translate (default: the orchestrator's)
        progress_callback: Forwarded to each session's scheduler
    """

    def __init__(
        self,
        page: Page,
        orchestrator: TranslationOrchestrator,
        settings: Optional[Settings] = None,
        state: Optional[TranslationState] = None,
        dictionary: Optional[DictionaryStore] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.page = page
        self.orchestrator = orchestrator
        self.settings = settings or orchestrator.settings
        self.state = state or TranslationState()
        self.dictionary = dictionary if dictionary is not None else orchestrator.dictionary
        self.progress_callback = progress_callback
        self._scheduler: Optional[ViewportScheduler] = None

    @property
    def scheduler(self) -> Optional[ViewportScheduler]:
        return self._scheduler

    @property
    def progress(self) -> ScanProgress:
        if self._scheduler is None:
            return ScanProgress()
        return self._scheduler.progress

    def is_page_translated(self) -> bool:
        return self.state.is_translated

    async def start_page_translation(
        self,
        target_lang: Optional[str] = None,
        mode=None,
        engine: Optional[str] = None,
        source_lang: str = "auto",
        use_cache: bool = True,
    ) -> bool:
        """Start a session on the page.

        Returns:
            False when a session is already running or the site is on the
            never-translate list; True once the first scan has finished
        """
        if self.state.is_translated:
            logger.warning("Page is already translated; stop the current session first")
            return False
        if self.dictionary is not None and self.dictionary.is_never_site(self.page.url):
            logger.info("Not translating %s: site is on the never-translate list", self.page.url)
            return False

        self._scheduler = ViewportScheduler(
            self.page,
            self.orchestrator,
            settings=self.settings,
            state=self.state,
            progress_callback=self.progress_callback,
        )
        await self._scheduler.start(target_lang, mode, engine, source_lang=source_lang, use_cache=use_cache)
        return True

    async def wait_idle(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.wait_idle()

    def stop_page_translation(self) -> bool:
        """Stop the session and restore the page. A no-op when not translated."""
        if self._scheduler is None:
            return False
        stopped = self._scheduler.stop()
        self.orchestrator.flush()
        return stopped

    def restore_original_page(self) -> bool:
        return self.stop_page_translation()

    async def auto_translate(
        self,
        target_lang: Optional[str] = None,
        mode=None,
        engine: Optional[str] = None,
    ) -> bool:
        """Start translation if auto-translate is on and the page's site is always-listed."""
        if self.dictionary is None or not self.dictionary.auto_translate_enabled:
            return False
        if not self.dictionary.should_auto_translate(self.page.url):
            return False
        logger.info("Auto-translating %s", self.page.url)
        return await self.start_page_translation(target_lang, mode, engine)
