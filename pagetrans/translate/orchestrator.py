"""
Translation orchestration: dictionary -> cache -> engine -> fallback.

The orchestrator is the single place that turns text into a
TranslationResult. It never raises for engine trouble: when every engine
fails the result carries a visible failure string and an error.

Resolution order for one text:
1. Active per-site dictionary entry (engine 'custom', never cached)
2. Cache, when enabled globally and for the request
3. Requested engine, with a per-call timeout
4. Remaining engines in priority order; a success is cached under the
   requested engine and tagged with the engine that answered
5. Synthetic failure result

Example:
    >>> orchestrator = TranslationOrchestrator([GoogleTranslator()], cache=TranslationCache())
    >>> result = asyncio.run(orchestrator.resolve("Hello world", "auto", "fr", "google"))
    >>> result.translation, result.engine, result.cached
    ('Bonjour le monde', 'google', False)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from pagetrans.config import CACHE_FILE, DICT_FILE, Settings
from pagetrans.constants import CUSTOM_ENGINE
from pagetrans.translate.base import BackendError, Translator, create_translator
from pagetrans.translate.cache import TranslationCache, create_cache
from pagetrans.translate.dictionary import DictionaryStore

logger = logging.getLogger(__name__)

FAILURE_PREFIX = "Translation failed: "


class AllBackendsFailedError(BackendError):
    """Every engine in the fallback chain failed for a text."""
    pass


@dataclass
class TranslationRequest:
    """One text to translate.

    Attributes:
        text: Source text
        source_lang: Source language code or 'auto'
        target_lang: Target language code
        engine: Requested engine name
        use_cache: Per-request cache switch
        domain: Hostname used for dictionary lookups
    """
    text: str
    source_lang: str = "auto"
    target_lang: str = ""
    engine: str = ""
    use_cache: bool = True
    domain: str = ""


@dataclass
class TranslationResult:
    """Outcome of resolving one text.

    Attributes:
        text: Source text
        translation: Translated text, or the failure string
        engine: Engine that produced the translation ('custom' for dictionary hits)
        cached: True when served from the cache
        source_lang: Source language of the request
        target_lang: Target language of the request
        error: Failure reason, None on success
    """
    text: str
    translation: str
    engine: str
    cached: bool = False
    source_lang: str = "auto"
    target_lang: str = ""
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class TranslationOrchestrator:
    """Resolve texts through dictionary, cache and engines with fallback.

    Args:
        engines: Translators, keyed by their name
        cache: Translation cache (None disables caching)
        dictionary: Per-site dictionary store (None disables overrides)
        settings: Session settings (timeout, engine priority, cache switch)
    """

    def __init__(
        self,
        engines: Union[dict[str, Translator], Iterable[Translator]],
        cache: Optional[TranslationCache] = None,
        dictionary: Optional[DictionaryStore] = None,
        settings: Optional[Settings] = None,
    ):
        if isinstance(engines, dict):
            self.engines = dict(engines)
        else:
            self.engines = {engine.name: engine for engine in engines}
        self.cache = cache
        self.dictionary = dictionary
        self.settings = settings or Settings()
        self.timeout = self.settings.request_timeout

    def fallback_order(self, requested: str) -> list[str]:
        """Engines to try after requested: priority list first, then the rest."""
        order = [name for name in self.settings.engine_priority if name in self.engines]
        order += [name for name in self.engines if name not in order]
        return [name for name in order if name != requested]

    def _caching(self, use_cache: bool) -> bool:
        return self.cache is not None and self.settings.cache_enabled and use_cache

    def _dictionary_hit(self, domain: str, text: str) -> Optional[str]:
        if self.dictionary is None or not domain:
            return None
        return self.dictionary.lookup(domain, text)

    async def _call_engine(self, name: str, text: str, source_lang: str, target_lang: str) -> str:
        translator = self.engines.get(name)
        if translator is None:
            raise BackendError(f"Unknown engine: {name}", engine=name)
        try:
            translation = await asyncio.wait_for(
                asyncio.to_thread(translator.translate, text, source_lang, target_lang),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise BackendError(f"{name} timed out after {self.timeout:g}s", engine=name) from e
        except BackendError:
            raise
        except Exception as e:
            raise BackendError(f"{name} failed: {e}", engine=name) from e
        if not isinstance(translation, str) or not translation.strip():
            raise BackendError(f"{name} returned an empty translation", engine=name)
        return translation

    async def _translate_with_fallback(
        self, text: str, source_lang: str, target_lang: str, engine: str
    ) -> tuple[str, str]:
        """Return (translation, engine that answered)."""
        last_error: Optional[Exception] = None
        for name in [engine] + self.fallback_order(engine):
            try:
                translation = await self._call_engine(name, text, source_lang, target_lang)
            except BackendError as e:
                logger.warning("Engine %s failed: %s. Trying the next one.", name, e)
                last_error = e
                continue
            if name != engine:
                logger.info("Engine %s answered in place of %s", name, engine)
            return translation, name
        raise AllBackendsFailedError(f"No engine could translate the text. Last error: {last_error}")

    def _failure(self, text: str, source_lang: str, target_lang: str, engine: str, error: Exception) -> TranslationResult:
        return TranslationResult(
            text=text,
            translation=f"{FAILURE_PREFIX}{error}",
            engine=engine,
            cached=False,
            source_lang=source_lang,
            target_lang=target_lang,
            error=str(error),
        )

    async def _resolve_miss(
        self, text: str, source_lang: str, target_lang: str, engine: str, caching: bool
    ) -> TranslationResult:
        try:
            translation, used = await self._translate_with_fallback(text, source_lang, target_lang, engine)
        except AllBackendsFailedError as e:
            logger.error("%s", e)
            return self._failure(text, source_lang, target_lang, engine, e)
        if caching:
            self.cache.set(text, translation, source_lang, target_lang, engine)
        return TranslationResult(text, translation, used, False, source_lang, target_lang)

    def _lookup(
        self, text: str, source_lang: str, target_lang: str, engine: str, caching: bool, domain: str
    ) -> Optional[TranslationResult]:
        """Dictionary and cache steps; None on a miss."""
        override = self._dictionary_hit(domain, text)
        if override is not None:
            return TranslationResult(text, override, CUSTOM_ENGINE, False, source_lang, target_lang)
        if caching:
            hit = self.cache.get(text, source_lang, target_lang, engine)
            if hit is not None:
                return TranslationResult(text, hit, engine, True, source_lang, target_lang)
        return None

    async def resolve(
        self,
        text: str,
        source_lang: str = "auto",
        target_lang: Optional[str] = None,
        engine: Optional[str] = None,
        use_cache: bool = True,
        domain: str = "",
    ) -> TranslationResult:
        """Resolve one text. Never raises for engine failures."""
        target_lang = target_lang or self.settings.default_target_lang
        engine = engine or self.settings.default_engine
        if not text.strip():
            return TranslationResult(text, text, engine, False, source_lang, target_lang)
        caching = self._caching(use_cache)
        found = self._lookup(text, source_lang, target_lang, engine, caching, domain)
        if found is not None:
            return found
        return await self._resolve_miss(text, source_lang, target_lang, engine, caching)

    async def resolve_request(self, request: TranslationRequest) -> TranslationResult:
        return await self.resolve(
            request.text,
            request.source_lang,
            request.target_lang,
            request.engine,
            request.use_cache,
            request.domain,
        )

    async def _call_batch(
        self, translator: Translator, texts: list[str], source_lang: str, target_lang: str
    ) -> Optional[list[str]]:
        """Native batch call; None when it fails or returns unusable output."""
        try:
            translations = await asyncio.wait_for(
                asyncio.to_thread(translator.translate_batch, texts, source_lang, target_lang),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Batch call to %s timed out; resolving texts one by one", translator.name)
            return None
        except Exception as e:
            logger.warning("Batch call to %s failed: %s; resolving texts one by one", translator.name, e)
            return None
        translations = list(translations or [])
        if len(translations) != len(texts):
            logger.warning(
                "Batch call to %s returned %d results for %d texts; resolving one by one",
                translator.name, len(translations), len(texts),
            )
            return None
        if any(not isinstance(t, str) or not t.strip() for t in translations):
            logger.warning("Batch call to %s returned empty translations; resolving one by one", translator.name)
            return None
        return translations

    async def resolve_batch(
        self,
        texts: list[str],
        source_lang: str = "auto",
        target_lang: Optional[str] = None,
        engine: Optional[str] = None,
        use_cache: bool = True,
        domain: str = "",
    ) -> list[TranslationResult]:
        """Resolve several texts; output order matches input order."""
        target_lang = target_lang or self.settings.default_target_lang
        engine = engine or self.settings.default_engine
        caching = self._caching(use_cache)

        results: list[Optional[TranslationResult]] = [None] * len(texts)
        misses: list[int] = []
        for i, text in enumerate(texts):
            if not text.strip():
                results[i] = TranslationResult(text, text, engine, False, source_lang, target_lang)
                continue
            found = self._lookup(text, source_lang, target_lang, engine, caching, domain)
            if found is not None:
                results[i] = found
            else:
                misses.append(i)

        if misses:
            logger.debug("Batch of %d: %d misses go to %s", len(texts), len(misses), engine)
            translator = self.engines.get(engine)
            batch = None
            if translator is not None and translator.supports_batch:
                batch = await self._call_batch(translator, [texts[i] for i in misses], source_lang, target_lang)
            if batch is not None:
                for i, translation in zip(misses, batch):
                    if caching:
                        self.cache.set(texts[i], translation, source_lang, target_lang, engine)
                    results[i] = TranslationResult(texts[i], translation, engine, False, source_lang, target_lang)
            else:
                for i in misses:
                    results[i] = await self._resolve_miss(texts[i], source_lang, target_lang, engine, caching)

        return results

    def flush(self) -> None:
        """Persist the cache if it has a backing file."""
        if self.cache is not None and self.cache.path is not None:
            self.cache.save()


def create_orchestrator(
    settings: Settings,
    engines: Optional[Iterable[str]] = None,
    cache: Optional[TranslationCache] = None,
    dictionary: Optional[DictionaryStore] = None,
    persist: bool = True,
    **translator_kwargs,
) -> TranslationOrchestrator:
    """Build an orchestrator from settings.

    Args:
        settings: Session settings
        engines: Engine names to instantiate (default: priority list plus default engine)
        cache: Cache to use; default loads the persistent cache when settings enable it
        dictionary: Dictionary store; default loads the persistent store
        persist: Use the files under the data directory for default cache/dictionary
        **translator_kwargs: Forwarded to create_translator()
    """
    names = list(engines) if engines is not None else list(settings.engine_priority)
    if engines is None and settings.default_engine not in names:
        names.append(settings.default_engine)

    translators = {}
    for name in names:
        try:
            translator = create_translator(name, timeout=settings.request_timeout, **translator_kwargs)
        except ValueError as e:
            logger.warning("Skipping engine %s: %s", name, e)
            continue
        translators[translator.name] = translator

    if cache is None and settings.cache_enabled:
        cache = create_cache(settings, CACHE_FILE if persist else None)
    if dictionary is None:
        dictionary = DictionaryStore(DICT_FILE if persist else None).load()

    return TranslationOrchestrator(translators, cache=cache, dictionary=dictionary, settings=settings)
