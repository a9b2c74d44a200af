"""
Shared fixtures and fake engines for the PageTrans test suite.

No test touches the network: engines are in-process fakes that record
their calls.
"""

import pytest

from pagetrans.config import Settings
from pagetrans.translate.base import BackendError, Translator
from pagetrans.translate.cache import TranslationCache
from pagetrans.translate.dictionary import DictionaryStore
from pagetrans.translate.orchestrator import TranslationOrchestrator


class FakeTranslator(Translator):
    """Looks texts up in a table; unknown texts get a '[target] ' prefix."""

    def __init__(self, name: str, table: dict = None, batch: bool = False):
        self._name = name
        self.table = table or {}
        self.batch = batch
        self.calls = []
        self.batch_calls = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def supports_batch(self) -> bool:
        return self.batch

    def translate(self, text, source_lang, target_lang):
        self.calls.append((text, source_lang, target_lang))
        return self.table.get(text, f"[{target_lang}] {text}")

    def translate_batch(self, texts, source_lang, target_lang):
        self.batch_calls.append(list(texts))
        return [self.table.get(t, f"[{target_lang}] {t}") for t in texts]


class FailingTranslator(Translator):
    """Always raises BackendError."""

    def __init__(self, name: str):
        self._name = name
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    def translate(self, text, source_lang, target_lang):
        self.calls += 1
        raise BackendError(f"{self._name} is down", engine=self._name)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings():
    return Settings(engine_priority=["google", "bing", "deepl"], default_engine="google")


@pytest.fixture
def cache():
    return TranslationCache(max_size=100)


@pytest.fixture
def dictionary():
    return DictionaryStore()


@pytest.fixture
def google():
    return FakeTranslator("google", {"Hello world": "Bonjour le monde"})


@pytest.fixture
def orchestrator(google, cache, dictionary, settings):
    return TranslationOrchestrator([google], cache=cache, dictionary=dictionary, settings=settings)
