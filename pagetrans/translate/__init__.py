"""
Translation backends, cache, per-site dictionaries and the orchestrator
that ties them together.
"""

from pagetrans.translate.base import BackendError, DummyTranslator, Translator, create_translator
from pagetrans.translate.cache import TranslationCache
from pagetrans.translate.dictionary import DictionaryStore

__all__ = [
    "BackendError",
    "DummyTranslator",
    "Translator",
    "create_translator",
    "TranslationCache",
    "DictionaryStore",
]
