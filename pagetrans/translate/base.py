"""
Base translator interface and implementations.

This module defines:
- Abstract Translator interface that all backends implement
- DummyTranslator for testing and offline runs
- create_translator() factory

Design Philosophy:
- Translators are thin and stateless: text in, text out
- Failures raise BackendError; recovery (fallback, caching, failure text)
  belongs to the orchestrator
- Calls are blocking; the orchestrator runs them off the event loop
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BackendError(Exception):
    """A single translation engine failed or timed out."""

    def __init__(self, message: str, engine: str = ""):
        super().__init__(message)
        self.engine = engine


class Translator(ABC):
    """Abstract base class for all translation backends.

    All translators must implement:
    - name: Engine identifier used for caching and fallback ordering
    - translate(): Translate a single text

    Backends with a native batch endpoint override translate_batch() and
    set supports_batch.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the engine name (e.g., 'google', 'bing', 'dummy')."""
        pass

    @property
    def supports_batch(self) -> bool:
        """Whether translate_batch() is a real batch call."""
        return False

    @abstractmethod
    def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        """Translate a single text.

        Args:
            text: Source text
            source_lang: Source language code or 'auto'
            target_lang: Target language code

        Returns:
            The translation

        Raises:
            BackendError: On HTTP, payload or engine errors
        """
        pass

    def translate_batch(self, texts: list[str], source_lang: str, target_lang: str) -> list[str]:
        """Translate several texts, preserving order.

        Default implementation calls translate() in a loop.
        """
        return [self.translate(text, source_lang, target_lang) for text in texts]


class DummyTranslator(Translator):
    """A dummy translator for testing.

    Modes:
    - 'echo': Return the input unchanged
    - 'upper': Return uppercase version
    - 'prefix': Add [target] prefix
    - 'reverse': Reverse the text (for debugging)
    """

    def __init__(self, mode: str = "prefix", name: str = "dummy"):
        self.mode = mode
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        if self.mode == "echo":
            return text
        if self.mode == "upper":
            return text.upper()
        if self.mode == "reverse":
            return text[::-1]
        return f"[{target_lang}] {text}"


def create_translator(backend: str, **kwargs) -> Translator:
    """Factory function to create a translator by name.

    Args:
        backend: Engine name ('google', 'bing', 'deepl', 'dummy')
        **kwargs: Backend-specific arguments

    Returns:
        Configured Translator instance

    Supported backends and aliases:
        - google, googlefree: Google Translate web endpoint (no key)
        - bing, microsoft: Bing Translator web endpoint (no key)
        - deepl: DeepL API (key from KeyManager)
        - dummy, echo, test: Offline test translator
    """
    backend_lower = backend.lower().replace("_", "-")

    if backend_lower in ("dummy", "echo", "test"):
        mode = kwargs.get("mode", "echo" if backend_lower == "echo" else "prefix")
        return DummyTranslator(mode=mode, name=kwargs.get("name", "dummy"))

    elif backend_lower in ("google", "googlefree", "google-free"):
        from pagetrans.translate.online import GoogleTranslator
        return GoogleTranslator(timeout=kwargs.get("timeout", 30.0))

    elif backend_lower in ("bing", "microsoft"):
        from pagetrans.translate.online import BingTranslator
        return BingTranslator(timeout=kwargs.get("timeout", 30.0))

    elif backend_lower == "deepl":
        from pagetrans.translate.online import DeepLTranslator
        return DeepLTranslator(
            api_key=kwargs.get("api_key"),
            timeout=kwargs.get("timeout", 30.0),
            key_manager=kwargs.get("key_manager"),
        )

    else:
        raise ValueError(
            f"Unknown translator backend: {backend}. "
            "Available: google, bing, deepl, dummy"
        )
