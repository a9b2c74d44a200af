"""
PageTrans: in-place, viewport-driven translation of live HTML documents.

The engine walks a document, picks the text that is safe to translate,
translates only what is currently on screen, and can put every byte of
the original content back on demand.

Main entry points:
    Page: DOM-like document built on BeautifulSoup
    PageTranslator: start/stop/status command surface
    TranslationOrchestrator: dictionary -> cache -> engine -> fallback resolution
"""

__version__ = "0.1.0"

from pagetrans.dom import Page, TextNode
from pagetrans.session import PageTranslator
from pagetrans.state import TranslationState
from pagetrans.translate.orchestrator import TranslationOrchestrator, TranslationResult

__all__ = [
    "Page",
    "TextNode",
    "PageTranslator",
    "TranslationState",
    "TranslationOrchestrator",
    "TranslationResult",
]
