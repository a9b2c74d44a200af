"""
Observable "is this page translated" status.

A TranslationState is owned by whoever starts a translation session and
is handed to the session explicitly. Listeners are notified whenever the
status flips.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

StateListener = Callable[["TranslationState"], None]


class TranslationState:
    """Status holder with a stop handle.

    Attributes:
        is_translated: True while a session has translated content on the page
        stop_handle: Callable that stops the running session, if any
    """

    def __init__(self):
        self.is_translated = False
        self.stop_handle: Optional[Callable[[], None]] = None
        self._listeners: list[StateListener] = []

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def mark_translated(self, stop_handle: Callable[[], None]) -> None:
        self.is_translated = True
        self.stop_handle = stop_handle
        self._emit()

    def mark_stopped(self) -> None:
        changed = self.is_translated or self.stop_handle is not None
        self.is_translated = False
        self.stop_handle = None
        if changed:
            self._emit()

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Translation state listener failed")

    def __repr__(self) -> str:
        return f"TranslationState(is_translated={self.is_translated})"
