"""
HTTP translation backends.

This module provides:
- GoogleTranslator: Google Translate web endpoint (no key)
- BingTranslator: Bing Translator web endpoint (no key)
- DeepLTranslator: Official DeepL v2 API (key required, batch-capable)

All backends are blocking `requests` calls with a per-call timeout.
HTTP errors, malformed payloads and empty answers raise BackendError.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from pagetrans.keys import KeyManager
from pagetrans.translate.base import BackendError, Translator

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36"


class HTTPTranslator(Translator):
    """Shared session handling and error mapping for HTTP engines."""

    def __init__(self, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    def _request(self, method: str, url: str, **kwargs):
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise BackendError(f"{self.name} request failed: {e}", engine=self.name) from e
        except ValueError as e:
            raise BackendError(f"{self.name} returned invalid JSON: {e}", engine=self.name) from e

    def _require_text(self, value) -> str:
        if not isinstance(value, str) or not value.strip():
            raise BackendError(f"{self.name} returned an empty translation", engine=self.name)
        return value


class GoogleTranslator(HTTPTranslator):
    """Google Translate via the public web endpoint.

    Usage:
        translator = GoogleTranslator()
        translator.translate("Hello world", "auto", "fr")
    """

    URL = "https://translate.google.com/translate_a/single"

    @property
    def name(self) -> str:
        return "google"

    def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        params = {
            "client": "webapp",
            "sl": source_lang or "auto",
            "tl": target_lang,
            "hl": target_lang,
            "dt": "t",
            "q": text,
        }
        data = self._request("GET", self.URL, params=params)
        try:
            segments = data[0]
            translated = "".join(segment[0] for segment in segments if segment and segment[0])
        except (TypeError, IndexError, KeyError) as e:
            raise BackendError(f"google payload not understood: {e}", engine=self.name) from e
        return self._require_text(translated)


class BingTranslator(HTTPTranslator):
    """Bing Translator via the ttranslatev3 web endpoint."""

    URL = "https://www.bing.com/ttranslatev3"

    LANG_MAP = {
        "auto": "auto-detect",
        "zh-cn": "zh-Hans",
        "zh": "zh-Hans",
        "zh-tw": "zh-Hant",
    }

    @property
    def name(self) -> str:
        return "bing"

    def _lang(self, code: str) -> str:
        return self.LANG_MAP.get(code.lower(), code)

    def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        form = {
            "fromLang": self._lang(source_lang or "auto"),
            "to": self._lang(target_lang),
            "text": text,
        }
        data = self._request("POST", self.URL, data=form)
        try:
            translated = data[0]["translations"][0]["text"]
        except (TypeError, IndexError, KeyError) as e:
            raise BackendError(f"bing payload not understood: {e}", engine=self.name) from e
        return self._require_text(translated)


class DeepLTranslator(HTTPTranslator):
    """DeepL v2 API translator.

    Free-plan keys (ending in ':fx') are sent to api-free.deepl.com.
    """

    FREE_URL = "https://api-free.deepl.com/v2/translate"
    PRO_URL = "https://api.deepl.com/v2/translate"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        key_manager: Optional[KeyManager] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(timeout=timeout, session=session)
        self._api_key = api_key
        self._key_manager = key_manager

    @property
    def name(self) -> str:
        return "deepl"

    @property
    def supports_batch(self) -> bool:
        return True

    @property
    def api_key(self) -> str:
        if not self._api_key:
            manager = self._key_manager or KeyManager()
            self._api_key = manager.get_key("deepl")
        if not self._api_key:
            raise BackendError("DeepL API key not configured", engine=self.name)
        return self._api_key

    def _endpoint(self, key: str) -> str:
        return self.FREE_URL if key.endswith(":fx") else self.PRO_URL

    def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        return self.translate_batch([text], source_lang, target_lang)[0]

    def translate_batch(self, texts: list[str], source_lang: str, target_lang: str) -> list[str]:
        if not texts:
            return []
        key = self.api_key
        payload = {"text": list(texts), "target_lang": target_lang.upper()}
        if source_lang and source_lang.lower() != "auto":
            payload["source_lang"] = source_lang.split("-")[0].upper()
        data = self._request(
            "POST",
            self._endpoint(key),
            json=payload,
            headers={"Authorization": f"DeepL-Auth-Key {key}"},
        )
        try:
            translations = [item["text"] for item in data["translations"]]
        except (TypeError, KeyError) as e:
            raise BackendError(f"deepl payload not understood: {e}", engine=self.name) from e
        if len(translations) != len(texts):
            raise BackendError(
                f"deepl returned {len(translations)} translations for {len(texts)} texts",
                engine=self.name,
            )
        logger.debug("DeepL translated %d texts", len(texts))
        return [self._require_text(t) for t in translations]
