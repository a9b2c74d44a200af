"""
Per-site custom dictionaries and always/never site lists.

This module handles:
- Custom translations keyed by (domain, original text), each with an
  active flag; active entries override cache and engines
- Always/never translate site lists with path-prefix matching
- JSON persistence and CSV import

Example:
    >>> store = DictionaryStore()
    >>> store.add("example.com", "Sign in", "Se connecter")
    >>> store.lookup("example.com", "Sign in")
    'Se connecter'
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


@dataclass
class DictionaryEntry:
    """A custom translation for one text on one site.

    Attributes:
        domain: Hostname the entry applies to
        original: Source text, matched after stripping whitespace
        translation: Replacement text
        active: Inactive entries are kept but never applied
    """
    domain: str
    original: str
    translation: str
    active: bool = True


def match_site_list(sites: list[str], url: str) -> bool:
    """True when url matches an entry exactly, by host + path prefix, or by host.

    "example.com/docs" matches "https://example.com/docs/intro" but not
    "https://example.com/blog".
    """
    sites = [s.strip() for s in sites]
    if url in sites:
        return True
    try:
        parsed = urlparse(url if url.startswith("http") else "https://" + url)
        host = parsed.hostname
    except ValueError:
        host = None
    if not host:
        return any(url.startswith(site) for site in sites if site)
    path = parsed.path
    while path and path != "/":
        if host + path in sites:
            return True
        path = path[: path.rfind("/")]
    return host in sites


class DictionaryStore:
    """Custom dictionaries plus site lists, optionally backed by a JSON file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._entries: dict[str, dict[str, DictionaryEntry]] = {}
        self.always_sites: list[str] = []
        self.never_sites: list[str] = []
        self.auto_translate_enabled = False

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def add(self, domain: str, original: str, translation: str, active: bool = True) -> DictionaryEntry:
        domain = domain.strip().lower()
        original = original.strip()
        if not domain or not original:
            raise ValueError("Dictionary entries need a domain and an original text")
        entry = DictionaryEntry(domain=domain, original=original, translation=translation, active=active)
        self._entries.setdefault(domain, {})[original] = entry
        return entry

    def remove(self, domain: str, original: str) -> bool:
        entries = self._entries.get(domain.strip().lower(), {})
        removed = entries.pop(original.strip(), None) is not None
        if not entries:
            self._entries.pop(domain.strip().lower(), None)
        return removed

    def set_active(self, domain: str, original: str, active: bool) -> bool:
        entry = self._entries.get(domain.strip().lower(), {}).get(original.strip())
        if entry is None:
            return False
        entry.active = active
        return True

    def get_entries_for_domain(self, domain: str) -> list[DictionaryEntry]:
        return list(self._entries.get(domain.strip().lower(), {}).values())

    def lookup(self, domain: str, text: str) -> Optional[str]:
        """Active translation for text on domain, or None."""
        if not domain:
            return None
        entry = self._entries.get(domain.strip().lower(), {}).get(text.strip())
        if entry is None or not entry.active:
            return None
        return entry.translation

    def domains(self) -> list[str]:
        return sorted(self._entries)

    def load_csv(self, path: Path, domain: str) -> int:
        """Import 'original,translation' rows for domain (header optional)."""
        count = 0
        with open(path, newline="", encoding="utf-8") as f:
            for row in csv.reader(f):
                if len(row) < 2 or not row[0].strip() or row[0].startswith("#"):
                    continue
                if count == 0 and row[0].strip().lower() in ("original", "source"):
                    continue
                self.add(domain, row[0], row[1].strip())
                count += 1
        logger.info("Imported %d dictionary entries for %s", count, domain)
        return count

    # ------------------------------------------------------------------
    # Site lists
    # ------------------------------------------------------------------

    def add_always_site(self, site: str) -> None:
        site = site.strip()
        if site not in self.always_sites:
            self.always_sites.append(site)
        self.never_sites = [s for s in self.never_sites if s != site]

    def add_never_site(self, site: str) -> None:
        site = site.strip()
        if site not in self.never_sites:
            self.never_sites.append(site)
        self.always_sites = [s for s in self.always_sites if s != site]

    def remove_site(self, site: str) -> None:
        site = site.strip()
        self.always_sites = [s for s in self.always_sites if s != site]
        self.never_sites = [s for s in self.never_sites if s != site]

    def is_never_site(self, url: str) -> bool:
        return bool(url) and match_site_list(self.never_sites, url)

    def should_auto_translate(self, url: str) -> bool:
        """True when url is on the always list and not on the never list."""
        if not url or self.is_never_site(url):
            return False
        return match_site_list(self.always_sites, url)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "site_always": list(self.always_sites),
            "site_never": list(self.never_sites),
            "auto_translate_enabled": self.auto_translate_enabled,
            "custom_dicts": {
                domain: [asdict(e) for e in entries.values()]
                for domain, entries in self._entries.items()
            },
        }

    def load(self, path: Optional[Path] = None) -> "DictionaryStore":
        path = Path(path) if path else self.path
        if path is None or not path.exists():
            return self
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not load dictionary from %s: %s", path, e)
            return self
        if not isinstance(data, dict):
            logger.warning("Dictionary file %s is not a JSON object", path)
            return self
        self.always_sites = list(data.get("site_always", []))
        self.never_sites = list(data.get("site_never", []))
        self.auto_translate_enabled = bool(data.get("auto_translate_enabled", False))
        self._entries = {}
        for domain, entries in data.get("custom_dicts", {}).items():
            for item in entries:
                try:
                    self.add(domain, item["original"], item["translation"], item.get("active", True))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning("Skipping malformed dictionary entry for %s: %s", domain, e)
        return self

    def save(self, path: Optional[Path] = None) -> Optional[Path]:
        path = Path(path) if path else self.path
        if path is None:
            return None
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        return path

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())
