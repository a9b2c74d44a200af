"""
Bounded translation cache with expiry and JSON persistence.

Entries are keyed by a SHA-1 digest of (text, source, target, engine).
When the entry count exceeds max_size, least-recently-accessed entries
are dropped until the cache is down to the low watermark. Entries older
than max_age are treated as misses and removed on read.

Example:
    >>> cache = TranslationCache(max_size=100)
    >>> cache.set("Hello world", "Bonjour le monde", "auto", "fr", "google")
    True
    >>> cache.get("Hello world", "auto", "fr", "google")
    'Bonjour le monde'
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)

CACHE_FORMAT_VERSION = 1


@dataclass
class CacheEntry:
    """One cached translation.

    Attributes:
        key: SHA-1 hex digest of the normalised lookup fields
        text: Source text as given
        translation: Cached translation
        source_lang: Source language used for the lookup
        target_lang: Target language
        engine: Engine the entry is stored under (the requested engine)
        created_at: Creation time (epoch seconds)
        last_accessed: Time of last read or write
        access_count: Number of writes and hits
    """
    key: str
    text: str
    translation: str
    source_lang: str
    target_lang: str
    engine: str
    created_at: float
    last_accessed: float
    access_count: int = 1

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class CacheStats:
    count: int
    hits: int
    misses: int
    hit_rate: float
    size: int


def cache_key(text: str, source_lang: str, target_lang: str, engine: str) -> str:
    """Digest of the lookup fields; text is stripped, codes are lower-cased."""
    if not text or not source_lang or not target_lang or not engine:
        raise ValueError("Cache key parameters cannot be empty")
    raw = "||".join([text.strip(), source_lang.lower(), target_lang.lower(), engine.lower()])
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


def human_readable_size(num_bytes: int, precision: int = 1) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    size = float(num_bytes)
    for unit in ("KB", "MB", "GB", "TB"):
        size /= 1024
        if size < 1024:
            break
    return f"{size:.{precision}f} {unit}"


class TranslationCache:
    """In-memory translation cache with optional JSON backing file.

    Args:
        path: JSON file for load()/save(); None keeps the cache in memory
        max_size: Entry count above which eviction runs
        max_age: Entry lifetime in seconds (0 disables expiry)
        low_watermark: Fraction of max_size kept after eviction
        clock: Time source, injectable for tests
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        max_size: int = 10000,
        max_age: float = 0,
        low_watermark: float = 0.8,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path) if path else None
        self.max_size = max_size
        self.max_age = max_age
        self.low_watermark = low_watermark
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def _is_expired(self, entry: CacheEntry) -> bool:
        if self.max_age <= 0:
            return False
        return self.clock() - entry.created_at > self.max_age

    def get(self, text: str, source_lang: str, target_lang: str, engine: str) -> Optional[str]:
        """Return the cached translation or None; a hit bumps access stats."""
        try:
            key = cache_key(text, source_lang, target_lang, engine)
        except ValueError:
            self.misses += 1
            return None
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if self._is_expired(entry):
            del self._entries[key]
            self.misses += 1
            return None
        entry.access_count += 1
        entry.last_accessed = self.clock()
        self.hits += 1
        return entry.translation

    def set(self, text: str, translation: str, source_lang: str, target_lang: str, engine: str) -> bool:
        """Store a translation; returns False when nothing was written."""
        if not translation:
            return False
        try:
            key = cache_key(text, source_lang, target_lang, engine)
        except ValueError as e:
            logger.debug("Not caching: %s", e)
            return False
        now = self.clock()
        self._entries[key] = CacheEntry(
            key=key,
            text=text,
            translation=translation,
            source_lang=source_lang,
            target_lang=target_lang,
            engine=engine,
            created_at=now,
            last_accessed=now,
        )
        if len(self._entries) > self.max_size:
            self.evict()
        return True

    def remove(self, text: str, source_lang: str, target_lang: str, engine: str) -> bool:
        try:
            key = cache_key(text, source_lang, target_lang, engine)
        except ValueError:
            return False
        return self._entries.pop(key, None) is not None

    def evict(self) -> int:
        """Drop least-recently-accessed entries down to the low watermark."""
        target = int(self.max_size * self.low_watermark)
        excess = len(self._entries) - target
        if excess <= 0:
            return 0
        oldest = sorted(self._entries.values(), key=lambda e: e.last_accessed)[:excess]
        for entry in oldest:
            del self._entries[entry.key]
        logger.info("Cache evicted %d entries (%d remain)", len(oldest), len(self._entries))
        return len(oldest)

    def cleanup_expired(self) -> int:
        """Remove every expired entry; returns how many were removed."""
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Removed %d expired cache entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> CacheStats:
        lookups = self.hits + self.misses
        size = sum(len(json.dumps(asdict(e), ensure_ascii=False)) for e in self._entries.values())
        return CacheStats(
            count=len(self._entries),
            hits=self.hits,
            misses=self.misses,
            hit_rate=self.hits / lookups if lookups else 0.0,
            size=size,
        )

    def top_entries(self, limit: int = 10) -> list[CacheEntry]:
        """Most frequently used entries first."""
        return sorted(self._entries.values(), key=lambda e: e.access_count, reverse=True)[:limit]

    def export(self) -> list[dict]:
        return [asdict(entry) for entry in self._entries.values()]

    def import_entries(self, entries: list[dict]) -> int:
        """Merge exported entries; malformed or expired ones are skipped."""
        imported = 0
        for data in entries:
            try:
                entry = CacheEntry.from_dict(data)
            except TypeError as e:
                logger.warning("Skipping malformed cache entry: %s", e)
                continue
            if self._is_expired(entry):
                continue
            self._entries[entry.key] = entry
            imported += 1
        if len(self._entries) > self.max_size:
            self.evict()
        return imported

    def load(self, path: Optional[Path] = None) -> int:
        """Load entries from JSON. A missing or corrupt file leaves the cache as is."""
        path = Path(path) if path else self.path
        if path is None or not path.exists():
            return 0
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not load cache from %s: %s", path, e)
            return 0
        entries = data.get("entries", []) if isinstance(data, dict) else []
        count = self.import_entries(entries)
        logger.debug("Loaded %d cache entries from %s", count, path)
        return count

    def save(self, path: Optional[Path] = None) -> Optional[Path]:
        path = Path(path) if path else self.path
        if path is None:
            return None
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"version": CACHE_FORMAT_VERSION, "entries": self.export()}
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=1), encoding="utf-8")
        logger.debug("Saved %d cache entries to %s", len(self._entries), path)
        return path

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


def create_cache(settings, path: Optional[Path] = None) -> TranslationCache:
    """Build a cache from Settings and load its backing file if present."""
    cache = TranslationCache(
        path=path,
        max_size=settings.cache_max_size,
        max_age=settings.cache_max_age,
        low_watermark=settings.cache_low_watermark,
    )
    cache.load()
    return cache
