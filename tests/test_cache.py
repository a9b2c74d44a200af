"""
Tests for the translation cache.

Run with: pytest tests/test_cache.py -v
"""

import json

from conftest import FakeClock

from pagetrans.config import Settings
from pagetrans.translate.cache import TranslationCache, cache_key, create_cache, human_readable_size


class TestLookup:
    """Tests for get/set semantics."""

    def test_set_then_get(self):
        cache = TranslationCache()
        assert cache.set("Hello world", "Bonjour le monde", "auto", "fr", "google")
        assert cache.get("Hello world", "auto", "fr", "google") == "Bonjour le monde"

    def test_other_target_misses(self):
        cache = TranslationCache()
        cache.set("Hello world", "Bonjour le monde", "auto", "fr", "google")
        assert cache.get("Hello world", "auto", "de", "google") is None
        assert cache.get("Hello world", "auto", "fr", "bing") is None

    def test_key_normalisation(self):
        """Surrounding whitespace and code case do not matter; text case does."""
        assert cache_key(" Hello ", "AUTO", "FR", "Google") == cache_key("Hello", "auto", "fr", "google")
        assert cache_key("Hello", "auto", "fr", "google") != cache_key("hello", "auto", "fr", "google")

    def test_empty_fields_are_not_cached(self):
        cache = TranslationCache()
        assert not cache.set("", "x", "auto", "fr", "google")
        assert not cache.set("Hello", "", "auto", "fr", "google")
        assert cache.get("", "auto", "fr", "google") is None

    def test_hit_bumps_access_stats(self):
        clock = FakeClock()
        cache = TranslationCache(clock=clock)
        cache.set("Hello", "Bonjour", "auto", "fr", "google")
        clock.advance(5)
        cache.get("Hello", "auto", "fr", "google")

        entry = cache.top_entries(1)[0]
        assert entry.access_count == 2
        assert entry.last_accessed == clock.now
        assert cache.stats().hits == 1


class TestBounds:
    """Tests for eviction and expiry."""

    def test_evicts_least_recently_accessed_to_watermark(self):
        clock = FakeClock()
        cache = TranslationCache(max_size=10, low_watermark=0.8, clock=clock)
        for i in range(10):
            cache.set(f"text {i}", f"t{i}", "auto", "fr", "google")
            clock.advance(1)
        cache.get("text 0", "auto", "fr", "google")
        clock.advance(1)

        cache.set("text 10", "t10", "auto", "fr", "google")

        assert len(cache) == 8
        assert cache.get("text 0", "auto", "fr", "google") == "t0"
        assert cache.get("text 1", "auto", "fr", "google") is None
        assert cache.get("text 10", "auto", "fr", "google") == "t10"

    def test_expired_entries_miss(self):
        clock = FakeClock()
        cache = TranslationCache(max_age=60, clock=clock)
        cache.set("Hello", "Bonjour", "auto", "fr", "google")
        clock.advance(61)

        assert cache.get("Hello", "auto", "fr", "google") is None
        assert len(cache) == 0

    def test_cleanup_expired(self):
        clock = FakeClock()
        cache = TranslationCache(max_age=60, clock=clock)
        cache.set("old", "vieux", "auto", "fr", "google")
        clock.advance(30)
        cache.set("new", "nouveau", "auto", "fr", "google")
        clock.advance(40)

        assert cache.cleanup_expired() == 1
        assert cache.get("new", "auto", "fr", "google") == "nouveau"

    def test_zero_max_age_never_expires(self):
        clock = FakeClock()
        cache = TranslationCache(max_age=0, clock=clock)
        cache.set("Hello", "Bonjour", "auto", "fr", "google")
        clock.advance(10 ** 9)
        assert cache.get("Hello", "auto", "fr", "google") == "Bonjour"


class TestPersistence:
    """Tests for stats, export and JSON files."""

    def test_stats(self):
        cache = TranslationCache()
        cache.set("Hello", "Bonjour", "auto", "fr", "google")
        cache.get("Hello", "auto", "fr", "google")
        cache.get("Bye", "auto", "fr", "google")

        stats = cache.stats()
        assert stats.count == 1
        assert stats.hit_rate == 0.5
        assert stats.size > 0

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "cache.json"
        cache = TranslationCache(path=path)
        cache.set("Hello", "Bonjour", "auto", "fr", "google")
        cache.save()

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["version"] == 1
        assert len(data["entries"]) == 1

        reloaded = TranslationCache(path=path)
        assert reloaded.load() == 1
        assert reloaded.get("Hello", "auto", "fr", "google") == "Bonjour"

    def test_corrupt_file_is_ignored(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{not json", encoding="utf-8")
        cache = TranslationCache(path=path)
        assert cache.load() == 0
        assert len(cache) == 0

    def test_create_cache_from_settings(self, tmp_path):
        """create_cache applies the settings limits and loads the file."""
        path = tmp_path / "cache.json"
        seeded = TranslationCache(path=path)
        seeded.set("Hello", "Bonjour", "auto", "fr", "google")
        seeded.save()

        cache = create_cache(Settings(cache_max_size=50, cache_max_age=60, cache_low_watermark=0.5), path)

        assert (cache.max_size, cache.max_age, cache.low_watermark) == (50, 60, 0.5)
        assert cache.get("Hello", "auto", "fr", "google") == "Bonjour"

    def test_import_skips_malformed_entries(self):
        source = TranslationCache()
        source.set("Hello", "Bonjour", "auto", "fr", "google")
        exported = source.export() + [{"key": "broken"}]

        target = TranslationCache()
        assert target.import_entries(exported) == 1

    def test_human_readable_size(self):
        assert human_readable_size(512) == "512 B"
        assert human_readable_size(2048) == "2.0 KB"
