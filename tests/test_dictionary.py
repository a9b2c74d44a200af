"""
Tests for per-site dictionaries and site lists.

Run with: pytest tests/test_dictionary.py -v
"""

import pytest

from pagetrans.translate.dictionary import DictionaryStore, match_site_list


class TestEntries:
    """Tests for custom dictionary entries."""

    def test_lookup_active_entry(self):
        store = DictionaryStore()
        store.add("Example.com", " Sign in ", "Se connecter")

        assert store.lookup("example.com", "Sign in") == "Se connecter"
        assert store.lookup("other.com", "Sign in") is None
        assert store.lookup("", "Sign in") is None

    def test_inactive_entry_not_applied(self):
        store = DictionaryStore()
        store.add("example.com", "Sign in", "Se connecter")
        assert store.set_active("example.com", "Sign in", False)

        assert store.lookup("example.com", "Sign in") is None
        assert len(store.get_entries_for_domain("example.com")) == 1

    def test_remove(self):
        store = DictionaryStore()
        store.add("example.com", "Sign in", "Se connecter")
        assert store.remove("example.com", "Sign in")
        assert not store.remove("example.com", "Sign in")
        assert store.domains() == []

    def test_entry_needs_domain(self):
        with pytest.raises(ValueError):
            DictionaryStore().add("", "Sign in", "Se connecter")

    def test_load_csv(self, tmp_path):
        path = tmp_path / "terms.csv"
        path.write_text("original,translation\nSign in,Se connecter\nLog out, Se déconnecter\n", encoding="utf-8")

        store = DictionaryStore()
        assert store.load_csv(path, "example.com") == 2
        assert store.lookup("example.com", "Log out") == "Se déconnecter"


class TestSiteLists:
    """Tests for always/never site matching."""

    def test_match_by_host(self):
        assert match_site_list(["example.com"], "https://example.com/any/page")
        assert not match_site_list(["example.com"], "https://other.com/")

    def test_match_by_path_prefix(self):
        sites = ["example.com/docs"]
        assert match_site_list(sites, "https://example.com/docs/intro/setup")
        assert match_site_list(sites, "example.com/docs")
        assert not match_site_list(sites, "https://example.com/blog")

    def test_exact_url(self):
        assert match_site_list(["https://example.com/a"], "https://example.com/a")

    def test_lists_are_exclusive(self):
        store = DictionaryStore()
        store.add_always_site("example.com")
        store.add_never_site("example.com")

        assert store.never_sites == ["example.com"]
        assert store.always_sites == []

    def test_should_auto_translate(self):
        store = DictionaryStore()
        store.add_always_site("example.com")
        store.add_never_site("example.com/private")

        assert store.should_auto_translate("https://example.com/docs")
        assert not store.should_auto_translate("https://example.com/private/notes")
        assert not store.should_auto_translate("https://other.com/")


class TestPersistence:
    def test_save_and_load(self, tmp_path):
        path = tmp_path / "dictionary.json"
        store = DictionaryStore(path)
        store.add("example.com", "Sign in", "Se connecter", active=False)
        store.add_always_site("example.com/docs")
        store.save()

        reloaded = DictionaryStore(path).load()
        assert reloaded.always_sites == ["example.com/docs"]
        entry = reloaded.get_entries_for_domain("example.com")[0]
        assert entry.translation == "Se connecter"
        assert entry.active is False

    def test_missing_file_gives_empty_store(self, tmp_path):
        store = DictionaryStore(tmp_path / "nope.json").load()
        assert len(store) == 0
