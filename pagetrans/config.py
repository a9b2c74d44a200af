"""
Project-wide configuration and directory structure.

This module defines the paths used by PageTrans and the user settings
that a translation session reads once when it starts.

Module Contents:
    APP_NAME: Application name for display purposes
    DATA_DIR: Per-user data directory (override with PAGETRANS_HOME)
    CACHE_FILE: Persistent translation cache
    DICT_FILE: Per-site custom dictionaries and site lists
    SETTINGS_FILE: User settings
    Settings: Session settings (cache limits, timeouts, engine order)

Example:
    >>> from pagetrans.config import load_settings
    >>> settings = load_settings()
    >>> print(settings.cache_max_size)
    10000
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Application name for display and identification
APP_NAME = "PageTrans"

# Main data directory (settings, cache, dictionaries, keys)
DATA_DIR = Path(os.environ.get("PAGETRANS_HOME", Path.home() / ".pagetrans"))

# Persistent translation cache
CACHE_FILE = DATA_DIR / "translation_cache.json"

# Per-site custom dictionaries and always/never site lists
DICT_FILE = DATA_DIR / "dictionary.json"

# User settings
SETTINGS_FILE = DATA_DIR / "settings.json"

DAY_SECONDS = 24 * 60 * 60


@dataclass
class Settings:
    """Settings consumed by a page translation session.

    They are read once when a session starts and are not re-read while
    it runs.

    Attributes:
        cache_enabled: Global cache switch (a request can still opt out)
        cache_max_size: Entry count that triggers eviction
        cache_max_age: Entry lifetime in seconds (0 disables expiry)
        cache_low_watermark: Fraction of cache_max_size kept after eviction
        request_timeout: Per-call backend timeout in seconds
        batch_size: Text nodes sent per batch
        engine_priority: Fallback order for translation engines
        default_engine: Engine used when the caller names none
        default_target_lang: Target language used when the caller names none
        page_mode: 'replace' or 'compare'
    """
    cache_enabled: bool = True
    cache_max_size: int = 10000
    cache_max_age: float = 7 * DAY_SECONDS
    cache_low_watermark: float = 0.8
    request_timeout: float = 30.0
    batch_size: int = 20
    engine_priority: list[str] = field(default_factory=lambda: ["google", "bing", "deepl"])
    default_engine: str = "bing"
    default_target_lang: str = "zh-CN"
    page_mode: str = "replace"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """Build settings from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def ensure_data_dir() -> Path:
    """Create the data directory if needed and return it."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    return DATA_DIR


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from JSON, falling back to defaults.

    A missing file yields defaults silently; an unreadable or corrupt
    file yields defaults and a warning.
    """
    path = Path(path) if path else SETTINGS_FILE
    if not path.exists():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read settings from %s: %s. Using defaults.", path, e)
        return Settings()
    if not isinstance(data, dict):
        logger.warning("Settings file %s is not a JSON object. Using defaults.", path)
        return Settings()
    return Settings.from_dict(data)


def save_settings(settings: Settings, path: Optional[Path] = None) -> Path:
    """Write settings as JSON and return the path used."""
    if path is None:
        ensure_data_dir()
        path = SETTINGS_FILE
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug("Settings saved to %s", path)
    return path
