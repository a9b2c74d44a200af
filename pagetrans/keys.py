"""
API key management for PageTrans.

Keys for engines that need them (DeepL) are looked up in:
1. Environment variables (preferred for CI/production)
2. OS keychain via keyring (secure local storage)
3. Local config file (~/.pagetrans/keys.json)

Usage:
    from pagetrans.keys import KeyManager

    km = KeyManager()
    km.set_key("deepl", "xxxx:fx")
    key = km.get_key("deepl")
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from pagetrans.config import APP_NAME, DATA_DIR

logger = logging.getLogger(__name__)

# Engines that take a key and their env var names
SERVICES = {
    "deepl": "DEEPL_API_KEY",
}


@dataclass
class KeyInfo:
    """Information about an API key."""
    service: str
    is_set: bool
    source: str  # 'env', 'keyring', 'config', 'none'
    masked_value: str


def env_var_for(service: str) -> str:
    return SERVICES.get(service, f"{service.upper()}_API_KEY")


class KeyManager:
    """Manage API keys.

    Args:
        config_dir: Directory holding keys.json (default: the data directory)
        use_keyring: Consult the OS keychain
    """

    SERVICE_NAME = APP_NAME

    def __init__(self, config_dir: Optional[Path] = None, use_keyring: bool = True):
        self.config_dir = Path(config_dir) if config_dir else DATA_DIR
        self.config_file = self.config_dir / "keys.json"
        self._keyring_available = use_keyring and self._check_keyring()

    def _check_keyring(self) -> bool:
        try:
            keyring.get_keyring()
            return True
        except Exception as e:
            logger.debug("Keyring unavailable: %s", e)
            return False

    def _read_config(self) -> dict:
        if not self.config_file.exists():
            return {}
        try:
            data = json.loads(self.config_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read %s: %s", self.config_file, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_config(self, config: dict) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(json.dumps(config, indent=2), encoding="utf-8")
        self.config_file.chmod(0o600)

    def _lookup(self, service: str) -> tuple[str, Optional[str]]:
        """Return (source, key) for the first place holding a key."""
        if env_val := os.getenv(env_var_for(service)):
            return "env", env_val

        if self._keyring_available:
            try:
                if key := keyring.get_password(self.SERVICE_NAME, service):
                    return "keyring", key
            except KeyringError as e:
                logger.debug("Keyring lookup for %s failed: %s", service, e)

        if key := self._read_config().get(service):
            return "config", key

        return "none", None

    def get_key(self, service: str) -> Optional[str]:
        """Get API key for a service, or None if not found."""
        return self._lookup(service.lower())[1]

    def set_key(self, service: str, key: str, use_keyring: bool = True) -> str:
        """Store API key for a service.

        Returns:
            Storage location used ('keyring' or 'config')
        """
        service = service.lower()

        if use_keyring and self._keyring_available:
            try:
                keyring.set_password(self.SERVICE_NAME, service, key)
                return "keyring"
            except KeyringError as e:
                logger.warning("Keyring write failed, using config file: %s", e)

        config = self._read_config()
        config[service] = key
        self._write_config(config)
        return "config"

    def delete_key(self, service: str) -> bool:
        """Delete stored API key for a service."""
        service = service.lower()
        deleted = False

        if self._keyring_available:
            try:
                keyring.delete_password(self.SERVICE_NAME, service)
                deleted = True
            except PasswordDeleteError:
                pass
            except KeyringError as e:
                logger.debug("Keyring delete for %s failed: %s", service, e)

        config = self._read_config()
        if service in config:
            del config[service]
            self._write_config(config)
            deleted = True

        return deleted

    def get_key_info(self, service: str) -> KeyInfo:
        service = service.lower()
        source, key = self._lookup(service)
        return KeyInfo(
            service=service,
            is_set=key is not None,
            source=source,
            masked_value=self._mask_key(key) if key else "",
        )

    def list_keys(self) -> list[KeyInfo]:
        """List all key-using engines and their key status."""
        return [self.get_key_info(service) for service in SERVICES]

    def _mask_key(self, key: str) -> str:
        """Mask a key for display (show first 4 and last 4 chars)."""
        if len(key) <= 12:
            return "*" * len(key)
        return f"{key[:4]}...{key[-4:]}"


def require_key(service: str, manager: Optional[KeyManager] = None) -> str:
    """Get API key or raise error if not found."""
    key = (manager or KeyManager()).get_key(service)
    if not key:
        raise ValueError(
            f"API key for '{service}' not found. "
            f"Set {env_var_for(service)} environment variable "
            f"or run: pagetrans keys set {service}"
        )
    return key
