"""
API key management for Signable.

The provider API key is never written to config.json. It comes from the
``SIGNABLE_API_KEY`` environment variable or from the system keychain
(keyring).
"""

from __future__ import annotations

__all__ = [
    "clear_api_key",
    "get_credential_storage_info",
    "resolve_api_key",
    "save_api_key",
]

import logging
import os

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..constants import ENV_API_KEY
from ..errors import ConfigError

_logger = logging.getLogger(__name__)

# Keyring service / entry names for the provider API key
_KEYRING_SERVICE = "signable"
_KEYRING_USERNAME = "signwell-api-key"


def get_credential_storage_info() -> str:
    """Return a human-readable name of the keychain backend in use."""
    backend = keyring.get_keyring()
    module = type(backend).__module__ or ""
    if "macOS" in module:
        return "macOS Keychain"
    if "Windows" in module or "WinVault" in module:
        return "Windows Credential Manager"
    if "SecretService" in module:
        return "Linux Secret Service"
    if "KWallet" in module:
        return "KDE Wallet"
    return f"System keychain ({type(backend).__name__})"


def resolve_api_key() -> str | None:
    """Resolve the provider API key.

    Priority: env var > system keychain.

    Returns:
        The API key, or None if not configured anywhere.
    """
    key = os.environ.get(ENV_API_KEY, "").strip()
    if key:
        _logger.debug("resolve_api_key: source=env")
        return key

    try:
        stored = keyring.get_password(_KEYRING_SERVICE, _KEYRING_USERNAME)
    except KeyringError as e:
        # Locked keychain, access denied, no backend
        _logger.debug("Keyring read failed: %s", e)
        return None
    except (OSError, RuntimeError) as e:
        # OS-level failures from certain keyring backends
        _logger.debug("Keyring backend error: %s", e)
        return None

    if stored:
        _logger.debug("resolve_api_key: source=keyring")
        return stored
    _logger.debug("resolve_api_key: no key configured")
    return None


def save_api_key(api_key: str) -> None:
    """Store the provider API key in the system keychain.

    Raises:
        ConfigError: If the key is empty or the keychain refuses it.
    """
    api_key = api_key.strip()
    if not api_key:
        raise ConfigError("API key must not be empty")
    try:
        keyring.set_password(_KEYRING_SERVICE, _KEYRING_USERNAME, api_key)
    except (KeyringError, OSError, RuntimeError) as e:
        raise ConfigError(
            f"Could not save API key to the system keychain: {e}. "
            f"Set {ENV_API_KEY} in the environment instead."
        ) from e
    _logger.info("API key saved to %s", get_credential_storage_info())


def clear_api_key() -> None:
    """Remove the stored API key (best-effort)."""
    try:
        keyring.delete_password(_KEYRING_SERVICE, _KEYRING_USERNAME)
    except PasswordDeleteError:
        pass  # entry doesn't exist
    except (KeyringError, OSError, RuntimeError) as e:
        _logger.debug("Keyring delete failed: %s", e)
    else:
        _logger.info("Removed API key from keychain")
