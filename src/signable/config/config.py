"""
Configuration management for Signable.

Stores the provider choice and endpoint, timeout, test-mode flag,
webhook secret, and the document store location in
~/.signable/config.json. Environment variables override the file.

API key management lives in ``credentials.py``.
"""

from __future__ import annotations

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "ProviderSettings",
    "get_store_path",
    "get_webhook_secret",
    "load_provider_settings",
    "reset_all",
    "save_settings",
]

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ..constants import (
    DEFAULT_API_URLS,
    DEFAULT_PROVIDER,
    DEFAULT_TIMEOUT_HTTP,
    ENV_API_URL,
    ENV_PROVIDER,
    ENV_TEST_MODE,
    ENV_TIMEOUT,
    ENV_WEBHOOK_SECRET,
    MAX_TIMEOUT,
    MIN_TIMEOUT,
    PROVIDERS,
)
from ..errors import ConfigError
from . import _storage
from ._storage import CONFIG_DIR, CONFIG_FILE, load_config, load_raw_config, save_config
from .credentials import clear_api_key, resolve_api_key

_logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class ProviderSettings:
    """Everything needed to construct a provider client.

    Attributes:
        api_url: Base URL of the provider API (HTTPS).
        api_key: Provider API key.
        timeout: Per-request timeout in seconds.
        test_mode: Create non-binding test requests.
        provider: Which provider API ``api_url`` points at (one of
            :data:`~signable.constants.PROVIDERS`).
    """

    api_url: str
    api_key: str
    timeout: int = DEFAULT_TIMEOUT_HTTP
    test_mode: bool = False
    provider: str = DEFAULT_PROVIDER

    def __repr__(self) -> str:
        # Keep the key out of logs and tracebacks
        return (
            f"ProviderSettings(api_url={self.api_url!r}, api_key='***', "
            f"timeout={self.timeout}, test_mode={self.test_mode}, provider={self.provider!r})"
        )


# ── Env parsing ─────────────────────────────────────────────────────


def _env_timeout(default: int) -> int:
    timeout_str = os.environ.get(ENV_TIMEOUT, "").strip()
    if not timeout_str:
        return default
    try:
        timeout = int(timeout_str)
    except ValueError:
        _logger.warning("Invalid %s value %r, using default", ENV_TIMEOUT, timeout_str)
        return default
    if timeout < MIN_TIMEOUT or timeout > MAX_TIMEOUT:
        _logger.warning(
            "%s=%d out of range [%d, %d], using default",
            ENV_TIMEOUT,
            timeout,
            MIN_TIMEOUT,
            MAX_TIMEOUT,
        )
        return default
    return timeout


def _env_test_mode(default: bool) -> bool:
    raw = os.environ.get(ENV_TEST_MODE, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    _logger.warning("Invalid %s value %r, ignoring", ENV_TEST_MODE, raw)
    return default


# ── Provider settings ───────────────────────────────────────────────


def load_provider_settings() -> ProviderSettings:
    """
    Resolve provider settings.

    Priority: env vars > config file > built-in defaults. The API key
    comes from the environment or the system keychain only.

    Raises:
        ConfigError: If no API key is configured, or the provider named
            in the environment is unknown.
    """
    config = load_config()

    provider = os.environ.get(ENV_PROVIDER, "").strip().lower() or config.get(
        "provider", DEFAULT_PROVIDER
    )
    if provider not in PROVIDERS:
        raise ConfigError(
            f"Unknown provider {provider!r} in {ENV_PROVIDER}; "
            f"expected one of {', '.join(PROVIDERS)}"
        )
    # A saved api_url belongs to the saved provider only
    saved_url = None
    if config.get("provider", DEFAULT_PROVIDER) == provider:
        saved_url = config.get("api_url")
    api_url = os.environ.get(ENV_API_URL, "").strip() or saved_url or DEFAULT_API_URLS[provider]
    timeout = _env_timeout(config.get("timeout", DEFAULT_TIMEOUT_HTTP))
    test_mode = _env_test_mode(config.get("test_mode", False))

    api_key = resolve_api_key()
    if not api_key:
        raise ConfigError("No provider API key configured. Run 'signable setup' first.")

    return ProviderSettings(
        api_url=api_url.rstrip("/"),
        api_key=api_key,
        timeout=timeout,
        test_mode=test_mode,
        provider=provider,
    )


def get_webhook_secret() -> str | None:
    """Webhook signing secret: env var > config file > None."""
    secret = os.environ.get(ENV_WEBHOOK_SECRET, "").strip()
    if secret:
        return secret
    return load_config().get("webhook_secret")


def get_store_path() -> Path:
    """Location of the JSON document store."""
    configured = load_config().get("store_path")
    if configured:
        return Path(configured).expanduser()
    return _storage.CONFIG_DIR / "documents.json"


def save_settings(
    *,
    provider: str | None = None,
    api_url: str | None = None,
    timeout: int | None = None,
    test_mode: bool | None = None,
    webhook_secret: str | None = None,
    store_path: str | None = None,
) -> None:
    """Merge the given values into config.json. None leaves a key as is.

    Raises:
        ConfigError: If a value fails validation.
    """
    config = load_raw_config()
    if provider is not None:
        if provider not in PROVIDERS:
            raise ConfigError(
                f"Unknown provider {provider!r}; expected one of {', '.join(PROVIDERS)}"
            )
        if provider != config.get("provider", DEFAULT_PROVIDER) and api_url is None:
            # The old endpoint belongs to the old provider
            config.pop("api_url", None)
        config["provider"] = provider
    if api_url is not None:
        if not api_url.lower().startswith("https://"):
            raise ConfigError(f"API URL must use HTTPS: {api_url}")
        config["api_url"] = api_url.rstrip("/")
    if timeout is not None:
        if timeout < MIN_TIMEOUT or timeout > MAX_TIMEOUT:
            raise ConfigError(f"Timeout must be between {MIN_TIMEOUT} and {MAX_TIMEOUT} seconds")
        config["timeout"] = timeout
    if test_mode is not None:
        config["test_mode"] = test_mode
    if webhook_secret is not None:
        config["webhook_secret"] = webhook_secret
    if store_path is not None:
        config["store_path"] = store_path
    save_config(config)


def reset_all() -> None:
    """Clear all config and the stored API key."""
    clear_api_key()
    save_config({})
