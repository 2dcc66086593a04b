"""
Configuration and credential management.

Unified API for all config-related functionality. Instead of importing
from individual submodules (config, credentials), import from this
package directly.
"""

from __future__ import annotations

# Provider / store configuration
from .config import (
    CONFIG_FILE,
    ProviderSettings,
    get_store_path,
    get_webhook_secret,
    load_provider_settings,
    reset_all,
    save_settings,
)

# API key management
from .credentials import (
    clear_api_key,
    get_credential_storage_info,
    resolve_api_key,
    save_api_key,
)

__all__ = [
    "CONFIG_FILE",
    "ProviderSettings",
    "clear_api_key",
    "get_credential_storage_info",
    "get_store_path",
    "get_webhook_secret",
    "load_provider_settings",
    "reset_all",
    "resolve_api_key",
    "save_api_key",
    "save_settings",
]
