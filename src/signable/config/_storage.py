"""
Low-level config file I/O for Signable.

Handles reading, writing, and validating the on-disk config.json.
Used by both config.py and credentials.py, and by the JSON document
store for its atomic writes.
"""

from __future__ import annotations

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "atomic_write_text",
    "load_config",
    "load_raw_config",
    "save_config",
]

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, TypedDict, cast

from ..constants import MAX_TIMEOUT, MIN_TIMEOUT, PROVIDERS

_logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".signable"
CONFIG_FILE = CONFIG_DIR / "config.json"


class ConfigDict(TypedDict, total=False):
    """Type definition for the config file structure."""

    provider: str
    api_url: str
    timeout: int
    test_mode: bool
    webhook_secret: str
    store_path: str


def load_raw_config() -> dict[str, object]:
    """Load raw config dict from disk, preserving all keys.

    Used for merge-and-save operations to preserve unknown keys.
    """
    try:
        data: Any = json.loads(CONFIG_FILE.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            return cast("dict[str, object]", data)
    except FileNotFoundError:
        pass
    except json.JSONDecodeError as e:
        _logger.warning("Config file corrupted, ignoring: %s", e)
    except OSError as e:
        _logger.warning("Cannot read config file: %s", e)
    return {}


def _validate_config_dict(data: dict[str, object]) -> ConfigDict:
    """Validate and return config dict, picking only known keys with correct types."""
    result: ConfigDict = {}
    for key in ("api_url", "webhook_secret", "store_path"):
        val = data.get(key)
        if isinstance(val, str) and val:
            result[key] = val  # type: ignore[literal-required]  # dynamic key from known set
    provider = data.get("provider")
    if isinstance(provider, str) and provider in PROVIDERS:
        result["provider"] = provider
    elif provider is not None:
        _logger.warning("Unknown provider %r in config, ignoring", provider)
    test_mode = data.get("test_mode")
    if isinstance(test_mode, bool):
        result["test_mode"] = test_mode
    timeout_val = data.get("timeout")
    # bool is an int subclass; a stray "timeout": true is not a timeout
    if isinstance(timeout_val, int) and not isinstance(timeout_val, bool):
        if MIN_TIMEOUT <= timeout_val <= MAX_TIMEOUT:
            result["timeout"] = timeout_val
        else:
            _logger.warning(
                "Config timeout=%d out of range [%d, %d], ignoring",
                timeout_val,
                MIN_TIMEOUT,
                MAX_TIMEOUT,
            )
    return result


def load_config() -> ConfigDict:
    """Load config from disk, returning only known typed keys."""
    return _validate_config_dict(load_raw_config())


def atomic_write_text(path: Path, content: str, *, mode: int = 0o600) -> None:
    """Write *content* to *path* atomically (temp file + rename).

    The parent directory must exist. The temp file is created next to
    the target so the final rename never crosses filesystems.
    """
    # Write through the fd directly to avoid a window where the file has wrong permissions
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        fd = -1  # fd is now closed by the context manager
        if os.name != "nt":
            try:
                tmp.chmod(mode)
            except OSError:
                _logger.exception("Failed to set permissions on %s", tmp)
        tmp.replace(path)  # atomic on POSIX
    except BaseException:
        if fd >= 0:
            os.close(fd)
        tmp.unlink(missing_ok=True)
        raise


def save_config(config: dict[str, object]) -> None:
    """Save config to disk with restricted permissions (0600)."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True, mode=0o700)
    # Enforce directory permissions even if the directory already existed
    if os.name != "nt":
        try:
            CONFIG_DIR.chmod(0o700)
        except OSError:
            _logger.warning("Failed to set restrictive permissions on %s", CONFIG_DIR)
    content = json.dumps(config, indent=2, ensure_ascii=False) + "\n"
    atomic_write_text(CONFIG_FILE, content)
