"""
Setup command for the Signable CLI.

Saves the provider API key to the system keychain and the remaining
settings to ~/.signable/config.json.
"""

from __future__ import annotations

__all__ = ["cmd_setup"]

import getpass
import sys
from typing import TYPE_CHECKING

from ...config import (
    CONFIG_FILE,
    get_credential_storage_info,
    resolve_api_key,
    save_api_key,
    save_settings,
)
from ...constants import ENV_API_KEY
from ...errors import ConfigError
from ..helpers import confirm_choice

if TYPE_CHECKING:
    import argparse


def _prompt_api_key() -> str | None:
    try:
        return getpass.getpass("Provider API key: ").strip()
    except (EOFError, KeyboardInterrupt):
        print()
        return None


def cmd_setup(args: argparse.Namespace) -> None:
    """Store the API key and any settings given on the command line."""
    if resolve_api_key() and not confirm_choice(
        "An API key is already configured. Replace it?", default_yes=False
    ):
        print("Keeping the existing API key.")
    else:
        api_key = _prompt_api_key()
        if not api_key:
            print("Error: an API key is required.", file=sys.stderr)
            sys.exit(1)
        try:
            save_api_key(api_key)
        except ConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"API key saved to: {get_credential_storage_info()}")
        print(f"  ({ENV_API_KEY} always takes priority)")

    try:
        save_settings(
            provider=args.provider,
            api_url=args.api_url,
            timeout=args.timeout,
            test_mode=args.test_mode,
            webhook_secret=args.webhook_secret,
            store_path=args.store_path,
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Settings saved to: {CONFIG_FILE}")
