"""
Command-line interface for Signable.

Argument parsing and dispatch. Document commands live in
``documents``; the setup command lives in ``setup``.
"""

from __future__ import annotations

import argparse
import logging
import sys

from ...constants import DEFAULT_WEBHOOK_PORT, PROVIDERS, __version__
from .documents import (
    cmd_add,
    cmd_cancel,
    cmd_download,
    cmd_remind,
    cmd_render,
    cmd_send,
    cmd_serve_webhooks,
    cmd_status,
)
from .setup import cmd_setup


def _cmd_logout(args: argparse.Namespace) -> None:
    """Remove the stored API key, keeping the other settings."""
    from ...config import clear_api_key

    clear_api_key()
    print("API key removed from the system keychain.")
    print("Run 'signable setup' to add it again.")


def _cmd_reset(args: argparse.Namespace) -> None:
    """Clear the stored API key and every saved setting."""
    from ...config import reset_all

    reset_all()
    print("All configuration cleared.")
    print("Run 'signable setup' to reconfigure.")


_COMMANDS = {
    "render": cmd_render,
    "add": cmd_add,
    "send": cmd_send,
    "status": cmd_status,
    "cancel": cmd_cancel,
    "remind": cmd_remind,
    "download": cmd_download,
    "serve-webhooks": cmd_serve_webhooks,
    "setup": cmd_setup,
    "logout": _cmd_logout,
    "reset": _cmd_reset,
}


def _add_party_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--landlord",
        action="append",
        metavar="NAME:EMAIL",
        help="Landlord signer (repeatable; landlords sign first)",
    )
    parser.add_argument(
        "--tenant",
        action="append",
        metavar="NAME:EMAIL",
        help="Tenant signer (repeatable)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="signable",
        description="Render generated documents to PDF and manage e-signature requests.",
        epilog=(
            "Environment variables:\n"
            "  SIGNABLE_PROVIDER        signwell (default) or dropbox_sign\n"
            "  SIGNABLE_API_KEY         Provider API key (overrides the keychain)\n"
            "  SIGNABLE_API_URL         Provider API base URL\n"
            "  SIGNABLE_TIMEOUT         Request timeout in seconds (default: 30)\n"
            "  SIGNABLE_TEST_MODE       1/0: create non-binding test requests\n"
            "  SIGNABLE_WEBHOOK_SECRET  Verify webhook event hashes with this secret\n"
            "                           (the API key, for Dropbox Sign)\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-V", "--version", action="version", version=f"signable {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="More log output (-v info, -vv debug)",
    )

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # render
    p_render = sub.add_parser("render", help="Render a document body to a signable PDF")
    p_render.add_argument("title", help="Document title")
    p_render.add_argument("body_file", help="Text file with the document body")
    p_render.add_argument("-o", "--output", required=True, help="Output PDF path")
    p_render.add_argument(
        "--plain",
        action="store_true",
        default=False,
        help="Body is plain text (default: HTML/markdown markup is stripped)",
    )
    _add_party_options(p_render)

    # add
    p_add = sub.add_parser("add", help="Store a document for signing")
    p_add.add_argument("title", help="Document title")
    p_add.add_argument("body_file", help="Text file with the document body")
    p_add.add_argument("--id", default=None, help="Document id (default: generated)")
    p_add.add_argument("--plain", action="store_true", default=False, help="Body is plain text")

    # send
    p_send = sub.add_parser("send", help="Send a stored document for signature")
    p_send.add_argument("document_id", help="Document id")
    _add_party_options(p_send)
    p_send.add_argument("--message", default=None, help="Email message to recipients")
    p_send.add_argument("--subject", default=None, help="Email subject")

    # status
    p_status = sub.add_parser("status", help="Show signature status")
    p_status.add_argument("document_id", help="Document id")
    p_status.add_argument(
        "--no-refresh",
        action="store_true",
        default=False,
        help="Show the stored status without asking the provider",
    )

    # cancel
    p_cancel = sub.add_parser("cancel", help="Cancel the signing request")
    p_cancel.add_argument("document_id", help="Document id")

    # remind
    p_remind = sub.add_parser("remind", help="Send a reminder to a signer")
    p_remind.add_argument("document_id", help="Document id")
    p_remind.add_argument("email", help="Signer email")

    # download
    p_download = sub.add_parser("download", help="Download the fully signed PDF")
    p_download.add_argument("document_id", help="Document id")
    p_download.add_argument(
        "-o", "--output", default=None, help="Output path (default: <id>_signed.pdf)"
    )

    # serve-webhooks
    p_serve = sub.add_parser("serve-webhooks", help="Run the provider webhook receiver")
    p_serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    p_serve.add_argument(
        "--port",
        type=int,
        default=DEFAULT_WEBHOOK_PORT,
        help=f"Port (default: {DEFAULT_WEBHOOK_PORT})",
    )

    # setup
    p_setup = sub.add_parser("setup", help="Save API key and provider settings")
    p_setup.add_argument(
        "--provider", choices=PROVIDERS, default=None, help="Signing provider (default: signwell)"
    )
    p_setup.add_argument("--api-url", default=None, help="Provider API base URL")
    p_setup.add_argument("--timeout", type=int, default=None, help="Request timeout in seconds")
    mode = p_setup.add_mutually_exclusive_group()
    mode.add_argument(
        "--test-mode",
        dest="test_mode",
        action="store_true",
        default=None,
        help="Create non-binding test requests",
    )
    mode.add_argument(
        "--live", dest="test_mode", action="store_false", help="Create binding requests"
    )
    p_setup.add_argument("--webhook-secret", default=None, help="Webhook signing secret")
    p_setup.add_argument("--store-path", default=None, help="Document store JSON file")

    # logout
    sub.add_parser("logout", help="Remove the stored API key (keep other settings)")

    # reset
    sub.add_parser("reset", help="Clear all configuration, API key included")

    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = _COMMANDS.get(args.command or "")
    if handler is None:
        parser.print_help()
        sys.exit(1)

    # The webhook receiver is long-running; always show its activity
    _configure_logging(max(args.verbose, 1) if args.command == "serve-webhooks" else args.verbose)
    handler(args)


if __name__ == "__main__":
    main()
