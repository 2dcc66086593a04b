"""
Document subcommands: render, add, send, status, cancel, remind,
download, and the webhook receiver.
"""

from __future__ import annotations

__all__ = [
    "cmd_add",
    "cmd_cancel",
    "cmd_download",
    "cmd_remind",
    "cmd_render",
    "cmd_send",
    "cmd_serve_webhooks",
    "cmd_status",
]

import sys
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

from ...api import open_orchestrator, open_store, render
from ...config import get_webhook_secret
from ...core.models import Document, Signer, SignerRole
from ...core.text import SanitizeMode
from ...errors import ProviderError, SignableError
from ...signing.reconciler import StatusReconciler
from ..helpers import (
    atomic_write,
    format_document,
    format_size_kb,
    parse_party,
    safe_read_text,
)
from ..webhook_server import log_transition, serve

if TYPE_CHECKING:
    import argparse


def _fail(message: str) -> NoReturn:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _report_provider_error(action: str, error: ProviderError) -> NoReturn:
    print(f"Error: failed to {action}.", file=sys.stderr)
    print(f"  {error}", file=sys.stderr)
    sys.exit(1)


def _parties(args: argparse.Namespace) -> list[Signer]:
    """Signers from repeated --landlord / --tenant NAME:EMAIL options."""
    signers: list[Signer] = []
    try:
        for value in args.landlord or []:
            signers.append(parse_party(value, SignerRole.LANDLORD))
        for value in args.tenant or []:
            signers.append(parse_party(value, SignerRole.TENANT))
    except ValueError as e:
        _fail(str(e))
    return signers


# ── Local commands ───────────────────────────────────────────────────


def cmd_render(args: argparse.Namespace) -> None:
    """Render a body file to a PDF without sending it anywhere."""
    body = safe_read_text(Path(args.body_file), "body file")
    if body is None:
        sys.exit(1)

    signers = _parties(args) or [
        Signer(name=SignerRole.LANDLORD.label, email="", role=SignerRole.LANDLORD),
        Signer(name=SignerRole.TENANT.label, email="", role=SignerRole.TENANT),
    ]
    try:
        rendered = render(args.title, body, signers, plain=args.plain)
    except SignableError as e:
        _fail(str(e))

    output = Path(args.output)
    try:
        atomic_write(output, rendered.pdf_bytes)
    except OSError as e:
        _fail(f"cannot write {output}: {e}")

    size = format_size_kb(len(rendered.pdf_bytes))
    print(f"Wrote {output} ({size}, {rendered.page_count} page(s))")
    for f in rendered.fields:
        print(
            f"  {f.recipient_role.label} signature: page {f.page + 1}, "
            f"x={f.x:.0f}, y={f.y:.0f}"
        )


def cmd_add(args: argparse.Namespace) -> None:
    """Store a generated document so it can be sent for signature."""
    body = safe_read_text(Path(args.body_file), "body file")
    if body is None:
        sys.exit(1)

    document = Document(
        id=args.id or uuid.uuid4().hex[:12],
        title=args.title,
        body=body,
        content_format=SanitizeMode.PLAIN if args.plain else SanitizeMode.MARKUP,
    )
    try:
        open_store().add(document)
    except SignableError as e:
        _fail(str(e))
    print(f"Added document {document.id}: {document.title}")


# ── Provider commands ───────────────────────────────────────────────


def cmd_send(args: argparse.Namespace) -> None:
    """Render a stored document and create a signing request."""
    signers = _parties(args)
    if not signers:
        _fail("at least one --landlord or --tenant is required")

    try:
        orchestrator = open_orchestrator()
        request_id = orchestrator.create(
            args.document_id,
            signers=signers,
            message=args.message,
            subject=args.subject,
        )
    except ProviderError as e:
        _report_provider_error("send for signature", e)
    except SignableError as e:
        _fail(str(e))

    print(f"Sent for signature: request {request_id}")
    for signer in signers:
        print(f"  {signer.role.label}: {signer.name} <{signer.email}>")


def cmd_status(args: argparse.Namespace) -> None:
    """Show a document's status, refreshed from the provider by default."""
    try:
        if args.no_refresh:
            document = open_store().get(args.document_id)
        else:
            document = open_orchestrator().refresh(args.document_id)
    except ProviderError as e:
        _report_provider_error("get signature status", e)
    except SignableError as e:
        _fail(str(e))

    for line in format_document(document):
        print(line)


def cmd_cancel(args: argparse.Namespace) -> None:
    try:
        document = open_orchestrator().cancel(args.document_id)
    except ProviderError as e:
        _report_provider_error("cancel signature request", e)
    except SignableError as e:
        _fail(str(e))
    print(f"Document {document.id}: {document.signature_status.value}")


def cmd_remind(args: argparse.Namespace) -> None:
    try:
        sent = open_orchestrator().remind(args.document_id, args.email)
    except ProviderError as e:
        _report_provider_error("send reminder", e)
    except SignableError as e:
        _fail(str(e))
    if sent:
        print(f"Reminder sent to {args.email}")
    else:
        print(f"No reminder needed for {args.email}")


def cmd_download(args: argparse.Namespace) -> None:
    """Save the fully signed PDF of a completed document."""
    output = Path(args.output or f"{args.document_id}_signed.pdf")
    try:
        data = open_orchestrator().download(args.document_id)
    except ProviderError as e:
        _report_provider_error("download signed document", e)
    except SignableError as e:
        _fail(str(e))

    try:
        atomic_write(output, data)
    except OSError as e:
        _fail(f"cannot write {output}: {e}")
    print(f"Wrote {output} ({format_size_kb(len(data))})")


def cmd_serve_webhooks(args: argparse.Namespace) -> None:
    """Run the webhook receiver. Needs no API key: events only touch the store."""
    reconciler = StatusReconciler(open_store(), on_transition=log_transition)
    print(f"Listening for provider webhooks on {args.host}:{args.port} (Ctrl-C to stop)")
    serve(reconciler, host=args.host, port=args.port, secret=get_webhook_secret())
