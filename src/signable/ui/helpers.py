"""
Common CLI helper functions for Signable.
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from ..core.models import Signer, SignerRole

if TYPE_CHECKING:
    from ..core.models import Document

__all__ = [
    "atomic_write",
    "confirm_choice",
    "format_document",
    "format_size_kb",
    "parse_party",
    "safe_read_text",
]

_BYTES_PER_KB = 1024


def format_size_kb(size_bytes: int) -> str:
    """Format a byte count as a human-readable KB string (e.g. '123.4 KB')."""
    return f"{size_bytes / _BYTES_PER_KB:.1f} KB"


def confirm_choice(message: str, default_yes: bool = True) -> bool:
    """
    Prompt user for yes/no confirmation.

    Args:
        message: Question to ask the user (without the [Y/n] suffix).
        default_yes: If True, empty input defaults to yes. If False, defaults to no.

    Returns:
        True if the user confirmed, False otherwise.
    """
    suffix = "[Y/n]" if default_yes else "[y/N]"
    try:
        answer = input(f"{message} {suffix} ").strip().lower()
    except (EOFError, KeyboardInterrupt):
        print()
        return False

    if default_yes:
        return answer in ("", "y", "yes")
    else:
        return answer in ("y", "yes")


def safe_read_text(path: Path, kind: str = "file") -> str | None:
    """
    Read a UTF-8 text file with uniform error handling.

    Returns:
        File contents, or None if the file doesn't exist or can't be read
        (an error has already been printed).
    """
    if not path.exists():
        print(f"Error: {kind} not found: {path}", file=sys.stderr)
        return None

    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading {kind}: {e}", file=sys.stderr)
        return None


def parse_party(value: str, role: SignerRole, order: int = 0) -> Signer:
    """Parse a ``NAME:EMAIL`` command-line value into a Signer.

    The split happens at the last colon so names may contain colons.

    Raises:
        ValueError: If the value has no colon, name, or email.
    """
    name, sep, email = value.rpartition(":")
    name, email = name.strip(), email.strip()
    if not sep or not name or "@" not in email:
        raise ValueError(f"Expected NAME:EMAIL, got {value!r}")
    return Signer(name=name, email=email, role=role, order=order)


def format_document(document: Document) -> list[str]:
    """Human-readable summary lines for a stored document."""
    lines = [
        f"Document:  {document.id}",
        f"Title:     {document.title}",
        f"Status:    {document.signature_status.value}",
        f"Request:   {document.signing_request_id or '-'}",
    ]
    for record in document.signers:
        when = f" at {record.signed_at:%Y-%m-%d %H:%M}" if record.signed_at else ""
        lines.append(
            f"  {record.signer_name} <{record.signer_email}>: {record.status_code.value}{when}"
        )
    return lines


def atomic_write(path: Path, data: bytes) -> None:
    """Write data to a file atomically using temp file + rename.

    Prevents partial writes from leaving corrupt output files if
    the process is interrupted mid-write (e.g., disk full, Ctrl-C).
    """
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        os.write(fd, data)
        os.fsync(fd)
        os.close(fd)
        fd = -1
        tmp.replace(path)
    except Exception:
        if fd >= 0:
            os.close(fd)
        tmp.unlink(missing_ok=True)
        raise
