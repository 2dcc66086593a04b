"""
Text sanitizer for PDF rendering.

Turns generated document text (light HTML or markdown, or plain text)
into plain text that the standard PDF fonts can encode: explicit
newlines for block boundaries, no tags, no entities, and only
characters in the Latin-1 / WinAnsi range.

One sanitize pass is an ordered list of substitution rules. The pass is
repeated until the text stops changing, so ``sanitize`` is idempotent
even for input such as ``&lt;p&gt;`` that decodes into new markup.
"""

from __future__ import annotations

__all__ = ["SanitizeMode", "sanitize", "strip_aggressively"]

import enum
import html
import logging
import re

from ..constants import SANITIZE_MAX_PASSES
from ..errors import SanitizationFailure

_logger = logging.getLogger(__name__)


class SanitizeMode(str, enum.Enum):
    """How the raw text should be interpreted."""

    MARKUP = "markup"  # HTML fragments and/or lightweight markdown
    PLAIN = "plain"


# ── Rule tables ──────────────────────────────────────────────────────

# Block-level markup boundaries, applied in order before tag stripping.
_BLOCK_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"<br\s*/?>", re.IGNORECASE), "\n"),
    (re.compile(r"</p\s*>", re.IGNORECASE), "\n\n"),
    (re.compile(r"</div\s*>", re.IGNORECASE), "\n"),
    (re.compile(r"</h[1-6]\s*>", re.IGNORECASE), "\n\n"),
    (re.compile(r"<li(\s[^>]*)?>", re.IGNORECASE), "- "),
    (re.compile(r"</li\s*>", re.IGNORECASE), "\n"),
)

_TAG_RE = re.compile(r"<[^>]*>")

# Lightweight markdown produced by the text generator.
_MARKDOWN_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^[ ]*#{1,6}[ ]+", re.MULTILINE), ""),
    (re.compile(r"(?<!\*)\*\*(?=[^*\s])([^*\n]*?[^*\s])\*\*(?!\*)"), r"\1"),
    (re.compile(r"(?<!_)__(?=[^_\s])([^_\n]*?[^_\s])__(?!_)"), r"\1"),
    (re.compile(r"^([ ]*)[*+][ ]+", re.MULTILINE), r"\1- "),
)

# Typographic punctuation -> nearest ASCII equivalent.
_TYPOGRAPHIC_MAP: dict[str, str] = {
    "\u2610": "[ ]",  # ballot box
    "\u2611": "[ ]",  # ballot box with check
    "\u2612": "[ ]",  # ballot box with x
    "\u2022": "-",  # bullet
    "\u2023": "-",  # triangular bullet
    "\u2043": "-",  # hyphen bullet
    "\u25cf": "-",  # black circle
    "\u25cb": "-",  # white circle
    "\u2013": "-",  # en dash
    "\u2014": "-",  # em dash
    "\u2018": "'",
    "\u2019": "'",
    "`": "'",
    "\u00b4": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u2026": "...",
    "\u00a0": " ",  # no-break space
}

_TYPOGRAPHIC_RE = re.compile("|".join(re.escape(ch) for ch in _TYPOGRAPHIC_MAP))

# Highest code point the standard-font encoding can carry.
_MAX_ENCODABLE = 0xFF

_TRAILING_SPACE_RE = re.compile(r"[ ]+\n")
_BLANK_RUN_RE = re.compile(r"\n[ ]*\n(?:[ ]*\n)+")


# ── Character filtering ─────────────────────────────────────────────


def _is_encodable(char: str) -> bool:
    code = ord(char)
    if char == "\n":
        return True
    if code < 0x20 or code == 0x7F:
        return False
    # C1 controls map to different glyphs in WinAnsi than in Latin-1
    if 0x80 <= code <= 0x9F:
        return False
    return code <= _MAX_ENCODABLE


def _normalize_whitespace(text: str) -> str:
    text = _TRAILING_SPACE_RE.sub("\n", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


# ── Single pass ──────────────────────────────────────────────────────


def _sanitize_pass(text: str, mode: SanitizeMode) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\t", " ")

    if mode is SanitizeMode.MARKUP:
        for pattern, replacement in _BLOCK_RULES:
            text = pattern.sub(replacement, text)
        text = _TAG_RE.sub("", text)
        for pattern, replacement in _MARKDOWN_RULES:
            text = pattern.sub(replacement, text)
        text = html.unescape(text)

    text = _TYPOGRAPHIC_RE.sub(lambda m: _TYPOGRAPHIC_MAP[m.group(0)], text)
    text = "".join(ch for ch in text if _is_encodable(ch))
    return _normalize_whitespace(text)


def strip_aggressively(raw: str) -> str:
    """Fallback normalization: printable ASCII and newlines only.

    Markup-significant characters (``<``, ``>``, ``&``) are removed too,
    so the result is already a fixed point of :func:`sanitize`.
    """
    text = raw.replace("\r\n", "\n").replace("\r", "\n").replace("\t", " ")
    kept = "".join(ch for ch in text if ch == "\n" or (" " <= ch <= "~" and ch not in "<>&*_#+`"))
    return _normalize_whitespace(kept)


def _sanitize_strict(raw: str, mode: SanitizeMode) -> str:
    text = raw
    for _ in range(SANITIZE_MAX_PASSES):
        result = _sanitize_pass(text, mode)
        if result == text:
            return result
        text = result
    raise SanitizationFailure(f"Text did not stabilize after {SANITIZE_MAX_PASSES} passes")


def sanitize(raw: str, mode: SanitizeMode = SanitizeMode.MARKUP) -> str:
    """Normalize generated document text for the standard PDF fonts.

    >>> sanitize("<p>Rent is due&nbsp;monthly</p><ul><li>On time</li></ul>")
    'Rent is due monthly\\n\\n- On time'

    Args:
        raw: Generated title or body text.
        mode: ``SanitizeMode.MARKUP`` to convert HTML/markdown structure
            into line breaks; ``SanitizeMode.PLAIN`` for text that is
            already plain.

    Returns:
        Plain text with explicit ``\\n`` line breaks, at most one blank
        line in a row, no leading/trailing whitespace.
    """
    mode = SanitizeMode(mode)
    try:
        return _sanitize_strict(raw, mode)
    except SanitizationFailure as exc:
        _logger.warning("Sanitizer fell back to aggressive stripping: %s", exc)
        return strip_aggressively(raw)
