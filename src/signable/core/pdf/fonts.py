"""
Standard PDF font metrics and text encoding.

Only the Adobe core fonts are used: they are built into every PDF
reader, so the rendered artifact needs no embedded font files. Glyph
widths come from the AFM tables bundled with reportlab.
"""

from __future__ import annotations

__all__ = [
    "STANDARD_FONTS",
    "encode_text",
    "pdf_escape",
    "require_standard_font",
    "text_width",
]

from reportlab.pdfbase import pdfmetrics

from ...errors import ConfigError

# Core-14 text fonts (Symbol and ZapfDingbats are not Latin text fonts)
STANDARD_FONTS = frozenset(
    {
        "Courier",
        "Courier-Bold",
        "Courier-BoldOblique",
        "Courier-Oblique",
        "Helvetica",
        "Helvetica-Bold",
        "Helvetica-BoldOblique",
        "Helvetica-Oblique",
        "Times-Bold",
        "Times-BoldItalic",
        "Times-Italic",
        "Times-Roman",
    }
)


def require_standard_font(name: str) -> str:
    """Return *name* if it is a core-14 text font, else raise ConfigError."""
    if name not in STANDARD_FONTS:
        raise ConfigError(
            f"Unknown font {name!r}. Standard fonts: {', '.join(sorted(STANDARD_FONTS))}"
        )
    return name


def text_width(text: str, font: str, size: float) -> float:
    """Measured width of *text* in PDF points at the given font size."""
    return float(pdfmetrics.stringWidth(text, font, size))


def encode_text(text: str) -> bytes:
    """Encode sanitized text for a WinAnsi standard-font string."""
    return text.encode("latin-1", errors="replace")


def pdf_escape(text: str) -> bytes:
    """Encode and escape text as a PDF literal string, parentheses included.

    >>> pdf_escape("Rent (monthly)")
    b'(Rent \\\\(monthly\\\\))'
    """
    raw = encode_text(text)
    escaped = raw.replace(b"\\", b"\\\\").replace(b"(", b"\\(").replace(b")", b"\\)")
    return b"(" + escaped + b")"
