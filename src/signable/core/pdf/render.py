"""PDF writer for laid-out pages.

Turns :class:`~signable.core.pdf.layout.LayoutPage` draw commands into
a single PDF: one page object per layout page, one content stream of
``BT ... Tj ET`` text runs per page, and non-embedded Type1 standard
fonts with WinAnsiEncoding.
"""

from __future__ import annotations

__all__ = ["build_content_stream", "font_resource_names", "render_pdf"]

import io
import logging
from typing import TYPE_CHECKING

from .. import require_pikepdf
from .fonts import pdf_escape

if TYPE_CHECKING:
    from .layout import LayoutPage

_logger = logging.getLogger(__name__)


def font_resource_names(pages: list[LayoutPage]) -> dict[str, str]:
    """Assign resource names (F1, F2, ...) to fonts in order of first use."""
    names: dict[str, str] = {}
    for page in pages:
        for command in page.commands:
            if command.font not in names:
                names[command.font] = f"F{len(names) + 1}"
    return names


def build_content_stream(page: LayoutPage, font_names: dict[str, str]) -> bytes:
    """Build the raw content stream for one page."""
    ops: list[bytes] = []
    for command in page.commands:
        ops.append(b"BT")
        ops.append(f"/{font_names[command.font]} {command.size:.2f} Tf".encode("ascii"))
        ops.append(f"{command.x:.2f} {command.y:.2f} Td".encode("ascii"))
        ops.append(pdf_escape(command.text) + b" Tj")
        ops.append(b"ET")
    return b"\n".join(ops)


def render_pdf(pages: list[LayoutPage], title: str | None = None) -> bytes:
    """Write laid-out pages to PDF bytes.

    Args:
        pages: Pages from the layout engine / signature block placer.
        title: Optional document title for the info dictionary.

    Returns:
        Complete PDF file content.
    """
    pikepdf = require_pikepdf()
    name = pikepdf.Name

    pdf = pikepdf.Pdf.new()
    font_names = font_resource_names(pages)
    font_dict = pikepdf.Dictionary()
    for font, resource in font_names.items():
        font_dict[name("/" + resource)] = pdf.make_indirect(
            pikepdf.Dictionary(
                Type=name.Font,
                Subtype=name.Type1,
                BaseFont=name("/" + font),
                Encoding=name.WinAnsiEncoding,
            )
        )
    resources = pdf.make_indirect(pikepdf.Dictionary(Font=font_dict))

    for layout_page in pages:
        page = pdf.add_blank_page(page_size=(layout_page.width, layout_page.height))
        page.obj[name.Resources] = resources
        page.obj[name.Contents] = pdf.make_stream(build_content_stream(layout_page, font_names))

    if title:
        pdf.docinfo[name.Title] = title
    pdf.docinfo[name.Producer] = "signable"

    buf = io.BytesIO()
    pdf.save(buf, deterministic_id=True)
    data = buf.getvalue()
    _logger.debug("Rendered %d page(s), %d bytes", len(pages), len(data))
    return data
