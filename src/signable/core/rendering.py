"""
Document rendering pipeline.

Generated text -> sanitizer -> layout engine -> signature block placer
-> PDF writer. The result carries everything the orchestrator needs to
submit a signing request: the PDF bytes and one field per signer.
"""

from __future__ import annotations

__all__ = ["RenderedDocument", "render_document"]

import logging
from dataclasses import dataclass

from .models import Signer
from .pdf import (
    LayoutPage,
    PageSpec,
    SignatureField,
    layout,
    place_signature_block,
    render_pdf,
)
from .text import SanitizeMode, sanitize

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedDocument:
    """A rendered, signable artifact.

    Attributes:
        pdf_bytes: Complete PDF file content.
        pages: Laid-out pages, signature block included.
        signature_page: 0-based index of the page holding the signature block.
        fields: One provider-space signature field per signer, signing order.
    """

    pdf_bytes: bytes
    pages: list[LayoutPage]
    signature_page: int
    fields: list[SignatureField]

    @property
    def page_count(self) -> int:
        return len(self.pages)


def render_document(
    title: str,
    body: str,
    signers: list[Signer],
    page: PageSpec | None = None,
    content_format: SanitizeMode = SanitizeMode.MARKUP,
) -> RenderedDocument:
    """Render generated document text into a signable PDF.

    The title is always sanitized as plain text; the body according to
    *content_format*.

    Raises:
        LayoutOverflow: Only if a layout invariant is violated.
    """
    spec = page or PageSpec()
    clean_title = sanitize(title, SanitizeMode.PLAIN)
    clean_body = sanitize(body, content_format)

    body_pages = layout(clean_title, clean_body, spec)
    block = place_signature_block(body_pages, spec, signers)
    pdf_bytes = render_pdf(block.pages, title=clean_title)

    _logger.info(
        "Rendered %r: %d page(s), signature block on page %d, %d field(s)",
        clean_title,
        len(block.pages),
        block.page + 1,
        len(block.fields),
    )
    return RenderedDocument(
        pdf_bytes=pdf_bytes,
        pages=block.pages,
        signature_page=block.page,
        fields=block.fields,
    )
