"""Page layout, signature block placement, and PDF writing."""

from .fonts import STANDARD_FONTS, encode_text, pdf_escape, require_standard_font, text_width
from .layout import (
    DrawCommand,
    LayoutPage,
    PageCursor,
    PageSpec,
    check_layout,
    layout,
    wrap_lines,
)
from .position import provider_page_number, to_provider_y
from .render import build_content_stream, font_resource_names, render_pdf
from .signature_block import (
    SIGNATURE_HEADING,
    SignatureBlock,
    SignatureField,
    place_signature_block,
    signature_line_text,
)

__all__ = [
    "SIGNATURE_HEADING",
    "STANDARD_FONTS",
    "DrawCommand",
    "LayoutPage",
    "PageCursor",
    "PageSpec",
    "SignatureBlock",
    "SignatureField",
    "build_content_stream",
    "check_layout",
    "encode_text",
    "font_resource_names",
    "layout",
    "pdf_escape",
    "place_signature_block",
    "provider_page_number",
    "render_pdf",
    "require_standard_font",
    "signature_line_text",
    "text_width",
    "to_provider_y",
    "wrap_lines",
]
