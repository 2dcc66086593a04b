"""
Signature block placement.

Appends the "SIGNATURES" section after the body and computes, for
every signer, where the provider should overlay its signature field:

  SIGNATURES

  Landlord Signature: _______________________________  Date: ____________

  Tenant Signature: _________________________________  Date: ____________

The block is never split across pages: if the last page has too little
room left, the whole block starts on a new page.
"""

from __future__ import annotations

__all__ = [
    "SIGNATURE_HEADING",
    "SignatureBlock",
    "SignatureField",
    "place_signature_block",
    "signature_line_text",
]

import logging
from dataclasses import dataclass

from ...errors import LayoutOverflow
from ..models import Signer, SignerRole, ordered_signers
from .fonts import text_width
from .layout import LayoutPage, PageCursor, PageSpec, check_layout
from .position import to_provider_y

_logger = logging.getLogger(__name__)

SIGNATURE_HEADING = "SIGNATURES"

# Underscore runs sized so the "Date:" column lines up for every role
_SIGNATURE_RULE_LEN = 31
_DATE_RULE = "_" * 12


@dataclass(frozen=True)
class SignatureField:
    """A provider-space signature field for one recipient.

    Attributes:
        recipient_id: Provider recipient id ("1", "2", ... in signing order).
        recipient_role: Role of the signer the field belongs to.
        page: 0-based index into the laid-out pages.
        x, y: Field position in provider space (origin = top-left).
        draw_y: Baseline of the signer line in draw space.
    """

    recipient_id: str
    recipient_role: SignerRole
    page: int
    x: float
    y: float
    draw_y: float


@dataclass(frozen=True)
class SignatureBlock:
    """Pages with the signature block appended, plus the computed fields."""

    pages: list[LayoutPage]
    page: int
    fields: list[SignatureField]


def signature_line_text(role: SignerRole, font: str, size: float) -> str:
    """Build ``"<Role> Signature: ____  Date: ____"`` with an aligned date column."""
    reference = f"{SignerRole.LANDLORD.label} Signature: {'_' * _SIGNATURE_RULE_LEN}"
    target = text_width(reference, font, size)
    prefix = f"{role.label} Signature: "
    rule = "_" * _SIGNATURE_RULE_LEN
    while text_width(prefix + rule + "_", font, size) <= target:
        rule += "_"
    return f"{prefix}{rule}  Date: {_DATE_RULE}"


def _block_height(spec: PageSpec, signer_count: int) -> float:
    return (
        spec.signature_heading_gap
        + spec.signature_first_line_gap
        + spec.signature_line_gap * max(signer_count - 1, 0)
    )


def place_signature_block(
    pages: list[LayoutPage],
    page: PageSpec,
    signers: list[Signer],
) -> SignatureBlock:
    """Append the signature section and compute one field per signer.

    Args:
        pages: Body pages from :func:`~signable.core.pdf.layout.layout`.
        page: The page spec used for the body layout.
        signers: Signers in any order; lines are drawn in signing order.

    Returns:
        SignatureBlock with the extended pages, the 0-based page index
        holding the block, and one field per signer (signing order).

    Raises:
        LayoutOverflow: If a computed field falls outside its page.
    """
    spec = page
    sequence = ordered_signers(signers)
    cursor = PageCursor.resume(spec, pages)

    needed = max(
        spec.signature_min_space,
        _block_height(spec, len(sequence)) + spec.signature_bottom_padding,
    )
    if cursor.remaining < needed:
        _logger.debug(
            "Signature block needs %.1f pt, %.1f pt left; starting new page",
            needed,
            cursor.remaining,
        )
        cursor.new_page()

    block_page = cursor.page_index
    cursor.advance(spec.signature_heading_gap)
    cursor.draw(SIGNATURE_HEADING, spec.margin_left, spec.title_font, spec.heading_size)
    cursor.advance(spec.signature_first_line_gap)

    fields: list[SignatureField] = []
    for idx, signer in enumerate(sequence):
        if idx > 0:
            cursor.advance(spec.signature_line_gap)
        line = signature_line_text(signer.role, spec.body_font, spec.body_size)
        command = cursor.draw(line, spec.margin_left, spec.body_font, spec.body_size)
        fields.append(
            SignatureField(
                recipient_id=str(idx + 1),
                recipient_role=signer.role,
                page=cursor.page_index,
                x=spec.field_x,
                y=to_provider_y(spec.height, command.y, spec.field_vertical_offset),
                draw_y=command.y,
            )
        )

    result_pages = cursor.freeze()
    check_layout(result_pages, spec)
    if len(fields) != len(sequence) or any(f.page >= len(result_pages) for f in fields):
        raise LayoutOverflow("Signature fields do not match the laid-out pages")

    return SignatureBlock(pages=result_pages, page=block_page, fields=fields)
