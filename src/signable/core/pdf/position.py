"""
Signature field coordinates and page numbering helpers.

Layout happens in draw space (origin = bottom-left, y grows upward).
The signing provider places its overlay fields in provider space
(origin = top-left, y grows downward, 1-based page numbers). These
helpers convert between the two.
"""

from __future__ import annotations

__all__ = [
    "provider_page_number",
    "to_provider_y",
]

from ...errors import LayoutOverflow


def to_provider_y(page_height: float, draw_y: float, vertical_offset: float) -> float:
    """Convert a draw-space baseline y into a provider-space field top y.

    >>> to_provider_y(792, 300, 20)
    472

    Args:
        page_height: Page height in PDF points.
        draw_y: Baseline y of the signer line in draw space.
        vertical_offset: Baseline-to-field-top distance in points.

    Returns:
        Provider-space y, measured from the top edge.

    Raises:
        LayoutOverflow: If the converted y falls outside the page.
    """
    provider_y = page_height - draw_y - vertical_offset
    if provider_y < 0 or provider_y > page_height:
        raise LayoutOverflow(
            f"Signature field y={provider_y:.1f} outside page height {page_height:.1f} "
            f"(draw y={draw_y:.1f}, offset={vertical_offset:.1f})"
        )
    return provider_y


def provider_page_number(page_index: int) -> int:
    """0-based layout page index -> 1-based provider page number."""
    if page_index < 0:
        raise LayoutOverflow(f"Invalid page index: {page_index}")
    return page_index + 1

