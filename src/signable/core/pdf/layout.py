"""
Page layout engine.

Lays sanitized document text out onto fixed-size pages: a centered
bold title, then greedily word-wrapped body lines, with a page break
whenever the vertical cursor drops into the bottom buffer zone.

The output is a list of :class:`LayoutPage` objects holding ordered
draw commands in draw space (PDF points, origin = bottom-left). Layout
is a pure function of ``(title, body, page)``: the same input always
yields the same pages, which keeps signature-field placement
reproducible.
"""

from __future__ import annotations

__all__ = [
    "DrawCommand",
    "LayoutPage",
    "PageCursor",
    "PageSpec",
    "check_layout",
    "layout",
    "wrap_lines",
]

import logging
from dataclasses import dataclass, field

from ...errors import ConfigError, LayoutOverflow
from .fonts import require_standard_font, text_width

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageSpec:
    """Page geometry, fonts, and spacing policy for one render.

    Defaults: US Letter, 1-inch margins, 11pt Times body, 16pt Times
    Bold title, 1.4x line height.

    Attributes:
        width, height: Page size in PDF points.
        margin_top, margin_bottom, margin_left, margin_right: Margins in points.
        body_font, title_font: Core-14 font names.
        body_size, title_size: Font sizes in points.
        line_height_factor: Line height as a multiple of ``body_size``.
        title_spacing: Extra gap between the title and the first body line.
        bottom_buffer: Safety zone above the bottom margin that triggers
            a page break once the cursor enters it.
        heading_size: Size of the "SIGNATURES" heading.
        signature_min_space: Minimum remaining height for the signature
            block to stay on the current page.
        signature_heading_gap: Cursor drop before the heading.
        signature_first_line_gap: Cursor drop from heading to first signer line.
        signature_line_gap: Cursor drop between signer lines.
        signature_bottom_padding: Room kept below the last signer line.
        field_x: Provider-space x of every signature field (clears the
            longest "<Role> Signature:" label).
        field_vertical_offset: Baseline-to-field-top distance used when
            converting draw-space y to provider-space y.
    """

    width: float = 612.0
    height: float = 792.0
    margin_top: float = 72.0
    margin_bottom: float = 72.0
    margin_left: float = 72.0
    margin_right: float = 72.0
    body_font: str = "Times-Roman"
    title_font: str = "Times-Bold"
    body_size: float = 11.0
    title_size: float = 16.0
    line_height_factor: float = 1.4
    title_spacing: float = 30.0
    bottom_buffer: float = 100.0
    heading_size: float = 12.0
    signature_min_space: float = 150.0
    signature_heading_gap: float = 40.0
    signature_first_line_gap: float = 30.0
    signature_line_gap: float = 40.0
    signature_bottom_padding: float = 40.0
    field_x: float = 170.0
    field_vertical_offset: float = 20.0

    def __post_init__(self) -> None:
        require_standard_font(self.body_font)
        require_standard_font(self.title_font)
        if self.width <= 0 or self.height <= 0:
            raise ConfigError(f"Invalid page size: {self.width:.1f} x {self.height:.1f} pt")
        if self.body_size <= 0 or self.title_size <= 0 or self.heading_size <= 0:
            raise ConfigError("Font sizes must be positive")
        if self.line_height_factor <= 0:
            raise ConfigError(f"Invalid line height factor: {self.line_height_factor}")
        if self.content_width <= 0:
            raise ConfigError(
                f"Margins leave no content width: page {self.width:.0f} pt, "
                f"margins {self.margin_left:.0f} + {self.margin_right:.0f} pt"
            )
        if self.top <= self.break_limit:
            raise ConfigError(
                f"Margins leave no content height: top {self.top:.0f} pt, "
                f"break limit {self.break_limit:.0f} pt"
            )

    @property
    def content_width(self) -> float:
        return self.width - self.margin_left - self.margin_right

    @property
    def line_height(self) -> float:
        return self.body_size * self.line_height_factor

    @property
    def top(self) -> float:
        """Cursor y at the start of every page."""
        return self.height - self.margin_top

    @property
    def break_limit(self) -> float:
        """Once the cursor drops below this y, the next line goes on a new page."""
        return self.margin_bottom + self.bottom_buffer


@dataclass(frozen=True)
class DrawCommand:
    """One text run at a baseline position in draw space."""

    text: str
    x: float
    y: float
    font: str
    size: float


@dataclass(frozen=True)
class LayoutPage:
    """A laid-out page: its size, its ordered draw commands, and the final cursor."""

    width: float
    height: float
    commands: tuple[DrawCommand, ...] = ()
    cursor_y: float = 0.0


# ── Word wrap ────────────────────────────────────────────────────────


def wrap_lines(text: str, max_width: float, font: str, size: float) -> list[str]:
    """Greedily wrap one logical line into visual lines.

    Words are appended while the measured line stays within
    *max_width*. A single word wider than *max_width* is emitted alone.
    """
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and text_width(candidate, font, size) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


# ── Cursor ───────────────────────────────────────────────────────────


@dataclass
class PageCursor:
    """Mutable vertical cursor over a growing list of pages.

    Shared by the body layout and the signature block placer so both
    follow the same page-break rule.
    """

    spec: PageSpec
    pages: list[list[DrawCommand]] = field(default_factory=list)
    y: float = 0.0
    break_pending: bool = False

    @classmethod
    def fresh(cls, spec: PageSpec) -> PageCursor:
        cursor = cls(spec)
        cursor.new_page()
        return cursor

    @classmethod
    def resume(cls, spec: PageSpec, pages: list[LayoutPage]) -> PageCursor:
        """Continue after the last command of previously laid-out pages."""
        if not pages:
            return cls.fresh(spec)
        cursor = cls(spec, [list(p.commands) for p in pages])
        cursor.y = pages[-1].cursor_y
        return cursor

    @property
    def page_index(self) -> int:
        return len(self.pages) - 1

    @property
    def remaining(self) -> float:
        """Height left between the cursor and the bottom margin."""
        return self.y - self.spec.margin_bottom

    def new_page(self) -> None:
        self.pages.append([])
        self.y = self.spec.top
        self.break_pending = False

    def draw(self, text: str, x: float, font: str, size: float) -> DrawCommand:
        if self.break_pending:
            self.new_page()
        command = DrawCommand(text=text, x=x, y=self.y, font=font, size=size)
        self.pages[-1].append(command)
        return command

    def advance(self, dy: float) -> None:
        self.y -= dy

    def break_if_needed(self) -> None:
        """Schedule a page break once the cursor is inside the bottom buffer.

        The new page is only opened by the next :meth:`draw`, so a document
        ending right at the buffer gets no empty trailing page, and blank
        lines falling on the break are not carried over to the next page.
        """
        if self.y < self.spec.break_limit:
            self.break_pending = True

    def freeze(self) -> list[LayoutPage]:
        """Snapshot the pages; the cursor position is recorded on the last page."""
        result: list[LayoutPage] = []
        last = len(self.pages) - 1
        for idx, commands in enumerate(self.pages):
            cursor_y = self.y if idx == last else (commands[-1].y if commands else self.spec.top)
            result.append(
                LayoutPage(
                    width=self.spec.width,
                    height=self.spec.height,
                    commands=tuple(commands),
                    cursor_y=cursor_y,
                )
            )
        return result


# ── Layout ───────────────────────────────────────────────────────────


def _layout_title(cursor: PageCursor, title: str) -> None:
    spec = cursor.spec
    font, size = spec.title_font, spec.title_size
    title_lines = wrap_lines(title, spec.content_width, font, size)
    for i, line in enumerate(title_lines):
        if i > 0:
            cursor.advance(size * spec.line_height_factor)
        x = (spec.width - text_width(line, font, size)) / 2.0
        cursor.draw(line, x, font, size)
    cursor.advance(size + spec.title_spacing)
    cursor.break_if_needed()


def _layout_body(cursor: PageCursor, body: str) -> None:
    spec = cursor.spec
    for logical_line in body.split("\n"):
        if not logical_line.strip():
            cursor.advance(spec.line_height)
            cursor.break_if_needed()
            continue

        for visual_line in wrap_lines(
            logical_line, spec.content_width, spec.body_font, spec.body_size
        ):
            cursor.draw(visual_line, spec.margin_left, spec.body_font, spec.body_size)
            cursor.advance(spec.line_height)
            cursor.break_if_needed()


def check_layout(pages: list[LayoutPage], spec: PageSpec) -> None:
    """Verify every draw command lies inside the page's vertical margins.

    Raises:
        LayoutOverflow: If any command was placed outside the content area.
    """
    if not pages:
        raise LayoutOverflow("Layout produced no pages")
    for idx, page in enumerate(pages):
        for command in page.commands:
            if command.y < spec.margin_bottom or command.y > spec.height:
                raise LayoutOverflow(
                    f"Text {command.text[:30]!r} on page {idx + 1} placed at "
                    f"y={command.y:.1f}, outside [{spec.margin_bottom:.1f}, {spec.height:.1f}]"
                )


def layout(title: str, body: str, page: PageSpec | None = None) -> list[LayoutPage]:
    """Lay out a sanitized title and body onto pages.

    Args:
        title: Sanitized document title (centered, bold).
        body: Sanitized body text with explicit ``\\n`` line breaks.
        page: Page geometry and fonts. Defaults to :class:`PageSpec`.

    Returns:
        Ordered pages of draw commands.

    Raises:
        LayoutOverflow: If the page-break invariant was violated.
    """
    spec = page or PageSpec()
    cursor = PageCursor.fresh(spec)
    _layout_title(cursor, title)
    _layout_body(cursor, body)
    pages = cursor.freeze()
    check_layout(pages, spec)
    _logger.debug("Laid out %d page(s), cursor at y=%.1f", len(pages), cursor.y)
    return pages
