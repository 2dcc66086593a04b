"""Tests for signable.core.pdf.layout and fonts -- word wrap and pagination."""

from __future__ import annotations

import pytest

from signable.core.pdf import (
    DrawCommand,
    LayoutPage,
    PageSpec,
    check_layout,
    layout,
    pdf_escape,
    require_standard_font,
    text_width,
    wrap_lines,
)
from signable.errors import ConfigError, LayoutOverflow

SPEC = PageSpec()
LOREM = " ".join(["lorem", "ipsum", "dolor", "sit", "amet", "consectetur"] * 40)


# ── Fonts ───────────────────────────────────────────────────────────


def test_text_width_grows_with_text():
    assert 0 < text_width("a", "Times-Roman", 11) < text_width("abc", "Times-Roman", 11)


def test_text_width_scales_with_size():
    small = text_width("Lease", "Times-Roman", 10)
    assert text_width("Lease", "Times-Roman", 20) == pytest.approx(small * 2)


def test_require_standard_font_rejects_unknown():
    with pytest.raises(ConfigError, match="Unknown font"):
        require_standard_font("Comic-Sans")


def test_pdf_escape_parentheses_and_backslash():
    assert pdf_escape("Rent (monthly)") == b"(Rent \\(monthly\\))"
    assert pdf_escape("a\\b") == b"(a\\\\b)"


def test_pdf_escape_latin1():
    assert pdf_escape("Café") == b"(Caf\xe9)"


# ── PageSpec ────────────────────────────────────────────────────────


def test_page_spec_defaults_are_us_letter():
    assert (SPEC.width, SPEC.height) == (612.0, 792.0)
    assert SPEC.content_width == 468.0
    assert SPEC.top == 720.0
    assert SPEC.break_limit == 172.0
    assert SPEC.line_height == pytest.approx(15.4)


def test_page_spec_rejects_unknown_font():
    with pytest.raises(ConfigError):
        PageSpec(body_font="Arial")


def test_page_spec_rejects_margins_wider_than_page():
    with pytest.raises(ConfigError, match="content width"):
        PageSpec(margin_left=400, margin_right=300)


def test_page_spec_rejects_margins_taller_than_page():
    with pytest.raises(ConfigError, match="content height"):
        PageSpec(margin_top=500, margin_bottom=200)


def test_page_spec_rejects_nonpositive_sizes():
    with pytest.raises(ConfigError):
        PageSpec(body_size=0)


# ── wrap_lines ──────────────────────────────────────────────────────


def test_wrap_empty_and_blank():
    assert wrap_lines("", 100, "Times-Roman", 11) == []
    assert wrap_lines("   ", 100, "Times-Roman", 11) == []


def test_wrap_short_line_unchanged():
    assert wrap_lines("Rent is due", 400, "Times-Roman", 11) == ["Rent is due"]


def test_wrap_respects_max_width():
    lines = wrap_lines(LOREM, SPEC.content_width, SPEC.body_font, SPEC.body_size)
    assert len(lines) > 1
    for line in lines:
        assert text_width(line, SPEC.body_font, SPEC.body_size) <= SPEC.content_width


def test_wrap_keeps_every_word_in_order():
    lines = wrap_lines(LOREM, 120, "Times-Roman", 11)
    assert " ".join(lines).split() == LOREM.split()


def test_wrap_oversized_word_on_its_own_line():
    word = "x" * 200
    lines = wrap_lines(f"a {word} b", 100, "Times-Roman", 11)
    assert lines == ["a", word, "b"]


# ── layout ──────────────────────────────────────────────────────────


def test_layout_single_page_title_centered():
    pages = layout("Lease Agreement", "Short body.")
    assert len(pages) == 1
    title = pages[0].commands[0]
    assert title.text == "Lease Agreement"
    assert title.font == SPEC.title_font
    assert title.y == SPEC.top
    width = text_width(title.text, SPEC.title_font, SPEC.title_size)
    assert title.x == pytest.approx((SPEC.width - width) / 2)


def test_layout_body_starts_below_title():
    pages = layout("T", "First line")
    body = pages[0].commands[1]
    assert body.text == "First line"
    assert body.x == SPEC.margin_left
    assert body.y == pytest.approx(SPEC.top - SPEC.title_size - SPEC.title_spacing)


def test_layout_blank_lines_advance_cursor():
    pages = layout("T", "a\n\nb")
    a, b = pages[0].commands[1:]
    assert a.y - b.y == pytest.approx(2 * SPEC.line_height)


def test_layout_paginates_long_body():
    body = "\n".join(f"Clause {i}" for i in range(150))
    pages = layout("Lease", body)
    assert len(pages) > 1
    texts = [c.text for p in pages for c in p.commands]
    assert texts[1:] == [f"Clause {i}" for i in range(150)]


def test_layout_has_no_empty_trailing_page():
    """Bodies ending exactly at a page break -- no blank page is appended."""
    for n in range(1, 120):
        pages = layout("Lease", "\n".join(f"Clause {i}" for i in range(n)))
        assert all(page.commands for page in pages), n
        assert pages[-1].cursor_y < pages[-1].commands[-1].y


def test_layout_never_draws_in_bottom_buffer():
    body = "\n\n".join([LOREM] * 6)
    pages = layout("Lease", body)
    for page in pages:
        for command in page.commands:
            assert SPEC.break_limit <= command.y <= SPEC.top


def test_layout_wrapped_lines_fit_content_width():
    pages = layout("Lease", LOREM)
    for command in pages[0].commands[1:]:
        assert text_width(command.text, command.font, command.size) <= SPEC.content_width


def test_layout_is_deterministic():
    body = "\n".join([LOREM, "", "Second paragraph."] * 3)
    assert layout("Lease", body) == layout("Lease", body)


def test_layout_records_cursor_on_last_page():
    pages = layout("T", "one line")
    last = pages[-1]
    assert last.cursor_y == pytest.approx(last.commands[-1].y - SPEC.line_height)


def test_layout_custom_page_spec():
    spec = PageSpec(width=595.0, height=842.0, body_font="Helvetica")
    pages = layout("A4", "Body", spec)
    assert pages[0].width == 595.0
    assert pages[0].commands[1].font == "Helvetica"


# ── check_layout ────────────────────────────────────────────────────


def test_check_layout_rejects_empty():
    with pytest.raises(LayoutOverflow, match="no pages"):
        check_layout([], SPEC)


def test_check_layout_rejects_command_below_margin():
    page = LayoutPage(
        width=SPEC.width,
        height=SPEC.height,
        commands=(DrawCommand("low", 72.0, 10.0, "Times-Roman", 11.0),),
    )
    with pytest.raises(LayoutOverflow, match="outside"):
        check_layout([page], SPEC)
