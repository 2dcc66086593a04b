"""Tests for signable.core.text -- markup and character sanitizer."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from signable.core import text as text_mod
from signable.core.text import SanitizeMode, sanitize, strip_aggressively

# ── Markup ──────────────────────────────────────────────────────────


def test_paragraphs_and_list_items():
    raw = "<p>Rent is due&nbsp;monthly</p><ul><li>On time</li></ul>"
    assert sanitize(raw) == "Rent is due monthly\n\n- On time"


def test_br_and_headings():
    raw = "<h1>Lease</h1>Line one<br>Line two<br/>Line three"
    assert sanitize(raw) == "Lease\n\nLine one\nLine two\nLine three"


def test_unknown_tags_are_dropped():
    assert sanitize('<span class="x">Hello</span> <em>world</em>') == "Hello world"


def test_markdown_headings_bold_and_bullets():
    raw = "## Terms\n**Deposit** is __refundable__.\n* Item one\n+ Item two"
    assert sanitize(raw) == "Terms\nDeposit is refundable.\n- Item one\n- Item two"


def test_entities_decoded():
    assert sanitize("Tom &amp; Jerry &quot;LLC&quot;") == 'Tom & Jerry "LLC"'


def test_escaped_markup_is_stripped_too():
    # Decodes to "<p>Hi</p>" on the first pass, stripped on the next
    assert sanitize("&lt;p&gt;Hi&lt;/p&gt;") == "Hi"


def test_blank_line_runs_collapse():
    assert sanitize("a\n\n\n\n\nb") == "a\n\nb"


def test_trailing_spaces_and_outer_whitespace_removed():
    assert sanitize("   a   \n b  \n") == "a\n b"


def test_crlf_and_tabs_normalized():
    assert sanitize("a\r\nb\rc\td", SanitizeMode.PLAIN) == "a\nb\nc d"


# ── Characters ──────────────────────────────────────────────────────


def test_typographic_punctuation_mapped():
    raw = "“Quoted” — it’s … • item ☐"
    assert sanitize(raw) == '"Quoted" - it\'s ... - item [ ]'


def test_latin1_characters_kept():
    assert sanitize("Café à Zürich") == "Café à Zürich"


def test_non_encodable_characters_removed():
    assert sanitize("Rent 💰 due 日本") == "Rent  due"


def test_control_characters_removed():
    assert sanitize("a\x00b\x07c\x85d") == "abcd"


# ── Plain mode ──────────────────────────────────────────────────────


def test_plain_mode_keeps_angle_brackets():
    assert sanitize("a < b and <tag>", SanitizeMode.PLAIN) == "a < b and <tag>"


def test_plain_mode_keeps_markdown_markers():
    assert sanitize("**not bold**", SanitizeMode.PLAIN) == "**not bold**"


def test_mode_accepts_string_value():
    assert sanitize("<b>x</b>", "markup") == "x"  # type: ignore[arg-type]


# ── Idempotence ─────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "raw",
    [
        "<p>Rent is due&nbsp;monthly</p><ul><li>On time</li></ul>",
        "&amp;lt;b&amp;gt;nested&amp;lt;/b&amp;gt;",
        "## Heading\n\n\n**bold** and *star*\n- a\n- b",
        "“Quotes” – dashes\t tabs\r\n",
        "",
        "   ",
    ],
)
@pytest.mark.parametrize("mode", list(SanitizeMode))
def test_sanitize_is_idempotent(raw, mode):
    once = sanitize(raw, mode)
    assert sanitize(once, mode) == once


def test_empty_input():
    assert sanitize("") == ""


# ── Fallback ────────────────────────────────────────────────────────


def test_strip_aggressively_keeps_printable_ascii():
    assert strip_aggressively("A <b>é</b> & *x*\n\n\n\tz") == "A b/b  x\n\n z"


def test_strip_aggressively_result_is_stable_under_sanitize():
    stripped = strip_aggressively("<p>Tom &amp; Jerry</p> **bold** #1")
    assert sanitize(stripped) == stripped


def test_unstable_text_falls_back_to_aggressive_stripping(caplog):
    with patch.object(text_mod, "SANITIZE_MAX_PASSES", 1):
        result = sanitize("&lt;p&gt;Hi&lt;/p&gt;")
    assert result == "lt;pgt;Hilt;/pgt;"
    assert "fell back" in caplog.text
