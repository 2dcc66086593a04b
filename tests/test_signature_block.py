"""Tests for signature block placement and provider coordinates."""

from __future__ import annotations

import pytest

from signable.core.models import Signer, SignerRole
from signable.core.pdf import (
    SIGNATURE_HEADING,
    DrawCommand,
    LayoutPage,
    PageSpec,
    layout,
    place_signature_block,
    provider_page_number,
    signature_line_text,
    text_width,
    to_provider_y,
)
from signable.errors import LayoutOverflow

SPEC = PageSpec()


def _page_with_cursor(cursor_y: float) -> list[LayoutPage]:
    command = DrawCommand("Body", SPEC.margin_left, cursor_y + SPEC.line_height, "Times-Roman", 11)
    return [LayoutPage(SPEC.width, SPEC.height, (command,), cursor_y=cursor_y)]


# ── Coordinates ─────────────────────────────────────────────────────


def test_to_provider_y_flips_origin():
    assert to_provider_y(792, 300, 20) == 472


@pytest.mark.parametrize("draw_y", [100.0, 250.5, 400.0, 700.0])
def test_provider_y_round_trips(draw_y):
    y = to_provider_y(SPEC.height, draw_y, SPEC.field_vertical_offset)
    assert SPEC.height - y - SPEC.field_vertical_offset == pytest.approx(draw_y)


def test_to_provider_y_rejects_outside_page():
    with pytest.raises(LayoutOverflow):
        to_provider_y(792, -50, 20)
    with pytest.raises(LayoutOverflow):
        to_provider_y(792, 800, 20)


def test_provider_page_number_is_one_based():
    assert provider_page_number(0) == 1
    assert provider_page_number(3) == 4
    with pytest.raises(LayoutOverflow):
        provider_page_number(-1)


# ── Signature line ──────────────────────────────────────────────────


def test_signature_line_text_shape():
    line = signature_line_text(SignerRole.TENANT, "Times-Roman", 11)
    assert line.startswith("Tenant Signature: ___")
    assert line.endswith("Date: ____________")


def test_signature_lines_align_date_column():
    landlord = signature_line_text(SignerRole.LANDLORD, "Times-Roman", 11)
    tenant = signature_line_text(SignerRole.TENANT, "Times-Roman", 11)
    landlord_w = text_width(landlord.split("  Date:")[0], "Times-Roman", 11)
    tenant_w = text_width(tenant.split("  Date:")[0], "Times-Roman", 11)
    underscore = text_width("_", "Times-Roman", 11)
    assert landlord_w - underscore < tenant_w <= landlord_w


# ── Placement ───────────────────────────────────────────────────────


def test_block_on_last_page_when_room(signers):
    pages = layout("Lease", "Short body.")
    block = place_signature_block(pages, SPEC, signers)
    assert block.page == 0
    assert len(block.pages) == 1
    texts = [c.text for c in block.pages[0].commands]
    assert SIGNATURE_HEADING in texts
    assert [f.recipient_id for f in block.fields] == ["1", "2"]


def test_fields_follow_signing_order(landlord, tenant):
    block = place_signature_block(layout("Lease", "Body"), SPEC, [tenant, landlord])
    assert [f.recipient_role for f in block.fields] == [SignerRole.LANDLORD, SignerRole.TENANT]
    lines = [c.text for c in block.pages[-1].commands if "Signature:" in c.text]
    assert lines[0].startswith("Landlord")
    assert lines[1].startswith("Tenant")


def test_order_overrides_role(landlord):
    first_tenant = Signer(name="T", email="t@example.com", role=SignerRole.TENANT, order=0)
    late_landlord = Signer(
        name=landlord.name, email=landlord.email, role=SignerRole.LANDLORD, order=1
    )
    block = place_signature_block(layout("L", "B"), SPEC, [late_landlord, first_tenant])
    assert block.fields[0].recipient_role is SignerRole.TENANT


def test_field_coordinates_match_drawn_lines(signers):
    block = place_signature_block(layout("Lease", "Body"), SPEC, signers)
    drawn = {c.y for c in block.pages[block.page].commands if "Signature:" in c.text}
    for f in block.fields:
        assert f.draw_y in drawn
        assert f.x == SPEC.field_x
        assert f.y == pytest.approx(SPEC.height - f.draw_y - SPEC.field_vertical_offset)
        assert 0 <= f.y <= SPEC.height


def test_signer_lines_spaced_by_line_gap(signers):
    block = place_signature_block(layout("Lease", "Body"), SPEC, signers)
    first, second = block.fields
    assert first.draw_y - second.draw_y == pytest.approx(SPEC.signature_line_gap)


def test_block_moves_to_new_page_when_cramped(signers):
    pages = _page_with_cursor(180.0)
    block = place_signature_block(pages, SPEC, signers)
    assert block.page == 1
    assert len(block.pages) == 2
    assert all(f.page == 1 for f in block.fields)
    heading = block.pages[1].commands[0]
    assert heading.text == SIGNATURE_HEADING
    assert heading.y == pytest.approx(SPEC.top - SPEC.signature_heading_gap)


def test_block_never_split_across_pages(signers):
    # Fill pages with bodies of increasing length; the block always lands whole
    for n in range(0, 120, 7):
        body = "\n".join(f"Line {i}" for i in range(n))
        block = place_signature_block(layout("Lease", body), SPEC, signers)
        assert {f.page for f in block.fields} == {block.page}
        for command in block.pages[block.page].commands:
            assert command.y >= SPEC.margin_bottom


def test_block_stays_when_room_remains(signers):
    block = place_signature_block(_page_with_cursor(400.0), SPEC, signers)
    assert block.page == 0


def test_single_signer(landlord):
    block = place_signature_block(layout("L", "B"), SPEC, [landlord])
    assert len(block.fields) == 1
    assert block.fields[0].recipient_id == "1"


def test_oversized_block_raises_layout_overflow():
    many = [
        Signer(name=f"T{i}", email=f"t{i}@example.com", role=SignerRole.TENANT, order=i)
        for i in range(20)
    ]
    with pytest.raises(LayoutOverflow):
        place_signature_block(layout("L", "B"), SPEC, many)
