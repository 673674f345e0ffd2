import uuid

import pytest
from reportlab.lib.units import mm

from parish.core.errors import RenderingError, ValidationError
from parish.models import Adherent, Sex, Zone
from parish.services import cards, qr
from parish.services.cards import (
    CARD_HEIGHT_MM,
    CARD_WIDTH_MM,
    CardContent,
    SheetLayout,
    DEFAULT_SHEET,
    card_text_layout,
    qr_box,
    render_card_batch,
    render_card_pdf,
)


def _member(surname="Rakoto", given_name="Jean", **fields):
    return Adherent(id=uuid.uuid4(), surname=surname, given_name=given_name, sex=Sex.MALE, **fields)


def test_content_without_optional_fields():
    member = _member()
    content = CardContent.from_member(member, 2024)
    assert content.name == "RAKOTO Jean"
    assert content.details == []
    assert qr.decode_payload(content.qr_payload).id == str(member.id)

    lines = card_text_layout(content)
    assert len(lines) == 4
    assert lines[-1].text.endswith("- 2024")


def test_detail_lines_follow_name_in_order():
    member = _member(church_function="Diakona", neighborhood="Tanambao", zone=Zone.SECOND)
    content = CardContent.from_member(member, 2024)
    assert content.details == ["Fonction : Diakona", "Quartier : Tanambao", "Faritra : Faharoa"]

    lines = card_text_layout(content)
    name, details = lines[2], lines[3:-1]
    assert name.text == "RAKOTO Jean"
    ys = [line.y_mm for line in details]
    assert ys == sorted(ys)
    assert all(y > name.y_mm for y in ys)


def test_qr_box_inside_card():
    x, y, size = qr_box()
    assert x + size < CARD_WIDTH_MM
    assert y + size < CARD_HEIGHT_MM
    assert x > 0 and y > 0


def test_sheet_pagination():
    layout = SheetLayout()
    assert layout.capacity == 10
    assert layout.page_count(0) == 0
    assert layout.page_count(10) == 1
    assert layout.page_count(23) == 3

    third_page = [layout.slot(i) for i in range(23) if layout.slot(i).page == 2]
    assert [(s.row, s.col) for s in third_page] == [(0, 0), (0, 1), (1, 0)]
    with pytest.raises(ValueError):
        layout.slot(-1)


def test_slots_fit_on_page():
    layout = DEFAULT_SHEET
    assert layout.margin_x_mm > 0
    assert layout.margin_y_mm > 0
    first, last = layout.slot(0), layout.slot(layout.capacity - 1)
    assert first.y > last.y
    assert last.x > first.x
    assert last.y >= 0
    assert first.y + CARD_HEIGHT_MM * mm <= layout.page_height_mm * mm


def test_single_card_pdf():
    pdf = render_card_pdf(_member(neighborhood="Tanambao"), 2024)
    assert pdf.startswith(b"%PDF")


def test_batch_of_23_spans_three_pages():
    members = [_member(f"Mpikambana{i:02d}", "Jean") for i in range(23)]
    result = render_card_batch(members, 2024)
    assert result.rendered == 23
    assert result.pages == 3
    assert result.failures == []
    assert result.member_ids == [m.id for m in members]
    assert [(s.page, s.row, s.col) for s in result.placements[20:]] == [(2, 0, 0), (2, 0, 1), (2, 1, 0)]
    assert result.pdf.startswith(b"%PDF")


def test_empty_batch_is_rejected():
    with pytest.raises(ValidationError):
        render_card_batch([], 2024)


def test_failed_qr_is_skipped_and_reported(monkeypatch):
    members = [_member(f"Mpikambana{i}", "Jean") for i in range(4)]
    broken = members[1]
    real_render = qr.render_qr_png

    def flaky_render(payload, box_size=10):
        if str(broken.id) in payload:
            raise RenderingError("Could not generate QR code")
        return real_render(payload, box_size)

    monkeypatch.setattr(qr, "render_qr_png", flaky_render)
    result = render_card_batch(members, 2024, workers=2)

    assert result.rendered == 3
    assert [(f.index, f.member_id) for f in result.failures] == [(1, broken.id)]
    assert result.member_ids == [members[0].id, members[2].id, members[3].id]
    assert [s.index for s in result.placements] == [0, 1, 2]


def test_batch_fails_when_no_card_renders(monkeypatch):
    def broken(payload, box_size=10):
        raise RenderingError("Could not generate QR code")

    monkeypatch.setattr(qr, "render_qr_png", broken)
    with pytest.raises(RenderingError) as excinfo:
        render_card_batch([_member(), _member("Rabe")], 2024)
    assert excinfo.value.rendered == 0


def test_draw_failure_reports_cards_already_placed(monkeypatch):
    real_draw = cards.draw_card
    drawn = []

    def failing_draw(c, content, qr_png, x, y):
        if len(drawn) == 2:
            raise OSError("disk full")
        drawn.append(content.member_id)
        real_draw(c, content, qr_png, x, y)

    monkeypatch.setattr(cards, "draw_card", failing_draw)
    with pytest.raises(RenderingError) as excinfo:
        render_card_batch([_member(f"Mpikambana{i}", "Jean") for i in range(4)], 2024)
    assert excinfo.value.rendered == 2
