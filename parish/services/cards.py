"""Member cards: single credit-card sized PDFs and N-up A4 sheets for printing.

Geometry is kept in millimetres and converted to points only when drawing.
Sheet slots are counted row-major from the top-left card of each page.
"""
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from io import BytesIO
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from parish.core.config import settings
from parish.core.errors import RenderingError, ValidationError
from parish.models.member import Adherent
from parish.services import qr

logger = logging.getLogger(__name__)

CARD_WIDTH_MM = 85.6
CARD_HEIGHT_MM = 53.98

HEADER_COLOR = colors.HexColor("#1E3A8A")

# Vertical positions measured from the top edge of the card
HEADER_Y_MM = 6.0
SUBTITLE_Y_MM = 9.5
NAME_Y_MM = 16.5
FIRST_DETAIL_Y_MM = 21.5
DETAIL_LEADING_MM = 4.2
FOOTER_Y_MM = CARD_HEIGHT_MM - 3.5
TEXT_X_MM = 4.0

QR_SIZE_MM = 22.0
QR_MARGIN_MM = 3.0


@dataclass(frozen=True)
class TextLine:
    text: str
    x_mm: float
    y_mm: float
    font: str
    size: float
    align: str = "left"


@dataclass
class CardContent:
    member_id: UUID
    header: str
    subtitle: str
    name: str
    details: List[str]
    footer: str
    year: int
    qr_payload: str

    @classmethod
    def from_member(cls, member: Adherent, year: Optional[int] = None) -> "CardContent":
        details = []
        if member.church_function:
            details.append(f"Fonction : {member.church_function}")
        if member.neighborhood:
            details.append(f"Quartier : {member.neighborhood}")
        if member.ministry is not None:
            details.append(f"Sampana : {member.ministry.name}")
        if member.zone is not None:
            details.append(f"Faritra : {member.zone.value.capitalize()}")
        return cls(
            member_id=member.id,
            header=settings.ORGANIZATION_NAME,
            subtitle=settings.ORGANIZATION_SUBTITLE,
            name=f"{member.surname.upper()} {member.given_name}",
            details=details,
            footer=settings.CARD_FOOTER,
            year=year or date.today().year,
            qr_payload=qr.build_payload(member),
        )


def card_text_layout(content: CardContent) -> List[TextLine]:
    """Text lines of a card, positioned relative to its top-left corner.

    Detail lines follow the name at a fixed leading; absent fields take no room.
    """
    lines = [
        TextLine(content.header, CARD_WIDTH_MM / 2, HEADER_Y_MM, "Helvetica-Bold", 9, align="center"),
        TextLine(content.subtitle, CARD_WIDTH_MM / 2, SUBTITLE_Y_MM, "Helvetica", 5.5, align="center"),
        TextLine(content.name, TEXT_X_MM, NAME_Y_MM, "Helvetica-Bold", 8.5),
    ]
    for i, detail in enumerate(content.details):
        lines.append(TextLine(detail, TEXT_X_MM, FIRST_DETAIL_Y_MM + i * DETAIL_LEADING_MM, "Helvetica", 6.5))
    lines.append(TextLine(f"{content.footer} - {content.year}", TEXT_X_MM, FOOTER_Y_MM, "Helvetica-Oblique", 5.5))
    return lines


def qr_box() -> Tuple[float, float, float]:
    """QR square in the bottom-right corner: (x_mm, y_mm from top, size_mm)."""
    return (
        CARD_WIDTH_MM - QR_MARGIN_MM - QR_SIZE_MM,
        CARD_HEIGHT_MM - QR_MARGIN_MM - QR_SIZE_MM,
        QR_SIZE_MM,
    )


@dataclass(frozen=True)
class CardSlot:
    index: int
    page: int
    row: int
    col: int
    x: float
    y: float


@dataclass(frozen=True)
class SheetLayout:
    page_width_mm: float = A4[0] / mm
    page_height_mm: float = A4[1] / mm
    columns: int = 2
    rows: int = 5
    gutter_mm: float = 3.0
    card_width_mm: float = CARD_WIDTH_MM
    card_height_mm: float = CARD_HEIGHT_MM

    @property
    def capacity(self) -> int:
        return self.columns * self.rows

    @property
    def margin_x_mm(self) -> float:
        grid = self.columns * self.card_width_mm + (self.columns - 1) * self.gutter_mm
        return (self.page_width_mm - grid) / 2

    @property
    def margin_y_mm(self) -> float:
        grid = self.rows * self.card_height_mm + (self.rows - 1) * self.gutter_mm
        return (self.page_height_mm - grid) / 2

    def page_count(self, n: int) -> int:
        return math.ceil(n / self.capacity) if n > 0 else 0

    def slot(self, index: int) -> CardSlot:
        """Slot of the card at ``index``. ``x``/``y`` are the card's bottom-left corner in points."""
        if index < 0:
            raise ValueError("Card index must not be negative")
        page, offset = divmod(index, self.capacity)
        row, col = divmod(offset, self.columns)
        left_mm = self.margin_x_mm + col * (self.card_width_mm + self.gutter_mm)
        top_mm = self.margin_y_mm + row * (self.card_height_mm + self.gutter_mm)
        bottom_mm = self.page_height_mm - top_mm - self.card_height_mm
        return CardSlot(index=index, page=page, row=row, col=col, x=left_mm * mm, y=bottom_mm * mm)


DEFAULT_SHEET = SheetLayout()


@dataclass(frozen=True)
class CardFailure:
    index: int
    member_id: UUID
    reason: str


@dataclass
class CardBatchResult:
    pdf: bytes
    rendered: int
    pages: int
    placements: List[CardSlot] = field(default_factory=list)
    member_ids: List[UUID] = field(default_factory=list)
    failures: List[CardFailure] = field(default_factory=list)


def draw_card(c: canvas.Canvas, content: CardContent, qr_png: bytes, x: float, y: float) -> None:
    """Draw one card with its bottom-left corner at (x, y) points."""
    width = CARD_WIDTH_MM * mm
    height = CARD_HEIGHT_MM * mm
    c.saveState()
    c.setStrokeColor(colors.grey)
    c.setLineWidth(0.5)
    c.roundRect(x, y, width, height, 3 * mm, stroke=1, fill=0)
    c.setFillColor(HEADER_COLOR)
    c.rect(x, y + height - 11.5 * mm, width, 0.6 * mm, stroke=0, fill=1)

    for line in card_text_layout(content):
        c.setFont(line.font, line.size)
        c.setFillColor(HEADER_COLOR if line.y_mm <= SUBTITLE_Y_MM else colors.black)
        px = x + line.x_mm * mm
        py = y + height - line.y_mm * mm
        if line.align == "center":
            c.drawCentredString(px, py, line.text)
        else:
            c.drawString(px, py, line.text)

    qr_x, qr_y, qr_size = qr_box()
    c.drawImage(
        ImageReader(BytesIO(qr_png)),
        x + qr_x * mm,
        y + height - (qr_y + qr_size) * mm,
        width=qr_size * mm,
        height=qr_size * mm,
    )
    c.restoreState()


def _encode(content: CardContent) -> bytes:
    return qr.render_qr_png(content.qr_payload)


def render_card_pdf(member: Adherent, year: Optional[int] = None) -> bytes:
    content = CardContent.from_member(member, year)
    qr_png = _encode(content)
    buffer = BytesIO()
    try:
        c = canvas.Canvas(buffer, pagesize=(CARD_WIDTH_MM * mm, CARD_HEIGHT_MM * mm))
        c.setTitle(f"Carte {content.name}")
        draw_card(c, content, qr_png, 0, 0)
        c.showPage()
        c.save()
    except Exception as e:
        logger.error(f"Error drawing card for adherent {member.id}: {e}", exc_info=True)
        raise RenderingError("Could not generate card") from e
    return buffer.getvalue()


def render_card_batch(members: Sequence[Adherent], year: Optional[int] = None,
                      layout: SheetLayout = DEFAULT_SHEET, workers: Optional[int] = None) -> CardBatchResult:
    """Render an A4 sheet batch, one card per member in input order.

    A member whose QR code cannot be produced gets no card. The failure is
    reported in ``failures`` and the following cards move up one slot.
    """
    if not members:
        raise ValidationError("No adherents selected")

    contents = [CardContent.from_member(member, year) for member in members]
    workers = max(1, min(workers or settings.CARD_RENDER_WORKERS, len(contents)))

    rendered: List[Tuple[CardContent, bytes]] = []
    failures: List[CardFailure] = []
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="card-qr") as pool:
        futures = [pool.submit(_encode, content) for content in contents]
        for index, (content, future) in enumerate(zip(contents, futures)):
            try:
                rendered.append((content, future.result()))
            except Exception as e:
                logger.warning(f"Skipping card of adherent {content.member_id}: {e}")
                failures.append(CardFailure(index=index, member_id=content.member_id, reason=str(e)))

    if not rendered:
        raise RenderingError("Could not generate cards", rendered=0)

    buffer = BytesIO()
    placements: List[CardSlot] = []
    c = canvas.Canvas(buffer, pagesize=(layout.page_width_mm * mm, layout.page_height_mm * mm))
    c.setTitle("Cartes membres")
    page = 0
    for position, (content, qr_png) in enumerate(rendered):
        slot = layout.slot(position)
        if slot.page != page:
            c.showPage()
            page = slot.page
        try:
            draw_card(c, content, qr_png, slot.x, slot.y)
        except Exception as e:
            logger.error(f"Error drawing card {position} of batch: {e}", exc_info=True)
            raise RenderingError("Could not generate cards", rendered=position) from e
        placements.append(slot)
    c.showPage()
    c.save()

    logger.info(f"Card batch: {len(rendered)} rendered, {len(failures)} skipped")
    return CardBatchResult(
        pdf=buffer.getvalue(),
        rendered=len(rendered),
        pages=layout.page_count(len(rendered)),
        placements=placements,
        member_ids=[content.member_id for content, _ in rendered],
        failures=failures,
    )
