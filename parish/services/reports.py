"""Financial report aggregation and export.

Everything here works on plain ``ContributionRow`` values so that it can be
used on query results, test fixtures or imported data alike.
"""
import csv
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO, StringIO
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from parish.core.config import settings
from parish.core.errors import RenderingError, ValidationError
from parish.models.finance import Contribution, ContributionType

logger = logging.getLogger(__name__)

TYPE_LABELS = {
    ContributionType.TITHE: "Dîme",
    ContributionType.OFFERING: "Offrande",
    ContributionType.GIFT: "Don",
}
TYPE_TOTAL_LABELS = {
    ContributionType.TITHE: "Total Dîmes",
    ContributionType.OFFERING: "Total Offrandes",
    ContributionType.GIFT: "Total Dons",
}
MONTH_LABELS = ("janv.", "févr.", "mars", "avr.", "mai", "juin", "juil.", "août", "sept.", "oct.", "nov.", "déc.")
PERIODS = ("month", "trimester", "year", "all")

ZERO = Decimal("0")


@dataclass(frozen=True)
class ContributionRow:
    member_id: UUID
    surname: str
    given_name: str
    amount: Decimal
    type: ContributionType
    contribution_date: date

    @property
    def member_name(self) -> str:
        return f"{self.surname} {self.given_name}".strip()


def rows_from_contributions(contributions: Iterable[Contribution]) -> List[ContributionRow]:
    return [
        ContributionRow(
            member_id=c.member_id,
            surname=c.member.surname if c.member else "",
            given_name=c.member.given_name if c.member else "",
            amount=Decimal(str(c.amount)),
            type=c.type,
            contribution_date=c.contribution_date,
        )
        for c in contributions
    ]


@dataclass
class TypeTotal:
    type: ContributionType
    label: str
    amount: Decimal
    percentage: float


@dataclass
class TypeSummary:
    types: List[TypeTotal]
    total: Decimal
    count: int

    @property
    def average(self) -> Decimal:
        if self.count == 0:
            return ZERO
        return (self.total / self.count).quantize(Decimal("0.01"))

    def amount_of(self, contribution_type: ContributionType) -> Decimal:
        for item in self.types:
            if item.type is contribution_type:
                return item.amount
        return ZERO


def _percentage(part: Decimal, total: Decimal) -> float:
    if total == 0:
        return 0.0
    return round(float(part * 100 / total), 2)


def summarize_by_type(rows: Sequence[ContributionRow]) -> TypeSummary:
    sums: Dict[ContributionType, Decimal] = {t: ZERO for t in ContributionType}
    for row in rows:
        sums[row.type] += row.amount
    total = sum(sums.values(), ZERO)
    return TypeSummary(
        types=[TypeTotal(t, TYPE_LABELS[t], sums[t], _percentage(sums[t], total)) for t in ContributionType],
        total=total,
        count=len(rows),
    )


@dataclass
class MonthlyBucket:
    year: int
    month: int
    tithe: Decimal = ZERO
    offering: Decimal = ZERO
    gift: Decimal = ZERO

    @property
    def label(self) -> str:
        return f"{MONTH_LABELS[self.month - 1]} {self.year % 100:02d}"

    @property
    def total(self) -> Decimal:
        return self.tithe + self.offering + self.gift

    def add(self, row: ContributionRow) -> None:
        if row.type is ContributionType.TITHE:
            self.tithe += row.amount
        elif row.type is ContributionType.OFFERING:
            self.offering += row.amount
        else:
            self.gift += row.amount


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _fill(buckets: List[MonthlyBucket], rows: Iterable[ContributionRow]) -> List[MonthlyBucket]:
    by_key = {(b.year, b.month): b for b in buckets}
    for row in rows:
        bucket = by_key.get((row.contribution_date.year, row.contribution_date.month))
        if bucket is not None:
            bucket.add(row)
    return buckets


def trailing_window_start(today: Optional[date] = None) -> date:
    """First day of the oldest month shown by ``monthly_buckets``."""
    today = today or date.today()
    return date(*shift_month(today.year, today.month, -11), 1)


def monthly_buckets(rows: Iterable[ContributionRow], today: Optional[date] = None) -> List[MonthlyBucket]:
    """The twelve months ending with ``today``'s month, oldest first, zero-filled."""
    today = today or date.today()
    buckets = [MonthlyBucket(*shift_month(today.year, today.month, offset)) for offset in range(-11, 1)]
    return _fill(buckets, rows)


def monthly_buckets_between(rows: Iterable[ContributionRow], start: date, end: date) -> List[MonthlyBucket]:
    if end < start:
        raise ValidationError("End date must not be before start date")
    buckets = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        buckets.append(MonthlyBucket(year, month))
        year, month = shift_month(year, month, 1)
    in_range = [r for r in rows if start <= r.contribution_date <= end]
    return _fill(buckets, in_range)


@dataclass
class ContributorTotal:
    member_id: UUID
    member_name: str
    total: Decimal = ZERO
    count: int = 0


def top_contributors(rows: Iterable[ContributionRow], limit: int = 10) -> List[ContributorTotal]:
    """Members ranked by total given. Ties keep the order in which members first appear."""
    totals: Dict[UUID, ContributorTotal] = {}
    for row in rows:
        entry = totals.get(row.member_id)
        if entry is None:
            entry = totals[row.member_id] = ContributorTotal(row.member_id, row.member_name)
        entry.total += row.amount
        entry.count += 1
    ranked = sorted(totals.values(), key=lambda e: e.total, reverse=True)
    return ranked[:limit]


def _clamped(year: int, month: int, day: int) -> date:
    for d in range(day, 27, -1):
        try:
            return date(year, month, d)
        except ValueError:
            continue
    return date(year, month, min(day, 28))


def period_start(period: str, today: Optional[date] = None) -> Optional[date]:
    """First day covered by a report period; None for ``all``."""
    today = today or date.today()
    if period == "all":
        return None
    if period == "month":
        return _clamped(*shift_month(today.year, today.month, -1), today.day)
    if period == "trimester":
        return _clamped(*shift_month(today.year, today.month, -3), today.day)
    if period == "year":
        return _clamped(today.year - 1, today.month, today.day)
    raise ValidationError(f"Unknown period: {period!r} (expected one of {', '.join(PERIODS)})")


def format_ariary(amount) -> str:
    value = Decimal(str(amount)).quantize(Decimal("1"))
    return f"{value:,}".replace(",", " ") + " Ar"


def contributions_csv(rows: Sequence[ContributionRow]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Date", "Nom", "Prénom", "Type", "Montant"])
    for row in rows:
        writer.writerow([
            row.contribution_date.isoformat(),
            row.surname,
            row.given_name,
            TYPE_LABELS[row.type],
            f"{row.amount:.2f}",
        ])
    summary = summarize_by_type(rows)
    writer.writerow([])
    writer.writerow(["Résumé"])
    for item in summary.types:
        writer.writerow([TYPE_TOTAL_LABELS[item.type], f"{item.amount:.2f}"])
    writer.writerow(["Total Général", f"{summary.total:.2f}"])
    return buffer.getvalue()


def contributions_pdf(rows: Sequence[ContributionRow], title: str = "Rapport Financier",
                      start: Optional[date] = None, end: Optional[date] = None) -> bytes:
    buffer = BytesIO()
    try:
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=30,
            leftMargin=30,
            topMargin=30,
            bottomMargin=18,
            title=title,
        )
        elements = []

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            'ReportTitle',
            parent=styles['Heading1'],
            fontSize=20,
            textColor=colors.HexColor('#1E3A8A'),
            spaceAfter=12,
            alignment=TA_CENTER,
        )
        subtitle_style = ParagraphStyle(
            'ReportSubtitle',
            parent=styles['Normal'],
            fontSize=10,
            textColor=colors.grey,
            spaceAfter=20,
            alignment=TA_CENTER,
        )

        elements.append(Paragraph(f"{settings.ORGANIZATION_NAME} - {title}", title_style))
        period_text = f"Généré le {datetime.now().strftime('%d/%m/%Y à %H:%M')}"
        if start or end:
            start_text = start.strftime('%d/%m/%Y') if start else "début"
            end_text = end.strftime('%d/%m/%Y') if end else "aujourd'hui"
            period_text = f"Période : {start_text} - {end_text} | " + period_text
        elements.append(Paragraph(period_text, subtitle_style))
        elements.append(Spacer(1, 0.2 * inch))

        data = [['Date', 'Nom', 'Prénom', 'Type', 'Montant']]
        for row in rows:
            data.append([
                row.contribution_date.strftime('%d/%m/%Y'),
                row.surname[:25],
                row.given_name[:25],
                TYPE_LABELS[row.type],
                format_ariary(row.amount),
            ])
        table = Table(data, colWidths=[0.9 * inch, 1.8 * inch, 1.8 * inch, 0.9 * inch, 1.3 * inch], repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1E3A8A')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 9),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 8),
            ('ALIGN', (4, 1), (4, -1), 'RIGHT'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#F5F5F5')]),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ]))
        elements.append(table)
        elements.append(Spacer(1, 0.3 * inch))

        summary = summarize_by_type(rows)
        summary_data = [['Type', 'Montant', '%']]
        for item in summary.types:
            summary_data.append([item.label, format_ariary(item.amount), f"{item.percentage:.2f}"])
        summary_data.append(['Total Général', format_ariary(summary.total), "100.00" if summary.total else "0.00"])
        summary_table = Table(summary_data, colWidths=[2 * inch, 1.6 * inch, 0.8 * inch])
        summary_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1E3A8A')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('ALIGN', (1, 1), (-1, -1), 'RIGHT'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ]))
        elements.append(summary_table)
        elements.append(Spacer(1, 0.2 * inch))
        elements.append(Paragraph(
            f"<b>Nombre de contributions :</b> {summary.count} | "
            f"<b>Contribution moyenne :</b> {format_ariary(summary.average)}",
            styles['Normal'],
        ))

        doc.build(elements)
    except Exception as e:
        logger.error(f"Error generating financial report PDF: {e}", exc_info=True)
        raise RenderingError("Could not generate report") from e
    return buffer.getvalue()
