from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from parish.core.config import settings
from parish.core.dependencies import require_manage_finances, require_view_finances
from parish.db.base import get_db
from parish.models.finance import ContributionType
from parish.models.user import User
from parish.schemas.finance import (
    ContributionCreate, ContributionResponse, ContributionUpdate,
    DuesAmountUpdate, DuesOpenPeriod, DuesPaidUpdate, DuesResponse, DuesUpsert, PeriodStatsResponse,
)
from parish.schemas.report import FinancialReport, FinancialStatsResponse
from parish.services import reports
from parish.services.contribution import ContributionRepository
from parish.services.dues import DuesRepository
from parish.services.stats import financial_stats

router = APIRouter(prefix="/api/finances", tags=["finances"])


# ---------------------------------------------------------------------------
# Contributions
# ---------------------------------------------------------------------------

@router.get("/contributions", response_model=List[ContributionResponse])
def list_contributions(
    member_id: Optional[UUID] = None,
    type: Optional[ContributionType] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    current_user: User = Depends(require_view_finances),
    db: Session = Depends(get_db)
):
    rows = ContributionRepository(db).list(member_id=member_id, type=type, start=start, end=end)
    return [ContributionResponse.from_model(c) for c in rows]


@router.post("/contributions", response_model=ContributionResponse, status_code=status.HTTP_201_CREATED)
def create_contribution(
    payload: ContributionCreate,
    current_user: User = Depends(require_manage_finances),
    db: Session = Depends(get_db)
):
    return ContributionResponse.from_model(ContributionRepository(db).create(payload.model_dump()))


@router.put("/contributions/{contribution_id}", response_model=ContributionResponse)
def update_contribution(
    contribution_id: UUID,
    payload: ContributionUpdate,
    current_user: User = Depends(require_manage_finances),
    db: Session = Depends(get_db)
):
    contribution = ContributionRepository(db).update(contribution_id, payload.model_dump(exclude_unset=True))
    return ContributionResponse.from_model(contribution)


@router.delete("/contributions/{contribution_id}")
def delete_contribution(
    contribution_id: UUID,
    current_user: User = Depends(require_manage_finances),
    db: Session = Depends(get_db)
):
    ContributionRepository(db).delete(contribution_id)
    return {"message": "Contribution deleted"}


# ---------------------------------------------------------------------------
# Dues (adidy)
# ---------------------------------------------------------------------------

@router.get("/dues", response_model=List[DuesResponse])
def list_dues(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(...),
    unpaid_only: bool = False,
    min_amount: Optional[Decimal] = None,
    current_user: User = Depends(require_view_finances),
    db: Session = Depends(get_db)
):
    records = DuesRepository(db).list_for_period(month, year, unpaid_only=unpaid_only, min_amount=min_amount)
    return [DuesResponse.from_model(r) for r in records]


@router.get("/dues/stats", response_model=PeriodStatsResponse)
def dues_stats(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(...),
    current_user: User = Depends(require_view_finances),
    db: Session = Depends(get_db)
):
    stats = DuesRepository(db).period_stats(month, year)
    return PeriodStatsResponse(
        month=stats.month,
        year=stats.year,
        total_records=stats.total_records,
        paid_count=stats.paid_count,
        paid_amount=stats.paid_amount,
        total_amount=stats.total_amount,
        payment_rate=stats.payment_rate,
    )


@router.put("/dues", response_model=DuesResponse)
def upsert_dues(
    payload: DuesUpsert,
    current_user: User = Depends(require_manage_finances),
    db: Session = Depends(get_db)
):
    record = DuesRepository(db).upsert_for_period(
        payload.member_id, payload.month, payload.year,
        amount=payload.amount, paid=payload.paid, paid_on=payload.payment_date,
    )
    return DuesResponse.from_model(record)


@router.patch("/dues/{record_id}/paid", response_model=DuesResponse)
def set_dues_paid(
    record_id: UUID,
    payload: DuesPaidUpdate,
    current_user: User = Depends(require_manage_finances),
    db: Session = Depends(get_db)
):
    return DuesResponse.from_model(DuesRepository(db).set_paid(record_id, payload.paid, payload.payment_date))


@router.patch("/dues/{record_id}/amount", response_model=DuesResponse)
def set_dues_amount(
    record_id: UUID,
    payload: DuesAmountUpdate,
    current_user: User = Depends(require_manage_finances),
    db: Session = Depends(get_db)
):
    return DuesResponse.from_model(DuesRepository(db).set_amount(record_id, payload.amount))


@router.post("/dues/open-period")
def open_dues_period(
    payload: DuesOpenPeriod,
    current_user: User = Depends(require_manage_finances),
    db: Session = Depends(get_db)
):
    amount = payload.amount if payload.amount is not None else settings.DEFAULT_DUES_AMOUNT
    created = DuesRepository(db).open_period(payload.month, payload.year, amount)
    return {"created": created}


@router.delete("/dues/{record_id}")
def delete_dues(
    record_id: UUID,
    current_user: User = Depends(require_manage_finances),
    db: Session = Depends(get_db)
):
    DuesRepository(db).delete(record_id)
    return {"message": "Dues record deleted"}


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def _report_rows(db: Session, start: Optional[date], end: date) -> List[reports.ContributionRow]:
    contributions = ContributionRepository(db).list(start=start, end=end)
    return reports.rows_from_contributions(reversed(contributions))


def _range(period: str, start: Optional[date], end: Optional[date]):
    end = end or date.today()
    if start is None:
        start = reports.period_start(period, end)
    return start, end


@router.get("/reports", response_model=FinancialReport)
def financial_report(
    period: str = "year",
    start: Optional[date] = None,
    end: Optional[date] = None,
    current_user: User = Depends(require_view_finances),
    db: Session = Depends(get_db)
):
    """Totals by type, monthly buckets and top contributors.

    An explicit ``start`` overrides ``period``; custom ranges get one bucket
    per calendar month instead of the rolling twelve months.
    """
    custom = start is not None
    start, end = _range(period, start, end)
    rows = _report_rows(db, start, end)
    summary = reports.summarize_by_type(rows)
    if custom:
        monthly = reports.monthly_buckets_between(rows, start, end)
    else:
        # The chart always covers the trailing twelve months, whatever the period
        window_rows = _report_rows(db, reports.trailing_window_start(end), end)
        monthly = reports.monthly_buckets(window_rows, end)
    return {
        "start": start,
        "end": end,
        "summary": {
            "types": [vars(t) for t in summary.types],
            "total": summary.total,
            "count": summary.count,
            "average": summary.average,
        },
        "monthly": [
            {"year": b.year, "month": b.month, "label": b.label, "tithe": b.tithe,
             "offering": b.offering, "gift": b.gift, "total": b.total}
            for b in monthly
        ],
        "top_contributors": [vars(c) for c in reports.top_contributors(rows)],
    }


@router.get("/reports/csv")
def financial_report_csv(
    period: str = "month",
    start: Optional[date] = None,
    end: Optional[date] = None,
    current_user: User = Depends(require_view_finances),
    db: Session = Depends(get_db)
):
    start, end = _range(period, start, end)
    content = reports.contributions_csv(_report_rows(db, start, end))
    filename = f"rapport_financier_{datetime.now().strftime('%Y-%m-%d')}.csv"
    return Response(
        content=content.encode("utf-8-sig"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/reports/pdf")
def financial_report_pdf(
    period: str = "month",
    start: Optional[date] = None,
    end: Optional[date] = None,
    current_user: User = Depends(require_view_finances),
    db: Session = Depends(get_db)
):
    start, end = _range(period, start, end)
    pdf = reports.contributions_pdf(_report_rows(db, start, end), "Rapport Financier", start, end)
    filename = f"rapport_financier_{datetime.now().strftime('%Y-%m-%d')}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/stats", response_model=FinancialStatsResponse)
def finance_stats(
    current_user: User = Depends(require_view_finances),
    db: Session = Depends(get_db)
):
    return vars(financial_stats(db))
