"""Dashboard and statistics figures."""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from parish.models.finance import Contribution, ContributionType
from parish.models.group import Group
from parish.models.member import Adherent, Sex
from parish.services.reports import shift_month


@dataclass
class NeighborhoodCount:
    name: str
    count: int
    percentage: float


@dataclass
class MemberStats:
    total: int
    new_this_month: int
    men: int
    women: int
    communicants: int
    groups: int
    top_neighborhoods: List[NeighborhoodCount] = field(default_factory=list)
    recent: List[Adherent] = field(default_factory=list)


@dataclass
class FinancialStats:
    year_total: Decimal
    month_total: Decimal
    previous_month_total: Decimal
    growth: float
    average_contribution: Decimal
    participation_rate: float
    tithe_total: Decimal
    offering_total: Decimal
    gift_total: Decimal


def _month_bounds(year: int, month: int):
    next_year, next_month = shift_month(year, month, 1)
    return date(year, month, 1), date(next_year, next_month, 1)


def member_stats(db: Session, today: Optional[date] = None, recent_limit: int = 5) -> MemberStats:
    today = today or date.today()
    month_start, _ = _month_bounds(today.year, today.month)

    total = db.query(func.count(Adherent.id)).scalar() or 0
    new_this_month = db.query(func.count(Adherent.id)).filter(Adherent.registration_date >= month_start).scalar() or 0
    men = db.query(func.count(Adherent.id)).filter(Adherent.sex == Sex.MALE).scalar() or 0
    women = db.query(func.count(Adherent.id)).filter(Adherent.sex == Sex.FEMALE).scalar() or 0
    communicants = db.query(func.count(Adherent.id)).filter(Adherent.communicant.is_(True)).scalar() or 0
    groups = db.query(func.count(Group.id)).scalar() or 0

    neighborhood_rows = (
        db.query(Adherent.neighborhood, func.count(Adherent.id).label("n"))
        .filter(Adherent.neighborhood.isnot(None))
        .group_by(Adherent.neighborhood)
        .order_by(func.count(Adherent.id).desc(), Adherent.neighborhood)
        .limit(5)
        .all()
    )
    top_neighborhoods = [
        NeighborhoodCount(name, n, round(n * 100 / total, 1) if total else 0.0)
        for name, n in neighborhood_rows
    ]
    recent = (
        db.query(Adherent)
        .order_by(Adherent.registration_date.desc(), Adherent.created_at.desc())
        .limit(recent_limit)
        .all()
    )
    return MemberStats(
        total=total,
        new_this_month=new_this_month,
        men=men,
        women=women,
        communicants=communicants,
        groups=groups,
        top_neighborhoods=top_neighborhoods,
        recent=recent,
    )


def _sum(db: Session, *criteria) -> Decimal:
    value = db.query(func.coalesce(func.sum(Contribution.amount), 0)).filter(*criteria).scalar()
    return Decimal(str(value or 0))


def financial_stats(db: Session, today: Optional[date] = None) -> FinancialStats:
    """Current year and month totals.

    Growth compares this month with the previous one and is 0 when the
    previous month had no contributions.
    """
    today = today or date.today()
    month_start, month_end = _month_bounds(today.year, today.month)
    prev_start, _ = _month_bounds(*shift_month(today.year, today.month, -1))
    year_start = date(today.year, 1, 1)
    year_end = date(today.year + 1, 1, 1)

    in_year = (Contribution.contribution_date >= year_start, Contribution.contribution_date < year_end)
    in_month = (Contribution.contribution_date >= month_start, Contribution.contribution_date < month_end)

    year_total = _sum(db, *in_year)
    month_total = _sum(db, *in_month)
    previous_month_total = _sum(db, Contribution.contribution_date >= prev_start, Contribution.contribution_date < month_start)

    growth = 0.0
    if previous_month_total > 0:
        growth = round(float((month_total - previous_month_total) * 100 / previous_month_total), 1)

    count = db.query(func.count(Contribution.id)).scalar() or 0
    overall = _sum(db)
    average = (overall / count).quantize(Decimal("0.01")) if count else Decimal("0")

    members = db.query(func.count(Adherent.id)).scalar() or 0
    contributors = db.query(func.count(distinct(Contribution.member_id))).filter(*in_month).scalar() or 0
    participation = round(contributors * 100 / members, 1) if members else 0.0

    return FinancialStats(
        year_total=year_total,
        month_total=month_total,
        previous_month_total=previous_month_total,
        growth=growth,
        average_contribution=average,
        participation_rate=participation,
        tithe_total=_sum(db, Contribution.type == ContributionType.TITHE, *in_year),
        offering_total=_sum(db, Contribution.type == ContributionType.OFFERING, *in_year),
        gift_total=_sum(db, Contribution.type == ContributionType.GIFT, *in_year),
    )
