from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from parish.models.finance import ContributionType


class TypeTotalResponse(BaseModel):
    type: ContributionType
    label: str
    amount: Decimal
    percentage: float


class TypeSummaryResponse(BaseModel):
    types: List[TypeTotalResponse]
    total: Decimal
    count: int
    average: Decimal


class MonthlyBucketResponse(BaseModel):
    year: int
    month: int
    label: str
    tithe: Decimal
    offering: Decimal
    gift: Decimal
    total: Decimal


class ContributorResponse(BaseModel):
    member_id: UUID
    member_name: str
    total: Decimal
    count: int


class FinancialReport(BaseModel):
    start: Optional[date] = None
    end: date
    summary: TypeSummaryResponse
    monthly: List[MonthlyBucketResponse]
    top_contributors: List[ContributorResponse]


class NeighborhoodResponse(BaseModel):
    name: str
    count: int
    percentage: float


class RecentAdherent(BaseModel):
    id: UUID
    surname: str
    given_name: str
    registration_date: date

    class Config:
        from_attributes = True


class DashboardResponse(BaseModel):
    total_members: int
    new_this_month: int
    men: int
    women: int
    communicants: int
    groups: int
    top_neighborhoods: List[NeighborhoodResponse]
    recent_members: List[RecentAdherent]


class FinancialStatsResponse(BaseModel):
    year_total: Decimal
    month_total: Decimal
    previous_month_total: Decimal
    growth: float
    average_contribution: Decimal
    participation_rate: float
    tithe_total: Decimal
    offering_total: Decimal
    gift_total: Decimal


class NotificationResponse(BaseModel):
    id: UUID
    type: str
    title: str
    message: str
    timestamp: datetime
    read: bool
