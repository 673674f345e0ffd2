from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from parish.models.finance import ContributionType


class ContributionCreate(BaseModel):
    member_id: UUID
    amount: Decimal
    type: ContributionType
    contribution_date: Optional[date] = None


class ContributionUpdate(BaseModel):
    member_id: Optional[UUID] = None
    amount: Optional[Decimal] = None
    type: Optional[ContributionType] = None
    contribution_date: Optional[date] = None


class ContributionResponse(BaseModel):
    id: UUID
    member_id: UUID
    member_name: Optional[str] = None
    amount: Decimal
    type: ContributionType
    contribution_date: date
    created_at: datetime

    @classmethod
    def from_model(cls, obj):
        return cls(
            id=obj.id,
            member_id=obj.member_id,
            member_name=obj.member.full_name if obj.member else None,
            amount=obj.amount,
            type=obj.type,
            contribution_date=obj.contribution_date,
            created_at=obj.created_at,
        )

    class Config:
        from_attributes = True


class DuesUpsert(BaseModel):
    member_id: UUID
    month: int = Field(ge=1, le=12)
    year: int
    amount: Optional[Decimal] = Field(None, ge=0)
    paid: Optional[bool] = None
    payment_date: Optional[date] = None


class DuesPaidUpdate(BaseModel):
    paid: bool
    payment_date: Optional[date] = None


class DuesAmountUpdate(BaseModel):
    amount: Decimal = Field(ge=0)


class DuesOpenPeriod(BaseModel):
    month: int = Field(ge=1, le=12)
    year: int
    amount: Optional[Decimal] = Field(None, ge=0)


class DuesResponse(BaseModel):
    id: UUID
    member_id: UUID
    member_name: Optional[str] = None
    month: int
    year: int
    amount: Decimal
    paid: bool
    payment_date: Optional[date] = None

    @classmethod
    def from_model(cls, obj):
        return cls(
            id=obj.id,
            member_id=obj.member_id,
            member_name=obj.member.full_name if obj.member else None,
            month=obj.month,
            year=obj.year,
            amount=obj.amount,
            paid=obj.paid,
            payment_date=obj.payment_date,
        )

    class Config:
        from_attributes = True


class PeriodStatsResponse(BaseModel):
    month: int
    year: int
    total_records: int
    paid_count: int
    paid_amount: Decimal
    total_amount: Decimal
    payment_rate: float
