"""Monthly dues (adidy): one record per member and period."""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func

from parish.core.errors import NotFoundError, ValidationError
from parish.models.finance import DuesRecord
from parish.models.member import Adherent
from parish.services.repository import Repository

logger = logging.getLogger(__name__)


@dataclass
class PeriodStats:
    month: int
    year: int
    total_records: int
    paid_count: int
    paid_amount: Decimal
    total_amount: Decimal

    @property
    def payment_rate(self) -> float:
        if self.total_records == 0:
            return 0.0
        return round(self.paid_count * 100 / self.total_records, 2)


def validate_period(month: int, year: int) -> None:
    if not 1 <= int(month) <= 12:
        raise ValidationError("Month must be between 1 and 12")
    if not 1900 <= int(year) <= 9999:
        raise ValidationError("Invalid year")


def _amount(value) -> Decimal:
    amount = Decimal(str(value))
    if amount < 0:
        raise ValidationError("Dues amount cannot be negative")
    return amount


class DuesRepository(Repository[DuesRecord]):
    model = DuesRecord
    entity_name = "Dues record"

    def query(self, month: Optional[int] = None, year: Optional[int] = None,
              member_id: Optional[UUID] = None, unpaid_only: bool = False,
              min_amount=None):
        q = self.db.query(DuesRecord).join(Adherent, DuesRecord.member_id == Adherent.id)
        if month is not None:
            q = q.filter(DuesRecord.month == month)
        if year is not None:
            q = q.filter(DuesRecord.year == year)
        if member_id is not None:
            q = q.filter(DuesRecord.member_id == member_id)
        if unpaid_only:
            q = q.filter(DuesRecord.paid.is_(False))
        if min_amount is not None:
            q = q.filter(DuesRecord.amount >= min_amount)
        return q.order_by(DuesRecord.year.desc(), DuesRecord.month.desc(), Adherent.surname, Adherent.given_name)

    def list_for_period(self, month: int, year: int, unpaid_only: bool = False, min_amount=None) -> List[DuesRecord]:
        validate_period(month, year)
        return self.list(month=month, year=year, unpaid_only=unpaid_only, min_amount=min_amount)

    def find(self, member_id: UUID, month: int, year: int) -> Optional[DuesRecord]:
        with self._store("load"):
            return self.db.query(DuesRecord).filter(
                DuesRecord.member_id == member_id,
                DuesRecord.month == month,
                DuesRecord.year == year,
            ).first()

    def validate_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        validate_period(data.get("month") or 0, data.get("year") or 0)
        if data.get("member_id") is None or self.db.get(Adherent, data["member_id"]) is None:
            raise ValidationError("A valid adherent is required")
        if data.get("amount") is not None:
            data["amount"] = _amount(data["amount"])
        if self.find(data["member_id"], data["month"], data["year"]) is not None:
            raise ValidationError("Dues already recorded for this adherent and period")
        return data

    def validate_update(self, entity: DuesRecord, patch: Dict[str, Any]) -> Dict[str, Any]:
        for key in ("member_id", "month", "year"):
            patch.pop(key, None)
        if patch.get("amount") is not None:
            patch["amount"] = _amount(patch["amount"])
        if "paid" in patch:
            self._apply_paid(patch, bool(patch["paid"]), patch.get("payment_date"))
        return patch

    @staticmethod
    def _apply_paid(values: Dict[str, Any], paid: bool, paid_on: Optional[date]) -> None:
        values["paid"] = paid
        values["payment_date"] = (paid_on or date.today()) if paid else None

    def upsert_for_period(self, member_id: UUID, month: int, year: int, amount=None,
                          paid: Optional[bool] = None, paid_on: Optional[date] = None) -> DuesRecord:
        """Create or update the member's record for the period.

        ``amount`` and ``paid`` are applied independently; leaving one as
        None keeps the stored value.
        """
        validate_period(month, year)
        if self.db.get(Adherent, member_id) is None:
            raise NotFoundError("Adherent not found")
        values: Dict[str, Any] = {}
        if amount is not None:
            values["amount"] = _amount(amount)
        if paid is not None:
            self._apply_paid(values, paid, paid_on)

        record = self.find(member_id, month, year)
        with self._store("save"):
            if record is None:
                record = DuesRecord(member_id=member_id, month=month, year=year, **values)
                self.db.add(record)
            else:
                for key, value in values.items():
                    setattr(record, key, value)
            self.db.commit()
            self.db.refresh(record)
        return record

    def set_paid(self, record_id: UUID, paid: bool, paid_on: Optional[date] = None) -> DuesRecord:
        values: Dict[str, Any] = {}
        self._apply_paid(values, paid, paid_on)
        return self.update(record_id, values)

    def set_amount(self, record_id: UUID, amount) -> DuesRecord:
        return self.update(record_id, {"amount": amount})

    def period_stats(self, month: int, year: int) -> PeriodStats:
        validate_period(month, year)
        with self._store("summarize"):
            total_records, total_amount = self.db.query(
                func.count(DuesRecord.id), func.coalesce(func.sum(DuesRecord.amount), 0)
            ).filter(DuesRecord.month == month, DuesRecord.year == year).one()
            paid_count, paid_amount = self.db.query(
                func.count(DuesRecord.id), func.coalesce(func.sum(DuesRecord.amount), 0)
            ).filter(DuesRecord.month == month, DuesRecord.year == year, DuesRecord.paid.is_(True)).one()
        return PeriodStats(
            month=month,
            year=year,
            total_records=total_records,
            paid_count=paid_count,
            paid_amount=Decimal(str(paid_amount)),
            total_amount=Decimal(str(total_amount)),
        )

    def open_period(self, month: int, year: int, amount=0) -> int:
        """Create unpaid records for every communicant member that has none. Returns the count created."""
        validate_period(month, year)
        amount = _amount(amount)
        with self._store("open period"):
            existing = {
                member_id for (member_id,) in self.db.query(DuesRecord.member_id).filter(
                    DuesRecord.month == month, DuesRecord.year == year
                )
            }
            members = self.db.query(Adherent.id).filter(Adherent.communicant.is_(True)).all()
            created = 0
            for (member_id,) in members:
                if member_id in existing:
                    continue
                self.db.add(DuesRecord(member_id=member_id, month=month, year=year, amount=amount, paid=False))
                created += 1
            self.db.commit()
        logger.info("Opened dues period %02d/%d: %d record(s) created", month, year, created)
        return created
