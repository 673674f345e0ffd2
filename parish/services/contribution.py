import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import joinedload

from parish.core.errors import ValidationError
from parish.models.finance import Contribution, ContributionType
from parish.models.member import Adherent
from parish.services.repository import Repository

logger = logging.getLogger(__name__)


def parse_contribution_type(value) -> ContributionType:
    if isinstance(value, ContributionType):
        return value
    try:
        return ContributionType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in ContributionType)
        raise ValidationError(f"Invalid contribution type: {value!r} (expected one of {allowed})")


def _positive_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Amount must be a number")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    return amount


class ContributionRepository(Repository[Contribution]):
    model = Contribution
    entity_name = "Contribution"

    def query(self, member_id: Optional[UUID] = None, type: Optional[ContributionType] = None,
              start: Optional[date] = None, end: Optional[date] = None):
        q = self.db.query(Contribution).options(joinedload(Contribution.member))
        if member_id is not None:
            q = q.filter(Contribution.member_id == member_id)
        if type is not None:
            q = q.filter(Contribution.type == parse_contribution_type(type))
        if start is not None:
            q = q.filter(Contribution.contribution_date >= start)
        if end is not None:
            q = q.filter(Contribution.contribution_date <= end)
        return q.order_by(Contribution.contribution_date.desc(), Contribution.created_at.desc())

    def validate_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        member_id = data.get("member_id")
        if member_id is None:
            raise ValidationError("An adherent is required")
        if self.db.get(Adherent, member_id) is None:
            raise ValidationError("Adherent not found")
        if data.get("type") is None:
            raise ValidationError("Contribution type is required")
        data["type"] = parse_contribution_type(data["type"])
        if data.get("amount") is None:
            raise ValidationError("Amount is required")
        data["amount"] = _positive_amount(data["amount"])
        if data.get("contribution_date") is None:
            data["contribution_date"] = date.today()
        return data

    def validate_update(self, entity: Contribution, patch: Dict[str, Any]) -> Dict[str, Any]:
        if "member_id" in patch:
            if patch["member_id"] is None or self.db.get(Adherent, patch["member_id"]) is None:
                raise ValidationError("Adherent not found")
        if "type" in patch:
            patch["type"] = parse_contribution_type(patch["type"])
        if "amount" in patch:
            patch["amount"] = _positive_amount(patch["amount"])
        if "contribution_date" in patch and patch["contribution_date"] is None:
            del patch["contribution_date"]
        return patch
