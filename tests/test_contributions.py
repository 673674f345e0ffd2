import uuid
from datetime import date
from decimal import Decimal

import pytest

from parish.core.errors import ValidationError
from parish.models import ContributionType, Sex
from parish.services.contribution import ContributionRepository, parse_contribution_type


def test_parse_contribution_type():
    assert parse_contribution_type("dime") is ContributionType.TITHE
    assert parse_contribution_type(ContributionType.GIFT) is ContributionType.GIFT
    with pytest.raises(ValidationError):
        parse_contribution_type("aumone")


@pytest.mark.parametrize("amount", [0, -10, "abc"])
def test_amount_must_be_positive(db, make_member, amount):
    member = make_member()
    with pytest.raises(ValidationError):
        ContributionRepository(db).create({"member_id": member.id, "type": "don", "amount": amount})


def test_create_requires_existing_member(db):
    with pytest.raises(ValidationError):
        ContributionRepository(db).create({"member_id": uuid.uuid4(), "type": "don", "amount": 1000})


def test_create_defaults_date_to_today(db, make_member):
    member = make_member()
    contribution = ContributionRepository(db).create({"member_id": member.id, "type": "offrande", "amount": "2500"})
    assert contribution.contribution_date == date.today()
    assert contribution.amount == Decimal("2500")
    assert contribution.type is ContributionType.OFFERING


def test_list_filters_and_newest_first(db, make_member):
    jean = make_member("Rakoto", "Jean")
    lova = make_member("Rabe", "Lova", Sex.FEMALE)
    repo = ContributionRepository(db)
    repo.create({"member_id": jean.id, "type": "dime", "amount": 10000, "contribution_date": date(2024, 1, 7)})
    repo.create({"member_id": lova.id, "type": "don", "amount": 5000, "contribution_date": date(2024, 2, 4)})
    repo.create({"member_id": jean.id, "type": "offrande", "amount": 2000, "contribution_date": date(2024, 3, 3)})

    assert [c.contribution_date.month for c in repo.list()] == [3, 2, 1]
    assert [c.amount for c in repo.list(member_id=jean.id)] == [Decimal("2000"), Decimal("10000")]
    assert [c.member.surname for c in repo.list(type="don")] == ["Rabe"]
    between = repo.list(start=date(2024, 1, 15), end=date(2024, 2, 28))
    assert [c.member_id for c in between] == [lova.id]


def test_update_validates_patch(db, make_member):
    member = make_member()
    repo = ContributionRepository(db)
    contribution = repo.create({"member_id": member.id, "type": "dime", "amount": 1000})
    updated = repo.update(contribution.id, {"amount": 1500, "type": "don"})
    assert updated.amount == Decimal("1500")
    assert updated.type is ContributionType.GIFT
    with pytest.raises(ValidationError):
        repo.update(contribution.id, {"amount": 0})
    with pytest.raises(ValidationError):
        repo.update(contribution.id, {"member_id": uuid.uuid4()})
