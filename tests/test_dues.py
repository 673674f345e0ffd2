import uuid
from datetime import date
from decimal import Decimal

import pytest

from parish.core.errors import NotFoundError, ValidationError
from parish.models import DuesRecord, Sex
from parish.services.dues import DuesRepository, PeriodStats, validate_period


def test_validate_period_bounds():
    validate_period(1, 2024)
    validate_period(12, 2024)
    with pytest.raises(ValidationError):
        validate_period(0, 2024)
    with pytest.raises(ValidationError):
        validate_period(13, 2024)


def test_paid_toggle_keeps_single_record(db, make_member):
    member = make_member()
    repo = DuesRepository(db)

    first = repo.upsert_for_period(member.id, 3, 2024, amount=5000, paid=True, paid_on=date(2024, 3, 10))
    assert first.paid is True
    assert first.payment_date == date(2024, 3, 10)

    second = repo.upsert_for_period(member.id, 3, 2024, paid=False)
    assert second.id == first.id
    assert second.paid is False
    assert second.payment_date is None
    assert second.amount == Decimal("5000")
    assert db.query(DuesRecord).count() == 1


def test_paid_without_date_uses_today(db, make_member):
    member = make_member()
    record = DuesRepository(db).upsert_for_period(member.id, 5, 2024, paid=True)
    assert record.payment_date == date.today()


def test_upsert_rejects_unknown_member_and_negative_amount(db, make_member):
    repo = DuesRepository(db)
    with pytest.raises(NotFoundError):
        repo.upsert_for_period(uuid.uuid4(), 1, 2024, amount=1000)
    member = make_member()
    with pytest.raises(ValidationError):
        repo.upsert_for_period(member.id, 1, 2024, amount=-1)
    with pytest.raises(ValidationError):
        repo.upsert_for_period(member.id, 14, 2024, amount=1000)


def test_create_refuses_duplicate_period(db, make_member):
    member = make_member()
    repo = DuesRepository(db)
    repo.create({"member_id": member.id, "month": 4, "year": 2024, "amount": 2000})
    with pytest.raises(ValidationError):
        repo.create({"member_id": member.id, "month": 4, "year": 2024, "amount": 3000})


def test_set_paid_and_amount(db, make_member):
    member = make_member()
    repo = DuesRepository(db)
    record = repo.upsert_for_period(member.id, 6, 2024, amount=1000)
    assert record.paid is False

    record = repo.set_paid(record.id, True, date(2024, 6, 2))
    assert record.payment_date == date(2024, 6, 2)
    record = repo.set_amount(record.id, 2500)
    assert record.amount == Decimal("2500")
    assert record.paid is True


def test_update_cannot_move_record_to_other_period(db, make_member):
    member = make_member()
    repo = DuesRepository(db)
    record = repo.upsert_for_period(member.id, 6, 2024, amount=1000)
    record = repo.update(record.id, {"month": 7, "paid": True})
    assert record.month == 6
    assert record.paid is True


def test_list_for_period_ordering_and_filters(db, make_member):
    rakoto = make_member("Rakoto", "Jean")
    andria = make_member("Andria", "Lova", Sex.FEMALE)
    repo = DuesRepository(db)
    repo.upsert_for_period(rakoto.id, 2, 2024, amount=1000, paid=True)
    repo.upsert_for_period(andria.id, 2, 2024, amount=3000)
    repo.upsert_for_period(andria.id, 3, 2024, amount=3000)

    records = repo.list_for_period(2, 2024)
    assert [r.member_id for r in records] == [andria.id, rakoto.id]
    assert [r.member_id for r in repo.list_for_period(2, 2024, unpaid_only=True)] == [andria.id]
    assert [r.member_id for r in repo.list_for_period(2, 2024, min_amount=2000)] == [andria.id]


def test_period_stats(db, make_member):
    a = make_member("Rakoto", "Jean")
    b = make_member("Rabe", "Lova", Sex.FEMALE)
    c = make_member("Andria", "Paul")
    repo = DuesRepository(db)
    repo.upsert_for_period(a.id, 1, 2024, amount=1000, paid=True)
    repo.upsert_for_period(b.id, 1, 2024, amount=2000)
    repo.upsert_for_period(c.id, 1, 2024, amount=3000)

    stats = repo.period_stats(1, 2024)
    assert stats.total_records == 3
    assert stats.paid_count == 1
    assert stats.paid_amount == Decimal("1000")
    assert stats.total_amount == Decimal("6000")
    assert stats.payment_rate == 33.33


def test_empty_period_rate_is_zero():
    stats = PeriodStats(month=1, year=2024, total_records=0, paid_count=0,
                        paid_amount=Decimal("0"), total_amount=Decimal("0"))
    assert stats.payment_rate == 0.0


def test_open_period_only_for_communicants_without_record(db, make_member):
    jean = make_member("Rakoto", "Jean", communicant=True)
    make_member("Rabe", "Lova", Sex.FEMALE, communicant=True)
    make_member("Andria", "Paul", communicant=False)
    repo = DuesRepository(db)
    repo.upsert_for_period(jean.id, 9, 2024, amount=5000, paid=True)

    assert repo.open_period(9, 2024, amount=2000) == 1
    assert repo.open_period(9, 2024, amount=2000) == 0
    records = repo.list_for_period(9, 2024)
    assert len(records) == 2
    assert {r.paid for r in records} == {True, False}
