import csv
import uuid
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from parish.core.errors import ValidationError
from parish.models import ContributionType
from parish.services.reports import (
    ContributionRow,
    contributions_csv,
    contributions_pdf,
    format_ariary,
    monthly_buckets,
    monthly_buckets_between,
    period_start,
    shift_month,
    summarize_by_type,
    top_contributors,
    trailing_window_start,
)

JEAN = uuid.uuid4()
LOVA = uuid.uuid4()


def _row(amount, type, when, member_id=JEAN, surname="Rakoto", given_name="Jean"):
    return ContributionRow(member_id, surname, given_name, Decimal(str(amount)), type, when)


@pytest.fixture
def rows():
    return [
        _row(10000, ContributionType.TITHE, date(2024, 1, 7)),
        _row(2500, ContributionType.OFFERING, date(2024, 1, 14)),
        _row(5000, ContributionType.GIFT, date(2024, 3, 3), LOVA, "Rabe", "Lova"),
        _row(3000, ContributionType.TITHE, date(2024, 3, 10), LOVA, "Rabe", "Lova"),
    ]


def test_summary_by_type(rows):
    summary = summarize_by_type(rows)
    assert summary.total == Decimal("20500")
    assert summary.count == 4
    assert summary.amount_of(ContributionType.TITHE) == Decimal("13000")
    assert summary.average == Decimal("5125.00")
    assert [t.label for t in summary.types] == ["Dîme", "Offrande", "Don"]
    assert sum(t.percentage for t in summary.types) == pytest.approx(100, abs=0.02)


def test_empty_summary_has_zero_percentages():
    summary = summarize_by_type([])
    assert summary.total == 0
    assert summary.average == 0
    assert [t.percentage for t in summary.types] == [0.0, 0.0, 0.0]


def test_shift_month_wraps_years():
    assert shift_month(2024, 1, -1) == (2023, 12)
    assert shift_month(2024, 12, 1) == (2025, 1)
    assert shift_month(2024, 3, -11) == (2023, 4)


def test_twelve_monthly_buckets(rows):
    buckets = monthly_buckets(rows, today=date(2024, 3, 20))
    assert len(buckets) == 12
    assert (buckets[0].year, buckets[0].month) == (2023, 4)
    assert (buckets[-1].year, buckets[-1].month) == (2024, 3)
    assert buckets[-1].label == "mars 24"
    assert buckets[-1].tithe == Decimal("3000")
    assert buckets[-1].gift == Decimal("5000")
    assert buckets[-3].total == Decimal("12500")
    assert buckets[-2].total == 0


def test_twelve_buckets_even_without_rows():
    assert len(monthly_buckets([], today=date(2024, 3, 20))) == 12


def test_buckets_between(rows):
    buckets = monthly_buckets_between(rows, date(2024, 1, 10), date(2024, 3, 5))
    assert [(b.year, b.month) for b in buckets] == [(2024, 1), (2024, 2), (2024, 3)]
    assert buckets[0].total == Decimal("2500")
    assert buckets[2].total == Decimal("5000")
    with pytest.raises(ValidationError):
        monthly_buckets_between(rows, date(2024, 3, 1), date(2024, 1, 1))


def test_top_contributors(rows):
    ranking = top_contributors(rows)
    assert [(c.member_name, c.total, c.count) for c in ranking] == [
        ("Rakoto Jean", Decimal("12500"), 2),
        ("Rabe Lova", Decimal("8000"), 2),
    ]
    assert len(top_contributors(rows, limit=1)) == 1


def test_top_contributors_ties_keep_first_seen():
    tied = [
        _row(1000, ContributionType.GIFT, date(2024, 1, 1), LOVA, "Rabe", "Lova"),
        _row(1000, ContributionType.GIFT, date(2024, 1, 2)),
    ]
    assert [c.member_id for c in top_contributors(tied)] == [LOVA, JEAN]


def test_period_start():
    today = date(2024, 3, 31)
    assert period_start("month", today) == date(2024, 2, 29)
    assert period_start("trimester", today) == date(2023, 12, 31)
    assert period_start("year", today) == date(2023, 3, 31)
    assert period_start("all", today) is None
    assert period_start("year", date(2024, 2, 29)) == date(2023, 2, 28)
    with pytest.raises(ValidationError):
        period_start("decade", today)


def test_format_ariary():
    assert format_ariary(Decimal("1234567.40")) == "1 234 567 Ar"
    assert format_ariary(0) == "0 Ar"


def test_csv_export(rows):
    lines = list(csv.reader(StringIO(contributions_csv(rows))))
    assert lines[0] == ["Date", "Nom", "Prénom", "Type", "Montant"]
    assert lines[1] == ["2024-01-07", "Rakoto", "Jean", "Dîme", "10000.00"]
    assert lines[5] == []
    assert lines[6] == ["Résumé"]
    assert lines[7] == ["Total Dîmes", "13000.00"]
    assert lines[-1] == ["Total Général", "20500.00"]


def test_pdf_export(rows):
    pdf = contributions_pdf(rows, start=date(2024, 1, 1), end=date(2024, 3, 31))
    assert pdf.startswith(b"%PDF")
    assert contributions_pdf([]).startswith(b"%PDF")


def test_trailing_window_start():
    assert trailing_window_start(date(2024, 3, 20)) == date(2023, 4, 1)
    assert trailing_window_start(date(2024, 12, 31)) == date(2024, 1, 1)
