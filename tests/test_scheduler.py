from datetime import date

from parish.services import scheduler
from parish.services.dues import DuesRepository


def test_open_current_period_job(db, make_member):
    make_member(communicant=True)
    assert scheduler.open_current_dues_period(date(2024, 5, 1)) == 1
    assert scheduler.open_current_dues_period(date(2024, 5, 1)) == 0
    assert len(DuesRepository(db).list_for_period(5, 2024)) == 1


def test_status_when_not_running():
    assert scheduler.get_scheduler_status() == {"running": False, "jobs": []}
