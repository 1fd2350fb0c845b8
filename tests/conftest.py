import pytest
from datetime import date, time

from domain import OvertimeResult, OvertimeType, TimeEntry
from repository import TimeEntryRepository
from services import OvertimeCalculator

# 2025-01-06 is a Monday
MONDAY = date(2025, 1, 6)
SATURDAY = date(2025, 1, 4)
SUNDAY = date(2025, 1, 5)


def make_entry(d=MONDAY, clock_in="08:00", clock_out="17:00", holiday=False, option="pay"):
    return TimeEntry.from_dict({
        "date": d.isoformat(),
        "clockIn": clock_in,
        "clockOut": clock_out,
        "isPublicHoliday": holiday,
        "publicHolidayOption": option,
    })


def paid_entry(d, total_pay, hours=1.0):
    return TimeEntry(
        date=d,
        clock_in=time(8, 0),
        clock_out=time(18, 0),
        result=OvertimeResult(type=OvertimeType.WEEKDAY, hours=hours, total_pay=total_pay),
    )


@pytest.fixture
def calculator():
    return OvertimeCalculator()


@pytest.fixture
def repo(tmp_path):
    return TimeEntryRepository(f"sqlite:///{(tmp_path / 'entries.db').as_posix()}")


@pytest.fixture
def classified(calculator):
    def _make(**kwargs):
        return calculator.classify_entry(make_entry(**kwargs))
    return _make
