# domain.py
from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import date, time
from enum import Enum
from uuid import uuid4


class OvertimeType(str, Enum):
    NO_OT = "No OT"
    WEEKDAY = "Weekday"
    WEEKEND = "Weekend"
    PUBLIC_HOLIDAY = "Public Holiday"
    PUBLIC_HOLIDAY_LEAVE = "Public Holiday (Leave)"


class PublicHolidayOption(str, Enum):
    PAY = "pay"
    LEAVE = "leave"


@dataclass(frozen=True)
class OvertimePolicy:
    """Employer pay rules. Defaults are the rule set currently in force."""
    holiday_hourly_rate: float = 20.0
    weekday_hourly_rate: float = 13.0
    meal_allowance: float = 13.0
    weekend_meal_min_hours: float = 4.0
    standard_work_minutes: int = 510
    break_minutes: int = 30
    minimum_ot_minutes: int = 60
    leave_cap_hours: float = 8.0
    period_pay_cap: float = 1200.0
    period_start_day: int = 29
    period_end_day: int = 28
    currency: str = "RM"

    @property
    def overtime_start_minutes(self) -> int:
        return self.standard_work_minutes + self.break_minutes


DEFAULT_POLICY = OvertimePolicy()


def parse_hhmm(s: str | time | None) -> time | None:
    """'HH:MM' -> time. Empty means "not entered yet"; garbage raises ValueError."""
    if s is None or isinstance(s, time):
        return s
    s = s.strip()
    if not s:
        return None
    try:
        hh, mm = s.split(":")
        return time(int(hh), int(mm))
    except ValueError:
        raise ValueError(f"Invalid time {s!r}, expected HH:MM")


def parse_iso_date(s: str | date) -> date:
    if isinstance(s, date):
        return s
    try:
        return date.fromisoformat(s.strip())
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid date {s!r}, expected YYYY-MM-DD")


def format_hhmm(t: time | None) -> str:
    return t.strftime("%H:%M") if t else ""


@dataclass(frozen=True)
class OvertimeResult:
    """Outcome of classifying one day."""
    type: OvertimeType
    hours: float = 0.0
    meal_allowance: float = 0.0
    ot_pay: float = 0.0
    excess_pay: float = 0.0
    total_pay: float = 0.0
    leave_hours: float | None = None
    breakdown: str = ""

    def to_dict(self) -> dict:
        d = {
            "type": self.type.value,
            "hours": self.hours,
            "mealAllowance": self.meal_allowance,
            "otPay": self.ot_pay,
            "excessPay": self.excess_pay,
            "totalPay": self.total_pay,
            "breakdown": self.breakdown,
        }
        if self.leave_hours is not None:
            d["leaveHours"] = self.leave_hours
        return d


@dataclass(frozen=True)
class TimeEntry:
    """One worked day as entered by the user or imported."""
    date: date
    clock_in: time | None = None
    clock_out: time | None = None
    is_public_holiday: bool = False
    public_holiday_option: PublicHolidayOption = PublicHolidayOption.PAY
    id: str = field(default_factory=lambda: uuid4().hex)
    result: OvertimeResult | None = None

    @property
    def is_weekend(self) -> bool:
        return self.date.weekday() >= 5

    @property
    def date_str(self) -> str:
        return self.date.isoformat()

    def with_result(self, result: OvertimeResult | None) -> TimeEntry:
        return replace(self, result=result)

    @classmethod
    def from_dict(cls, data: dict) -> TimeEntry:
        """Builds an entry from the camelCase form/import payload. Raises ValueError on bad input."""
        option = data.get("publicHolidayOption") or PublicHolidayOption.PAY
        kwargs = {}
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        return cls(
            date=parse_iso_date(data["date"]),
            clock_in=parse_hhmm(data.get("clockIn")),
            clock_out=parse_hhmm(data.get("clockOut")),
            is_public_holiday=bool(data.get("isPublicHoliday", False)),
            public_holiday_option=PublicHolidayOption(option),
            **kwargs,
        )


@dataclass(frozen=True)
class PayslipPeriod:
    """Totals for the 29th-to-28th window of a selected month. Never persisted."""
    start_date: date
    end_date: date
    total_hours: float = 0.0
    total_pay: float = 0.0
    capped_pay: float = 0.0
    count: int = 0

    @property
    def start_date_str(self) -> str:
        return self.start_date.isoformat()

    @property
    def end_date_str(self) -> str:
        return self.end_date.isoformat()

    def contains(self, d: date) -> bool:
        return self.start_date <= d <= self.end_date
