# services.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Tuple

from domain import (
    DEFAULT_POLICY,
    OvertimePolicy,
    OvertimeResult,
    OvertimeType,
    PayslipPeriod,
    PublicHolidayOption,
    TimeEntry,
    format_hhmm,
    parse_hhmm,
)

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def elapsed_minutes(clock_in: time, clock_out: time) -> int:
    """Minutes from clock-in to clock-out. Clock-out before clock-in means the shift crossed midnight."""
    total = (clock_out.hour * 60 + clock_out.minute) - (clock_in.hour * 60 + clock_in.minute)
    if total < 0:
        total += MINUTES_PER_DAY
    return total


def _shift_hhmm(clock_in: str | time | None, minutes: int) -> str:
    t = parse_hhmm(clock_in)
    if t is None:
        return ""
    total = (t.hour * 60 + t.minute + minutes) % MINUTES_PER_DAY
    return format_hhmm(time(*divmod(total, 60)))


class OvertimeCalculator:
    """Business rules for classifying a worked day into an overtime category."""
    def __init__(self, policy: OvertimePolicy = DEFAULT_POLICY):
        self.policy = policy

    def minimum_clock_out_time(self, clock_in: str | time | None) -> str:
        """Earliest clock-out that completes the standard day (advisory only)."""
        return _shift_hhmm(clock_in, self.policy.standard_work_minutes)

    def overtime_start_time(self, clock_in: str | time | None) -> str:
        """Time from which overtime starts counting, after the standard day and the break."""
        return _shift_hhmm(clock_in, self.policy.overtime_start_minutes)

    def classify(self, entry: TimeEntry) -> OvertimeResult | None:
        """
        Returns the overtime result for one day, or None while either clock time is missing.
        Weekends and public holidays count the whole shift; weekdays only what lies
        beyond the standard day plus break, and only once the minimum claim is reached.
        """
        if entry.clock_in is None or entry.clock_out is None:
            return None
        minutes = elapsed_minutes(entry.clock_in, entry.clock_out)
        if entry.is_weekend or entry.is_public_holiday:
            result = self._holiday_result(entry, minutes)
        else:
            result = self._weekday_result(minutes)
        logger.debug("Classified %s (%d min) as %s", entry.date_str, minutes, result.type.value)
        return result

    def classify_entry(self, entry: TimeEntry) -> TimeEntry:
        """Copy of the entry with its result attached."""
        return entry.with_result(self.classify(entry))

    def _holiday_result(self, entry: TimeEntry, minutes: int) -> OvertimeResult:
        p = self.policy
        whole, rest = divmod(minutes, 60)
        hours = whole + rest / 60 if rest else float(whole)
        meal = p.meal_allowance if minutes / 60 >= p.weekend_meal_min_hours else 0.0

        if entry.is_public_holiday and entry.public_holiday_option == PublicHolidayOption.LEAVE:
            leave_hours = min(p.leave_cap_hours, hours)
            excess_pay = max(0.0, hours - p.leave_cap_hours) * p.holiday_hourly_rate
            return OvertimeResult(
                type=OvertimeType.PUBLIC_HOLIDAY_LEAVE,
                hours=hours,
                leave_hours=leave_hours,
                meal_allowance=meal,
                excess_pay=excess_pay,
                total_pay=excess_pay + meal,
                breakdown=f"{leave_hours:.2f} hours leave",
            )

        ot_pay = hours * p.holiday_hourly_rate
        return OvertimeResult(
            type=OvertimeType.PUBLIC_HOLIDAY if entry.is_public_holiday else OvertimeType.WEEKEND,
            hours=hours,
            meal_allowance=meal,
            ot_pay=ot_pay,
            total_pay=ot_pay + meal,
            breakdown=f"{hours:.2f}h × {p.currency}{p.holiday_hourly_rate:g}",
        )

    def _weekday_result(self, minutes: int) -> OvertimeResult:
        p = self.policy
        if minutes <= p.standard_work_minutes:
            return OvertimeResult(OvertimeType.NO_OT, breakdown=f"Less than {p.standard_work_minutes / 60:g} hours")
        if minutes <= p.overtime_start_minutes:
            return OvertimeResult(OvertimeType.NO_OT, breakdown=f"Less than {p.overtime_start_minutes / 60:g} hours")

        ot_minutes = minutes - p.overtime_start_minutes
        # Below the minimum nothing is claimable, not even the first minutes.
        if ot_minutes < p.minimum_ot_minutes:
            return OvertimeResult(
                OvertimeType.NO_OT,
                breakdown=f"Less than {p.minimum_ot_minutes / 60:g} hour OT (minimum required)",
            )

        hours = ot_minutes / 60
        ot_pay = hours * p.weekday_hourly_rate
        return OvertimeResult(
            type=OvertimeType.WEEKDAY,
            hours=hours,
            meal_allowance=p.meal_allowance,
            ot_pay=ot_pay,
            total_pay=ot_pay + p.meal_allowance,
            breakdown=(
                f"{hours:.2f}h × {p.currency}{p.weekday_hourly_rate:g}"
                f" + {p.currency}{p.meal_allowance:g} meal"
            ),
        )


def parse_month(selected_month: str | Tuple[int, int]) -> Tuple[int, int]:
    """'YYYY-MM' or (year, month) -> (year, month)."""
    if isinstance(selected_month, str):
        try:
            y, m = selected_month.strip().split("-")
            year, month = int(y), int(m)
        except ValueError:
            raise ValueError(f"Invalid month {selected_month!r}, expected YYYY-MM")
    else:
        year, month = selected_month
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month {selected_month!r}")
    return year, month


class PayslipAggregator:
    """Sums classified entries over the payslip period of a selected month."""
    def __init__(self, policy: OvertimePolicy = DEFAULT_POLICY):
        self.policy = policy

    def window(self, selected_month: str | Tuple[int, int]) -> Tuple[date, date]:
        """
        (29th of the previous month, 28th of the selected month), both inclusive.
        When the previous month has no 29th (February outside leap years) the
        period starts on the 1st of the selected month.
        """
        year, month = parse_month(selected_month)
        start_year, start_month = (year - 1, 12) if month == 1 else (year, month - 1)
        try:
            start = date(start_year, start_month, self.policy.period_start_day)
        except ValueError:
            start = date(year, month, 1)
        return start, date(year, month, self.policy.period_end_day)

    def entries_in_period(self, entries: Iterable[TimeEntry], selected_month: str | Tuple[int, int]) -> List[TimeEntry]:
        start, end = self.window(selected_month)
        return [e for e in entries if start <= e.date <= end]

    def summarize(self, entries: Iterable[TimeEntry], selected_month: str | Tuple[int, int]) -> PayslipPeriod:
        start, end = self.window(selected_month)
        filtered = [e for e in entries if start <= e.date <= end]
        total_pay = sum(e.result.total_pay if e.result else 0.0 for e in filtered)
        total_hours = sum(e.result.hours if e.result else 0.0 for e in filtered)
        return PayslipPeriod(
            start_date=start,
            end_date=end,
            total_hours=total_hours,
            total_pay=total_pay,
            capped_pay=min(total_pay, self.policy.period_pay_cap),
            count=len(filtered),
        )


@dataclass(frozen=True)
class Countdown:
    is_overtime: bool
    hours: int
    minutes: int
    seconds: int
    finish_time: datetime


def shift_countdown(clock_in: str | time | None, now: datetime, policy: OvertimePolicy = DEFAULT_POLICY) -> Countdown | None:
    """Time left until today's standard day ends, or time past it once exceeded."""
    t = parse_hhmm(clock_in)
    if t is None:
        return None
    finish = datetime.combine(now.date(), t) + timedelta(minutes=policy.standard_work_minutes)
    diff = (finish - now).total_seconds()
    is_overtime = diff < 0
    h, rest = divmod(int(abs(diff)), 3600)
    m, s = divmod(rest, 60)
    return Countdown(is_overtime=is_overtime, hours=h, minutes=m, seconds=s, finish_time=finish)


_calculator = OvertimeCalculator()
_aggregator = PayslipAggregator()


def classify(entry: TimeEntry) -> OvertimeResult | None:
    return _calculator.classify(entry)


def summarize(entries: Iterable[TimeEntry], selected_month: str | Tuple[int, int]) -> PayslipPeriod:
    return _aggregator.summarize(entries, selected_month)


def minimum_clock_out_time(clock_in: str | time | None) -> str:
    return _calculator.minimum_clock_out_time(clock_in)


def overtime_start_time(clock_in: str | time | None) -> str:
    return _calculator.overtime_start_time(clock_in)
