"""
Tests for overtime classification and payslip period totals.
"""

import pytest
from datetime import date, datetime, time

from domain import OvertimePolicy, OvertimeType, PayslipPeriod
from services import (
    OvertimeCalculator,
    PayslipAggregator,
    classify,
    elapsed_minutes,
    minimum_clock_out_time,
    overtime_start_time,
    parse_month,
    shift_countdown,
    summarize,
)

from conftest import MONDAY, SATURDAY, SUNDAY, make_entry, paid_entry


class TestElapsedMinutes:

    def test_same_day(self):
        assert elapsed_minutes(time(8, 0), time(17, 30)) == 570

    def test_overnight_wraps(self):
        assert elapsed_minutes(time(22, 0), time(2, 0)) == 240

    def test_equal_times_is_zero(self):
        assert elapsed_minutes(time(9, 0), time(9, 0)) == 0


class TestWeekday:
    """Weekday overtime only starts after the standard day plus the break."""

    @pytest.mark.parametrize("clock_out", ["12:00", "16:30", "16:45", "17:00"])
    def test_up_to_nine_hours_is_no_ot(self, calculator, clock_out):
        r = calculator.classify(make_entry(clock_out=clock_out))
        assert r.type == OvertimeType.NO_OT
        assert r.hours == 0
        assert r.total_pay == 0

    def test_no_ot_breakdowns(self, calculator):
        assert calculator.classify(make_entry(clock_out="16:30")).breakdown == "Less than 8.5 hours"
        assert calculator.classify(make_entry(clock_out="17:00")).breakdown == "Less than 9 hours"
        assert calculator.classify(make_entry(clock_out="17:59")).breakdown == "Less than 1 hour OT (minimum required)"

    def test_59_minutes_of_ot_is_forfeited(self, calculator):
        r = calculator.classify(make_entry(clock_out="17:59"))
        assert r.type == OvertimeType.NO_OT
        assert r.total_pay == 0

    def test_one_hour_of_ot(self, calculator):
        r = calculator.classify(make_entry(clock_out="18:00"))
        assert r.type == OvertimeType.WEEKDAY
        assert r.hours == 1.0
        assert r.meal_allowance == 13
        assert r.ot_pay == 13
        assert r.total_pay == 26
        assert r.leave_hours is None

    def test_fractional_hours_are_not_rounded(self, calculator):
        r = calculator.classify(make_entry(clock_out="19:20"))
        assert r.hours == pytest.approx(140 / 60)
        assert r.ot_pay == pytest.approx(140 / 60 * 13)
        assert r.total_pay == pytest.approx(140 / 60 * 13 + 13)
        assert r.breakdown == "2.33h × RM13 + RM13 meal"

    def test_overnight_weekday_shift(self, calculator):
        r = calculator.classify(make_entry(clock_in="14:00", clock_out="00:00"))
        assert r.type == OvertimeType.WEEKDAY
        assert r.hours == 1.0

    def test_short_overnight_weekday_shift(self, calculator):
        r = calculator.classify(make_entry(clock_in="22:00", clock_out="02:00"))
        assert r.type == OvertimeType.NO_OT


class TestWeekendAndHoliday:
    """The whole shift counts on weekends and public holidays."""

    def test_saturday_shift(self, calculator):
        r = calculator.classify(make_entry(d=SATURDAY, clock_in="08:00", clock_out="16:10"))
        hours = 8 + 10 / 60
        assert r.type == OvertimeType.WEEKEND
        assert r.hours == pytest.approx(hours)
        assert r.meal_allowance == 13
        assert r.ot_pay == pytest.approx(hours * 20)
        assert r.total_pay == pytest.approx(hours * 20 + 13)
        assert r.breakdown == "8.17h × RM20"

    def test_sunday_is_weekend(self, calculator):
        r = calculator.classify(make_entry(d=SUNDAY, clock_in="10:00", clock_out="12:00"))
        assert r.type == OvertimeType.WEEKEND
        assert r.hours == 2.0
        assert r.meal_allowance == 0
        assert r.total_pay == 40

    def test_meal_allowance_threshold(self, calculator):
        under = calculator.classify(make_entry(d=SATURDAY, clock_in="08:00", clock_out="11:59"))
        exact = calculator.classify(make_entry(d=SATURDAY, clock_in="08:00", clock_out="12:00"))
        assert under.meal_allowance == 0
        assert exact.meal_allowance == 13
        assert exact.total_pay == 4 * 20 + 13

    def test_overnight_weekend_shift(self, calculator):
        r = calculator.classify(make_entry(d=SATURDAY, clock_in="22:00", clock_out="02:00"))
        assert r.type == OvertimeType.WEEKEND
        assert r.hours == 4.0
        assert r.total_pay == 93

    def test_public_holiday_on_weekday_paid(self, calculator):
        r = calculator.classify(make_entry(clock_in="09:00", clock_out="14:00", holiday=True))
        assert r.type == OvertimeType.PUBLIC_HOLIDAY
        assert r.hours == 5.0
        assert r.ot_pay == 100
        assert r.total_pay == 113

    def test_public_holiday_on_saturday(self, calculator):
        r = calculator.classify(make_entry(d=SATURDAY, holiday=True))
        assert r.type == OvertimeType.PUBLIC_HOLIDAY

    def test_leave_option_ten_hours(self, calculator):
        r = calculator.classify(make_entry(clock_in="08:00", clock_out="18:00", holiday=True, option="leave"))
        assert r.type == OvertimeType.PUBLIC_HOLIDAY_LEAVE
        assert r.hours == 10.0
        assert r.leave_hours == 8
        assert r.excess_pay == 40
        assert r.ot_pay == 0
        assert r.total_pay == 40 + r.meal_allowance == 53
        assert r.breakdown == "8.00 hours leave"

    def test_leave_option_under_cap(self, calculator):
        r = calculator.classify(make_entry(clock_in="08:00", clock_out="14:30", holiday=True, option="leave"))
        assert r.leave_hours == 6.5
        assert r.excess_pay == 0
        assert r.total_pay == 13

    def test_leave_option_ignored_without_holiday(self, calculator):
        r = calculator.classify(make_entry(d=SATURDAY, option="leave"))
        assert r.type == OvertimeType.WEEKEND


class TestClassify:

    @pytest.mark.parametrize("clock_in,clock_out", [("", "17:00"), ("08:00", ""), ("", "")])
    def test_missing_times_yield_none(self, calculator, clock_in, clock_out):
        assert calculator.classify(make_entry(clock_in=clock_in, clock_out=clock_out)) is None

    def test_idempotent(self):
        entry = make_entry(d=SATURDAY, clock_in="07:13", clock_out="19:41")
        assert classify(entry) == classify(entry)

    def test_classify_entry_attaches_result(self, calculator):
        entry = make_entry(clock_out="18:00")
        out = calculator.classify_entry(entry)
        assert out.result.type == OvertimeType.WEEKDAY
        assert out.id == entry.id
        assert entry.result is None

    def test_custom_policy(self):
        calc = OvertimeCalculator(OvertimePolicy(weekday_hourly_rate=15, meal_allowance=10))
        r = calc.classify(make_entry(clock_out="18:00"))
        assert r.total_pay == 25


class TestPreviews:

    def test_minimum_clock_out(self):
        assert minimum_clock_out_time("08:00") == "16:30"

    def test_overtime_start(self):
        assert overtime_start_time("08:00") == "17:00"

    def test_previews_wrap_midnight(self):
        assert minimum_clock_out_time("20:00") == "04:30"
        assert overtime_start_time("20:15") == "05:15"

    def test_missing_clock_in(self):
        assert minimum_clock_out_time("") == ""
        assert overtime_start_time(None) == ""

    def test_accepts_time_objects(self):
        assert minimum_clock_out_time(time(7, 45)) == "16:15"


class TestShiftCountdown:

    def test_time_left(self):
        cd = shift_countdown("08:00", datetime(2025, 1, 6, 10, 0, 0))
        assert not cd.is_overtime
        assert (cd.hours, cd.minutes, cd.seconds) == (6, 30, 0)
        assert cd.finish_time == datetime(2025, 1, 6, 16, 30)

    def test_past_finish_time(self):
        cd = shift_countdown("08:00", datetime(2025, 1, 6, 17, 0, 30))
        assert cd.is_overtime
        assert (cd.hours, cd.minutes, cd.seconds) == (0, 30, 30)

    def test_no_clock_in(self):
        assert shift_countdown("", datetime(2025, 1, 6, 10, 0)) is None


class TestParseMonth:

    def test_string(self):
        assert parse_month("2025-01") == (2025, 1)

    def test_tuple(self):
        assert parse_month((2024, 12)) == (2024, 12)

    @pytest.mark.parametrize("bad", ["2025", "2025-13", "jan-2025", "2025-00"])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            parse_month(bad)


class TestPayslipAggregator:

    def test_january_window_crosses_year(self):
        period = summarize([], "2025-01")
        assert period.start_date_str == "2024-12-29"
        assert period.end_date_str == "2025-01-28"

    def test_regular_window(self):
        assert PayslipAggregator().window("2025-06") == (date(2025, 5, 29), date(2025, 6, 28))

    def test_window_after_short_february(self):
        assert PayslipAggregator().window("2025-03") == (date(2025, 3, 1), date(2025, 3, 28))

    def test_window_after_leap_february(self):
        assert PayslipAggregator().window("2024-03") == (date(2024, 2, 29), date(2024, 3, 28))

    def test_empty(self):
        period = summarize([], "2025-01")
        assert period == PayslipPeriod(date(2024, 12, 29), date(2025, 1, 28))
        assert period.count == 0
        assert period.total_pay == 0

    def test_bounds_are_inclusive(self):
        entries = [
            paid_entry(date(2024, 12, 28), 100),
            paid_entry(date(2024, 12, 29), 10),
            paid_entry(date(2025, 1, 28), 20),
            paid_entry(date(2025, 1, 29), 100),
        ]
        period = summarize(entries, "2025-01")
        assert period.count == 2
        assert period.total_pay == 30
        assert period.total_hours == 2.0

    def test_pay_is_capped(self):
        entries = [paid_entry(date(2025, 1, 10), 750), paid_entry(date(2025, 1, 11), 750)]
        period = summarize(entries, "2025-01")
        assert period.total_pay == 1500
        assert period.capped_pay == 1200

    def test_under_cap(self):
        period = summarize([paid_entry(date(2025, 1, 10), 26)], "2025-01")
        assert period.capped_pay == 26

    def test_entry_without_result_counts_but_adds_nothing(self):
        entries = [make_entry(d=date(2025, 1, 10), clock_out=""), paid_entry(date(2025, 1, 11), 26)]
        period = summarize(entries, "2025-01")
        assert period.count == 2
        assert period.total_pay == 26

    def test_summarize_classified_entries(self, classified):
        entries = [
            classified(d=MONDAY, clock_out="18:00"),
            classified(d=SATURDAY, clock_in="08:00", clock_out="12:00"),
            classified(d=SUNDAY, clock_in="08:00", clock_out="09:00"),
        ]
        period = summarize(entries, (2025, 1))
        assert period.total_hours == 6.0
        assert period.total_pay == 26 + 93 + 20

    def test_entries_in_period(self):
        inside = paid_entry(date(2025, 1, 1), 1)
        outside = paid_entry(date(2025, 2, 1), 1)
        assert PayslipAggregator().entries_in_period([inside, outside], "2025-01") == [inside]

    def test_custom_cap(self):
        agg = PayslipAggregator(OvertimePolicy(period_pay_cap=500))
        assert agg.summarize([paid_entry(date(2025, 1, 10), 750)], "2025-01").capped_pay == 500
