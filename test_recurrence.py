"""Unit tests for next-occurrence resolution."""

from datetime import datetime, time, timedelta
from types import SimpleNamespace

import pytest

from database import FrequencyEnum, MonthEnum, WeekdayEnum
from recurrence import next_occurrence

# Wednesday
NOW = datetime(2026, 10, 14, 12, 0)


def reminder(**fields):
    base = {
        "recorrente": True,
        "data_hora": None,
        "frequencia": None,
        "hora": None,
        "dia": None,
        "dia_semana": None,
        "mes": None,
    }
    base.update(fields)
    return SimpleNamespace(**base)


class TestOneShot:
    def test_returns_stored_datetime_verbatim(self):
        when = datetime(2026, 12, 25, 9, 30)
        r = reminder(recorrente=False, data_hora=when)
        assert next_occurrence(r, NOW) == when

    def test_past_datetime_is_not_rolled_forward(self):
        when = datetime(2020, 1, 1, 8, 0)
        r = reminder(recorrente=False, data_hora=when)
        assert next_occurrence(r, NOW) == when

    def test_repeated_resolution_is_stable(self):
        when = datetime(2026, 11, 1, 8, 0)
        r = reminder(recorrente=False, data_hora=when)
        assert next_occurrence(r, NOW) == next_occurrence(r, NOW + timedelta(days=40)) == when

    def test_plain_todo_has_no_occurrence(self):
        assert next_occurrence(reminder(recorrente=False), NOW) is None


class TestDaily:
    def test_later_today(self):
        r = reminder(frequencia=FrequencyEnum.DAILY, hora=time(18, 0))
        assert next_occurrence(r, NOW) == datetime(2026, 10, 14, 18, 0)

    def test_already_past_rolls_to_tomorrow(self):
        r = reminder(frequencia=FrequencyEnum.DAILY, hora=time(8, 0))
        assert next_occurrence(r, NOW) == datetime(2026, 10, 15, 8, 0)

    def test_exactly_now_is_not_past(self):
        r = reminder(frequencia=FrequencyEnum.DAILY, hora=time(12, 0))
        assert next_occurrence(r, NOW) == NOW

    def test_wire_value_is_accepted(self):
        r = reminder(frequencia="Diária", hora=time(8, 0))
        assert next_occurrence(r, NOW) == datetime(2026, 10, 15, 8, 0)


class TestWeekly:
    @pytest.mark.parametrize("weekday", list(WeekdayEnum))
    def test_weekday_matches_stored_day(self, weekday):
        r = reminder(frequencia=FrequencyEnum.WEEKLY, dia_semana=weekday, hora=time(9, 0))
        result = next_occurrence(r, NOW)
        assert result.weekday() == weekday.iso_index
        assert NOW <= result < NOW + timedelta(days=7)

    def test_friday(self):
        r = reminder(frequencia=FrequencyEnum.WEEKLY, dia_semana=WeekdayEnum.FRIDAY, hora=time(9, 0))
        assert next_occurrence(r, NOW) == datetime(2026, 10, 16, 9, 0)

    def test_same_weekday_later_today(self):
        r = reminder(frequencia=FrequencyEnum.WEEKLY, dia_semana=WeekdayEnum.WEDNESDAY, hora=time(20, 0))
        assert next_occurrence(r, NOW) == datetime(2026, 10, 14, 20, 0)

    def test_same_weekday_already_past_rolls_to_next_week(self):
        r = reminder(frequencia=FrequencyEnum.WEEKLY, dia_semana=WeekdayEnum.WEDNESDAY, hora=time(7, 0))
        assert next_occurrence(r, NOW) == datetime(2026, 10, 21, 7, 0)

    def test_missing_weekday_resolves_to_none(self):
        r = reminder(frequencia=FrequencyEnum.WEEKLY, hora=time(7, 0))
        assert next_occurrence(r, NOW) is None


class TestMonthly:
    @pytest.mark.parametrize("day", [1, 5, 14, 28])
    def test_past_this_month_goes_to_same_day_next_month(self, day):
        now = datetime(2026, 10, day, 23, 0)
        r = reminder(frequencia=FrequencyEnum.MONTHLY, dia=day, hora=time(10, 0))
        assert next_occurrence(r, now) == datetime(2026, 11, day, 10, 0)

    def test_later_this_month(self):
        r = reminder(frequencia=FrequencyEnum.MONTHLY, dia=20, hora=time(10, 0))
        assert next_occurrence(r, NOW) == datetime(2026, 10, 20, 10, 0)

    def test_december_rolls_into_january(self):
        now = datetime(2026, 12, 10, 0, 0)
        r = reminder(frequencia=FrequencyEnum.MONTHLY, dia=5, hora=time(10, 0))
        assert next_occurrence(r, now) == datetime(2027, 1, 5, 10, 0)

    def test_day_31_is_clamped_in_short_month(self):
        now = datetime(2026, 11, 2, 0, 0)
        r = reminder(frequencia=FrequencyEnum.MONTHLY, dia=31, hora=time(10, 0))
        assert next_occurrence(r, now) == datetime(2026, 11, 30, 10, 0)

    def test_day_31_keeps_stored_day_in_long_month(self):
        now = datetime(2026, 11, 30, 11, 0)
        r = reminder(frequencia=FrequencyEnum.MONTHLY, dia=31, hora=time(10, 0))
        assert next_occurrence(r, now) == datetime(2026, 12, 31, 10, 0)

    def test_february_clamp(self):
        now = datetime(2027, 2, 1, 0, 0)
        r = reminder(frequencia=FrequencyEnum.MONTHLY, dia=30, hora=time(10, 0))
        assert next_occurrence(r, now) == datetime(2027, 2, 28, 10, 0)


class TestYearly:
    def test_later_this_year(self):
        r = reminder(frequencia=FrequencyEnum.YEARLY, dia=25, mes=MonthEnum.DECEMBER, hora=time(8, 0))
        assert next_occurrence(r, NOW) == datetime(2026, 12, 25, 8, 0)

    def test_already_past_goes_to_next_year(self):
        r = reminder(frequencia=FrequencyEnum.YEARLY, dia=1, mes=MonthEnum.MARCH, hora=time(8, 0))
        assert next_occurrence(r, NOW) == datetime(2027, 3, 1, 8, 0)

    def test_leap_day_clamped_in_common_year(self):
        r = reminder(frequencia=FrequencyEnum.YEARLY, dia=29, mes="Fevereiro", hora=time(8, 0))
        assert next_occurrence(r, NOW) == datetime(2027, 2, 28, 8, 0)

    def test_missing_month_resolves_to_none(self):
        r = reminder(frequencia=FrequencyEnum.YEARLY, dia=1, hora=time(8, 0))
        assert next_occurrence(r, NOW) is None


def test_recurring_without_time_resolves_to_none():
    assert next_occurrence(reminder(frequencia=FrequencyEnum.DAILY), NOW) is None
