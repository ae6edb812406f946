"""Next-occurrence resolution for reminders.

``next_occurrence`` is a pure function of a reminder's schedule fields and
the current wall-clock time. The result is only attached to list responses;
it is never written back.

Month-length policy: a day-of-month that does not exist in the target month
(31 in April, 29 in a non-leap February) is clamped to that month's last day.
The stored day is kept, so day 31 still lands on the 31st in long months.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from config import settings
from database import FrequencyEnum, MonthEnum, WeekdayEnum


def local_now() -> datetime:
    """Current naive wall-clock time in settings.TIMEZONE."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


def _as_enum(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _clamped_date(year: int, month: int, day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def _following_month(year: int, month: int):
    if month == 12:
        return year + 1, 1
    return year, month + 1


def _next_daily(hora: time, now: datetime, **_) -> datetime:
    candidate = datetime.combine(now.date(), hora)
    if candidate < now:
        candidate += timedelta(days=1)
    return candidate


def _next_weekly(hora: time, now: datetime, dia_semana=None, **_) -> Optional[datetime]:
    weekday = _as_enum(WeekdayEnum, dia_semana)
    if weekday is None:
        return None
    days_ahead = (weekday.iso_index - now.weekday()) % 7
    candidate = datetime.combine(now.date() + timedelta(days=days_ahead), hora)
    # Same weekday but the time already passed today: next week.
    if candidate < now:
        candidate += timedelta(days=7)
    return candidate


def _next_monthly(hora: time, now: datetime, dia=None, **_) -> Optional[datetime]:
    if dia is None:
        return None
    candidate = datetime.combine(_clamped_date(now.year, now.month, dia), hora)
    if candidate < now:
        year, month = _following_month(now.year, now.month)
        candidate = datetime.combine(_clamped_date(year, month, dia), hora)
    return candidate


def _next_yearly(hora: time, now: datetime, dia=None, mes=None, **_) -> Optional[datetime]:
    month = _as_enum(MonthEnum, mes)
    if dia is None or month is None:
        return None
    candidate = datetime.combine(_clamped_date(now.year, month.number, dia), hora)
    if candidate < now:
        candidate = datetime.combine(_clamped_date(now.year + 1, month.number, dia), hora)
    return candidate


_RESOLVERS = {
    FrequencyEnum.DAILY: _next_daily,
    FrequencyEnum.WEEKLY: _next_weekly,
    FrequencyEnum.MONTHLY: _next_monthly,
    FrequencyEnum.YEARLY: _next_yearly,
}


def next_occurrence(reminder, now: Optional[datetime] = None) -> Optional[datetime]:
    """Compute when ``reminder`` fires next.

    Args:
        reminder: Any object with the schedule attributes of database.Reminder
            (recorrente, data_hora, frequencia, hora, dia, dia_semana, mes)
        now: Naive wall-clock "now"; defaults to local_now()

    Returns:
        Optional[datetime]: ``data_hora`` verbatim for one-shot reminders
        (even when it is in the past), the next instant >= now for recurring
        ones, or None when there is no schedule
    """
    if not reminder.recorrente:
        return reminder.data_hora

    frequency = _as_enum(FrequencyEnum, reminder.frequencia)
    if frequency is None or reminder.hora is None:
        return None

    if now is None:
        now = local_now()

    return _RESOLVERS[frequency](
        reminder.hora,
        now,
        dia=reminder.dia,
        dia_semana=reminder.dia_semana,
        mes=reminder.mes,
    )
