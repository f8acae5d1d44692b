"""
Calendar helpers for installment schedules.

add_months_on_day is the only place where month rollover is decided: the
anchor is advanced by whole calendar months and the day is then set to the
requested due day, clamped to the last day of the target month. A Jan-31
anchor advanced one month with due day 31 lands on Feb-28 (or 29), never in
March, so installment i always falls in the start month + (i - 1).
"""
import calendar
from datetime import date

from dateutil.relativedelta import relativedelta

from domain.exceptions import ValidationError


def format_competencia(d: date) -> str:
    """MM/YYYY accounting month tag."""
    return f"{d.month:02d}/{d.year:04d}"


def month_index(d: date) -> int:
    return d.year * 12 + d.month


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months_on_day(anchor: date, months: int, day: int) -> date:
    if not 1 <= day <= 31:
        raise ValidationError(f"Due day must be between 1 and 31, got {day}", field="due_day")
    target = anchor + relativedelta(months=months)
    return target.replace(day=min(day, last_day_of_month(target.year, target.month)))


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative when end is earlier)."""
    return (end - start).days
