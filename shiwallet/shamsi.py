"""
Shamsi Calendar Module

Converts between Gregorian and Shamsi (solar Hijri) dates and answers the
month-boundary questions the profit engine asks: month lengths, the first
day of a Shamsi month and the next profit trigger date.
"""

from datetime import date, datetime
from typing import Tuple

import jdatetime

DateTuple = Tuple[int, int, int]

DEFAULT_TRIGGER_DAY = 15

SHAMSI_MONTHS = [
    'Farvardin', 'Ordibehesht', 'Khordad',
    'Tir', 'Mordad', 'Shahrivar',
    'Mehr', 'Aban', 'Azar',
    'Dey', 'Bahman', 'Esfand'
]


def to_shamsi(gregorian_year: int, gregorian_month: int, gregorian_day: int) -> DateTuple:
    """
    Convert a Gregorian date to Shamsi

    Raises:
        ValueError: If the Gregorian date is invalid or out of range
    """
    jdate = jdatetime.date.fromgregorian(
        year=gregorian_year, month=gregorian_month, day=gregorian_day
    )
    return jdate.year, jdate.month, jdate.day


def to_gregorian(shamsi_year: int, shamsi_month: int, shamsi_day: int) -> DateTuple:
    """
    Convert a Shamsi date to Gregorian

    Raises:
        ValueError: If the Shamsi date does not exist
    """
    gdate = jdatetime.date(shamsi_year, shamsi_month, shamsi_day).togregorian()
    return gdate.year, gdate.month, gdate.day


def is_shamsi_leap(shamsi_year: int) -> bool:
    """Check whether Esfand has 30 days in the given Shamsi year"""
    try:
        jdatetime.date(shamsi_year, 12, 30)
    except ValueError:
        return False
    return True


def days_in_shamsi_month(shamsi_year: int, shamsi_month: int) -> int:
    """Number of days in a Shamsi month (31, 30, or 29/30 for Esfand)"""
    if not 1 <= shamsi_month <= 12:
        raise ValueError(f"Shamsi month must be between 1 and 12, got {shamsi_month}")
    if shamsi_month <= 6:
        return 31
    if shamsi_month <= 11:
        return 30
    return 30 if is_shamsi_leap(shamsi_year) else 29


def shamsi_of(day: date) -> DateTuple:
    """Shamsi (year, month, day) for a Gregorian date object"""
    return to_shamsi(day.year, day.month, day.day)


def shamsi_month_key(day: date) -> Tuple[int, int]:
    """(year, month) of the Shamsi month containing the date, for ordering"""
    year, month, _ = shamsi_of(day)
    return year, month


def shamsi_month_length(day: date) -> int:
    """Length of the Shamsi month containing the Gregorian date"""
    year, month, _ = shamsi_of(day)
    return days_in_shamsi_month(year, month)


def shamsi_month_start(day: date) -> date:
    """Gregorian date of the first day of the Shamsi month containing the date"""
    year, month, _ = shamsi_of(day)
    return date(*to_gregorian(year, month, 1))


def next_trigger_date(day: date, trigger_day: int = DEFAULT_TRIGGER_DAY) -> date:
    """
    Gregorian date of the trigger day in the Shamsi month following the date's

    Wraps to Farvardin of the next Shamsi year when the date falls in Esfand.
    """
    year, month, _ = shamsi_of(day)
    if month == 12:
        year, month = year + 1, 1
    else:
        month += 1
    return date(*to_gregorian(year, month, trigger_day))


def is_trigger_day(day: date, trigger_day: int = DEFAULT_TRIGGER_DAY) -> bool:
    """Check if the date is the profit trigger day of its Shamsi month"""
    return shamsi_of(day)[2] == trigger_day


def format_shamsi(moment: datetime) -> str:
    """Format a datetime as e.g. 'Mehr 28, 1403 at 14:05'"""
    year, month, day = shamsi_of(moment.date())
    return f"{SHAMSI_MONTHS[month - 1]} {day}, {year} at {moment.hour:02d}:{moment.minute:02d}"
