"""
US equity market calendar.

Weekends and NYSE full-day holidays are non-trading days. Holidays that fall
on a Saturday are observed the Friday before, Sunday holidays the Monday after.
"""

from datetime import date, timedelta
from functools import lru_cache
from typing import FrozenSet

MONDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY = 0, 3, 4, 5, 6

# Juneteenth became an exchange holiday in 2022
JUNETEENTH_FIRST_YEAR = 2022


def _nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    return first + timedelta(days=offset + 7 * (n - 1))


def _last_weekday(year: int, month: int, weekday: int) -> date:
    next_month = date(year + month // 12, month % 12 + 1, 1)
    last = next_month - timedelta(days=1)
    return last - timedelta(days=(last.weekday() - weekday) % 7)


def _easter_sunday(year: int) -> date:
    # Anonymous Gregorian algorithm
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def _observed(day: date) -> date:
    if day.weekday() == SATURDAY:
        return day - timedelta(days=1)
    if day.weekday() == SUNDAY:
        return day + timedelta(days=1)
    return day


@lru_cache(maxsize=64)
def us_market_holidays(year: int) -> FrozenSet[date]:
    """Full-day market holidays for ``year``."""
    holidays = {
        _nth_weekday(year, 1, MONDAY, 3),      # Martin Luther King Jr. Day
        _nth_weekday(year, 2, MONDAY, 3),      # Presidents' Day
        _easter_sunday(year) - timedelta(days=2),  # Good Friday
        _last_weekday(year, 5, MONDAY),        # Memorial Day
        _observed(date(year, 7, 4)),           # Independence Day
        _nth_weekday(year, 9, MONDAY, 1),      # Labor Day
        _nth_weekday(year, 11, THURSDAY, 4),   # Thanksgiving
        _observed(date(year, 12, 25)),         # Christmas
    }
    # New Year's Day on a Saturday is not observed on the previous Friday
    new_year = date(year, 1, 1)
    if new_year.weekday() != SATURDAY:
        holidays.add(_observed(new_year))
    if year >= JUNETEENTH_FIRST_YEAR:
        holidays.add(_observed(date(year, 6, 19)))
    return frozenset(holidays)


def is_trading_day(day: date) -> bool:
    return day.weekday() < SATURDAY and day not in us_market_holidays(day.year)


def previous_trading_day(day: date) -> date:
    """Most recent trading day strictly before ``day``."""
    candidate = day - timedelta(days=1)
    while not is_trading_day(candidate):
        candidate -= timedelta(days=1)
    return candidate
