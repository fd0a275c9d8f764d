"""Period key helpers: integer buckets for days, ISO weeks and months.

Keys are plain integers so they sort chronologically and can be stored and
indexed next to each log row:

* daily   -> ``YYYYMMDD``
* weekly  -> ``ISOYEAR * 100 + ISOWEEK``
* monthly -> ``YYYYMM``
"""

from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, timedelta, timezone

from ..models.enums import Frequency

SUNDAY = 6


def as_utc(instant: datetime) -> datetime:
    """Return ``instant`` in UTC; naive values are assumed to already be UTC."""

    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def utc_date(instant: datetime | date) -> date:
    """Calendar date of ``instant`` in UTC."""

    if isinstance(instant, datetime):
        return as_utc(instant).date()
    return instant


def period_key(frequency: Frequency | str, instant: datetime | date) -> int:
    """Return the period key containing ``instant`` for ``frequency``."""

    freq = Frequency.parse(frequency)
    day = utc_date(instant)
    if freq is Frequency.DAILY:
        return day.year * 10000 + day.month * 100 + day.day
    if freq is Frequency.WEEKLY:
        iso_year, iso_week, _ = day.isocalendar()
        return iso_year * 100 + iso_week
    return day.year * 100 + day.month


def period_keys(instant: datetime | date) -> tuple[int, int, int]:
    """Return ``(daily, weekly, monthly)`` keys for ``instant``."""

    return (
        period_key(Frequency.DAILY, instant),
        period_key(Frequency.WEEKLY, instant),
        period_key(Frequency.MONTHLY, instant),
    )


def daily_key_to_date(key: int) -> date:
    return date(key // 10000, key // 100 % 100, key % 100)


def previous_period_key(frequency: Frequency | str, key: int) -> int:
    """Return the key of the period immediately before ``key``.

    Weekly keys in week 1 always wrap to week 52 of the previous ISO year, so a
    year with 53 ISO weeks loses its last week when walking backwards.
    """

    freq = Frequency.parse(frequency)
    if freq is Frequency.DAILY:
        return period_key(Frequency.DAILY, daily_key_to_date(key) - timedelta(days=1))

    year, part = divmod(key, 100)
    if part > 1:
        return key - 1
    if freq is Frequency.WEEKLY:
        return (year - 1) * 100 + 52
    return (year - 1) * 100 + 12


def is_last_day_of_period(frequency: Frequency | str, instant: datetime | date) -> bool:
    """True when ``instant`` falls on the final day of its period (Sunday / month end)."""

    freq = Frequency.parse(frequency)
    day = utc_date(instant)
    if freq is Frequency.DAILY:
        return True
    if freq is Frequency.WEEKLY:
        return day.weekday() == SUNDAY
    return day.day == monthrange(day.year, day.month)[1]


__all__ = [
    "as_utc",
    "daily_key_to_date",
    "is_last_day_of_period",
    "period_key",
    "period_keys",
    "previous_period_key",
    "utc_date",
]
