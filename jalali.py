# jalali.py — Jalali (Persian) ⇄ Gregorian conversion at UTC-midnight granularity
#
# Day counting follows Borkowski's arithmetic (33-year leap cycle). Gregorian
# dates are handled through proleptic ordinals, so no local time is ever involved.

from __future__ import annotations
from datetime import date, datetime, timezone
from typing import Tuple, Union

MIN_YEAR = 1
MAX_YEAR = 3000

# Borkowski's day number minus this offset is the proleptic Gregorian ordinal
_ORDINAL_SHIFT = 365

JALALI_MONTH_NAMES = (
    "فروردین", "اردیبهشت", "خرداد", "تیر", "مرداد", "شهریور",
    "مهر", "آبان", "آذر", "دی", "بهمن", "اسفند",
)

DateLike = Union[date, datetime]


class InvalidDate(ValueError):
    """Raised when a (year, month, day) triple is not a valid Jalali date."""


def _leap_count(y: int) -> int:
    return (y // 33) * 8 + ((y % 33 + 3) // 4)

def _month_offset(jm: int) -> int:
    return 31 * (jm - 1) if jm <= 6 else 186 + (jm - 7) * 30

def _day_number(jy: int, jm: int, jd: int) -> int:
    y = jy + 1595
    return -355668 + 365 * y + _leap_count(y) + jd + _month_offset(jm)

def _year_start(jy: int) -> int:
    """Proleptic Gregorian ordinal of 1 Farvardin of `jy`."""
    return _day_number(jy, 1, 1) - _ORDINAL_SHIFT

_EPOCH = _year_start(1)


def is_leap(year: int) -> bool:
    return _year_start(year + 1) - _year_start(year) == 366

def days_in_month(year: int, month: int) -> int:
    if not 1 <= month <= 12:
        raise InvalidDate(f"month out of range: {month}")
    if month <= 6:
        return 31
    if month <= 11:
        return 30
    return 30 if is_leap(year) else 29

def utc_midnight(d: DateLike) -> datetime:
    """Any date/datetime → the same calendar day at 00:00:00 UTC.
    Aware datetimes are first moved to UTC; naive ones are taken as UTC."""
    if isinstance(d, datetime):
        if d.tzinfo is not None:
            d = d.astimezone(timezone.utc)
        d = d.date()
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)

def to_gregorian(year: int, month: int, day: int) -> datetime:
    """Jalali (year, month, day) → Gregorian date at UTC midnight.
    Raises InvalidDate for out-of-range components (Esfand 30 only in leap years)."""
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidDate(f"year out of range: {year}")
    if not 1 <= day <= days_in_month(year, month):
        raise InvalidDate(f"day out of range: {year}/{month}/{day}")
    g = date.fromordinal(_day_number(year, month, day) - _ORDINAL_SHIFT)
    return datetime(g.year, g.month, g.day, tzinfo=timezone.utc)

def to_jalali(d: DateLike) -> Tuple[int, int, int]:
    """Gregorian date → Jalali (year, month, day). Inverse of to_gregorian."""
    ordinal = utc_midnight(d).toordinal()
    if ordinal < _EPOCH:
        raise InvalidDate(f"date before the Jalali epoch: {d}")
    # 366 days per year underestimates, so the search below only moves forward
    jy = (ordinal - _EPOCH) // 366 + 1
    while _year_start(jy + 1) <= ordinal:
        jy += 1
    day_of_year = ordinal - _year_start(jy)
    if day_of_year < 186:
        return jy, day_of_year // 31 + 1, day_of_year % 31 + 1
    day_of_year -= 186
    return jy, day_of_year // 30 + 7, day_of_year % 30 + 1

# ---------- string forms (date part only, never a clock time) ----------

def format_jalali(d: DateLike) -> str:
    jy, jm, jd = to_jalali(d)
    return f"{jy:04d}/{jm:02d}/{jd:02d}"

def parse_jalali(s: str) -> datetime:
    """'1403/10/18' or '1403-10-18' → Gregorian at UTC midnight."""
    parts = s.strip().replace("-", "/").split("/")
    if len(parts) != 3:
        raise InvalidDate(f"not a Jalali date string: {s!r}")
    try:
        jy, jm, jd = (int(p) for p in parts)
    except ValueError as e:
        raise InvalidDate(f"not a Jalali date string: {s!r}") from e
    return to_gregorian(jy, jm, jd)

def format_gregorian(d: DateLike) -> str:
    return utc_midnight(d).date().isoformat()

def parse_gregorian(s: str) -> datetime:
    """'2025-01-07' (or a full ISO timestamp, date part used) → UTC midnight."""
    return utc_midnight(date.fromisoformat(s.strip()[:10]))
