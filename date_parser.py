# date_parser.py — Farsi date phrases → Gregorian dates (UTC midnight)
#
# Numeric Jalali (1403/10/18), month name + day (۱۸ دی, هجدهم دی ۱۴۰۳),
# relative days (دیروز) and weekdays (سه‌شنبه).

from __future__ import annotations
import re
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from farsi_text import ZWNJ, cleanup, find_word, norm_digits
from jalali import InvalidDate, JALALI_MONTH_NAMES, to_gregorian, to_jalali, utc_midnight
from records import EXACT_NUMERIC_JALALI, MONTH_NAME_MATCH, RELATIVE_DAY, WEEKDAY_MATCH

DEFAULT_JALALI_YEAR = 1404  # used only when neither the phrase nor a reference gives a year

JALALI_MONTHS: Dict[str, int] = {name: i for i, name in enumerate(JALALI_MONTH_NAMES, start=1)}

RELATIVE_DAYS: Dict[str, int] = {
    "امروز": 0,
    "دیروز": -1,
    "پریروز": -2,
    "فردا": 1,
    "پس‌فردا": 2,
    "پسفردا": 2,
    "پس فردا": 2,
}

# Sunday-first index (Sunday=0 … Saturday=6); the Persian week starts on شنبه
WEEKDAYS: Dict[str, int] = {
    "شنبه": 6,
    "یکشنبه": 0, "یک‌شنبه": 0, "یک شنبه": 0,
    "دوشنبه": 1, "دو‌شنبه": 1, "دو شنبه": 1,
    "سه‌شنبه": 2, "سه شنبه": 2,
    "چهارشنبه": 3, "چهار‌شنبه": 3, "چهار شنبه": 3,
    "پنجشنبه": 4, "پنج‌شنبه": 4, "پنج شنبه": 4,
    "جمعه": 5,
}

_UNIT_ORDINALS = {
    1: "یکم", 2: "دوم", 3: "سوم", 4: "چهارم", 5: "پنجم",
    6: "ششم", 7: "هفتم", 8: "هشتم", 9: "نهم",
}
_TENS = {20: "بیست", 30: "سی"}
# "بیست و یکم" is written with spaces, ZWNJ or glued together
_AND_JOINERS = (" و ", "\u200cو\u200c", "\u200cو ", " و\u200c", " و", "و")

def _build_ordinals() -> Dict[str, int]:
    table = dict((w, n) for n, w in _UNIT_ORDINALS.items())
    table.update({
        "اول": 1,
        "دهم": 10, "یازدهم": 11, "دوازدهم": 12, "سیزدهم": 13, "چهاردهم": 14,
        "پانزدهم": 15, "پونزدهم": 15, "شانزدهم": 16, "شونزدهم": 16,
        "هفدهم": 17, "هیفدهم": 17, "هجدهم": 18, "هیجدهم": 18, "هژدهم": 18,
        "نوزدهم": 19,
        "بیستم": 20,
        "سی‌ام": 30, "سیام": 30, "سی ام": 30, "سی‌اُم": 30,
    })
    for tens, word in _TENS.items():
        for unit, unit_word in _UNIT_ORDINALS.items():
            if tens + unit > 31:
                break
            for joiner in _AND_JOINERS:
                table[f"{word}{joiner}{unit_word}"] = tens + unit
    return table

ORDINALS: Dict[str, int] = _build_ordinals()
# longest first, so "بیست و یکم" is tried before the "یکم" it ends with
_ORDINALS_LONGEST_FIRST: Tuple[Tuple[str, int], ...] = tuple(
    sorted(ORDINALS.items(), key=lambda kv: len(kv[0]), reverse=True)
)

NUMERIC_DATE_RX = re.compile(r"(?<!\d)(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})(?!\d)")
DAY_RX = re.compile(r"(?<!\d)(\d{1,2})(?!\d)")
YEAR_RX = re.compile(r"(?<!\d)(\d{4})(?!\d)")


def normalize_phrase(text: str) -> str:
    t = norm_digits(cleanup(text))
    # "دی‌ماه" → "دی ماه" so the month name stays a whole word
    return t.replace(ZWNJ + "ماه", " ماه")

def _reference_year(reference: Optional[datetime]) -> int:
    if reference is None:
        return DEFAULT_JALALI_YEAR
    return to_jalali(reference)[0]

def ordinal_day(text: str) -> Optional[int]:
    """Day number from an ordinal word (هفتم → 7), longest word first."""
    for word, n in _ORDINALS_LONGEST_FIRST:
        if find_word(text, word) != -1:
            return n
    return None

def find_month(text: str) -> Optional[Tuple[str, int]]:
    """First Jalali month name present as a whole word."""
    for name, num in JALALI_MONTHS.items():
        if find_word(text, name) != -1:
            return name, num
    return None

def _numeric(t: str) -> Optional[datetime]:
    m = NUMERIC_DATE_RX.search(t)
    if not m:
        return None
    try:
        return to_gregorian(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except InvalidDate:
        return None

def _month_name(t: str, reference: Optional[datetime]) -> Optional[datetime]:
    for name, month in JALALI_MONTHS.items():
        if find_word(t, name) == -1:
            continue
        day = ordinal_day(t)
        if day is None:
            m = DAY_RX.search(t)
            day = int(m.group(1)) if m else None
        if day is None:
            continue  # a month on its own names no day
        y = YEAR_RX.search(t)
        year = int(y.group(1)) if y else _reference_year(reference)
        try:
            return to_gregorian(year, month, day)
        except InvalidDate:
            continue
    return None

def parse_jalali_phrase_with_source(text: str, reference: Optional[datetime] = None) -> Optional[Tuple[datetime, str]]:
    if not text: return None
    t = normalize_phrase(text)
    hit = _numeric(t)
    if hit is not None:
        return hit, EXACT_NUMERIC_JALALI
    hit = _month_name(t, reference)
    if hit is not None:
        return hit, MONTH_NAME_MATCH
    return None

def parse_jalali_phrase(text: str, reference: Optional[datetime] = None) -> Optional[datetime]:
    """
    Numeric Jalali, then month name + day. Returns the Gregorian date at
    UTC midnight, or None when the text holds no complete date.
    """
    hit = parse_jalali_phrase_with_source(text, reference)
    return hit[0] if hit else None

def sunday_first_weekday(d: datetime) -> int:
    return d.isoweekday() % 7

def resolve_relative_with_source(word: str, reference: datetime) -> Optional[Tuple[datetime, str]]:
    w = cleanup(word or "")
    day = utc_midnight(reference)
    if w in RELATIVE_DAYS:
        return day + timedelta(days=RELATIVE_DAYS[w]), RELATIVE_DAY
    if w in WEEKDAYS:
        diff = WEEKDAYS[w] - sunday_first_weekday(day)
        if diff > 0:
            diff -= 7
        if diff == 0:
            diff = -7  # a named weekday is always the most recent past one
        return day + timedelta(days=diff), WEEKDAY_MATCH
    return None

def resolve_relative(word: str, reference: datetime) -> Optional[datetime]:
    hit = resolve_relative_with_source(word, reference)
    return hit[0] if hit else None

def resolve_candidates(dates: Iterable[str], reference: datetime) -> Optional[Tuple[datetime, str]]:
    """First AI date string that resolves, with its provenance tag."""
    for s in dates or []:
        hit = parse_jalali_phrase_with_source(s, reference) or resolve_relative_with_source(s, reference)
        if hit:
            return hit
    return None

def relative_vocabulary() -> List[str]:
    """All relative-day and weekday words, longest first."""
    return sorted(list(RELATIVE_DAYS) + list(WEEKDAYS), key=len, reverse=True)
