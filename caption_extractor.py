# caption_extractor.py — deterministic fallback when the AI found no usable date/location
#
# Dates: numeric Jalali dates, a window around each month name, relative/weekday words.
# Locations: curated place names, multi-word names before single words.

from __future__ import annotations
from datetime import datetime
from typing import List, Optional, Set

from date_parser import (
    JALALI_MONTHS, NUMERIC_DATE_RX, normalize_phrase,
    parse_jalali_phrase, relative_vocabulary, resolve_relative,
)
from farsi_text import find_word, tokenize
from place_names import HOME_CITY_FA, HOME_COUNTRY_EN, HOME_COUNTRY_FA, KNOWN_LOCATIONS, is_neighborhood
from records import LocationInfo

MONTH_WINDOW = 20   # characters kept on each side of a month name
MAX_NAME_WORDS = 3

# ---------- Dates ----------

def month_window(t: str, start: int, end: int) -> str:
    """t[start:end] pushed outwards so no number is cut in half (1403 must not become 03)."""
    start, end = max(0, start), min(len(t), end)
    while 0 < start < len(t) and t[start].isdigit() and t[start - 1].isdigit():
        start -= 1
    while 0 < end < len(t) and t[end].isdigit() and t[end - 1].isdigit():
        end += 1
    return t[start:end]

def date_candidates(caption: str) -> List[str]:
    """Phrases worth handing to the date parser, in the order they are tried."""
    if not caption: return []
    t = normalize_phrase(caption)
    out = [m.group(0) for m in NUMERIC_DATE_RX.finditer(t)]

    for name in JALALI_MONTHS:
        i = find_word(t, name)
        while i != -1:
            out.append(month_window(t, i - MONTH_WINDOW, i + len(name) + MONTH_WINDOW))
            i = find_word(t, name, i + len(name))

    for word in relative_vocabulary():
        if find_word(t, word) != -1:
            out.append(word)
    return out

def date_from_caption(caption: str, reference: datetime) -> Optional[datetime]:
    for phrase in date_candidates(caption):
        hit = parse_jalali_phrase(phrase, reference) or resolve_relative(phrase, reference)
        if hit is not None:
            return hit
    return None

# ---------- Locations ----------

def location_from_caption(caption: str, home_city_fa: str = HOME_CITY_FA) -> Optional[LocationInfo]:
    """
    First known city and first known neighborhood in the caption. A neighborhood
    puts the album in the home city unless a city was matched before it.
    None when nothing matched.
    """
    words = tokenize(caption)
    used: Set[int] = set()
    city_fa: Optional[str] = None
    area_fa: Optional[str] = None

    def take(name: str) -> None:
        nonlocal city_fa, area_fa
        if is_neighborhood(name):
            area_fa = area_fa or name
            city_fa = city_fa or home_city_fa
        else:
            city_fa = city_fa or name

    # "بندر انزلی" must win over the "انزلی" inside it
    for i in range(len(words)):
        for n in range(MAX_NAME_WORDS, 1, -1):
            span = range(i, i + n)
            if i + n > len(words) or any(j in used for j in span):
                continue
            combo = " ".join(words[i:i + n])
            if combo in KNOWN_LOCATIONS:
                take(combo)
                used.update(span)
                break

    for i, word in enumerate(words):
        if i not in used and word in KNOWN_LOCATIONS:
            take(word)

    if not city_fa:
        return None
    return LocationInfo(country_fa=HOME_COUNTRY_FA, country_en=HOME_COUNTRY_EN,
                        city_fa=city_fa, area_fa=area_fa)
