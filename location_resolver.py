# location_resolver.py — sparse FA location → bilingual record with province and coordinates
#
# English names come from the gazetteer, then the static table; anything still
# missing is left blank and reported as untranslated. Never raises.

from __future__ import annotations
from typing import Iterable, List, Mapping, Optional, Tuple

from farsi_text import contains_persian
from gazetteer import Gazetteer
from place_names import (
    HOME_CITY_FA, HOME_COUNTRY_EN, HOME_COUNTRY_FA,
    foreign_country_english, is_neighborhood, province_override, to_english,
)
from records import FOREIGN_COUNTRY_EN, FOREIGN_COUNTRY_FA, LocationInfo, LocationResolution

# (farsi field, english field) pairs that batch translation may fill
NAME_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("city_fa", "city_en"),
    ("area_fa", "area_en"),
    ("province_fa", "province_en"),
)


def translate_name(name: Optional[str], gazetteer: Gazetteer) -> Optional[str]:
    if not name: return None
    return gazetteer.english_name(name) or to_english(name)

def _given_english(value: Optional[str]) -> Optional[str]:
    # upstream steps sometimes copy the Farsi name into the English slot
    if not value or contains_persian(value):
        return None
    return value.strip() or None

def is_foreign(candidate: LocationInfo) -> bool:
    return (candidate.is_foreign
            or candidate.country_fa == FOREIGN_COUNTRY_FA
            or candidate.country_en == FOREIGN_COUNTRY_EN)

def _note(names: List[str], name: str) -> None:
    if name not in names:
        names.append(name)

def _resolve_foreign(c: LocationInfo) -> LocationResolution:
    untranslated: List[str] = []
    out = LocationInfo(country_fa=FOREIGN_COUNTRY_FA, country_en=FOREIGN_COUNTRY_EN, is_foreign=True)
    name = c.city_fa or c.area_fa
    if name:
        out.city_fa = name
        out.city_en = foreign_country_english(name) or _given_english(c.city_en)
        if not out.city_en:
            _note(untranslated, name)
    if c.lat is not None and c.lon is not None:
        out.lat, out.lon = c.lat, c.lon
    return LocationResolution(location=out, untranslated=untranslated)

def resolve_location(candidate: LocationInfo, gazetteer: Gazetteer,
                     home_city_fa: str = HOME_CITY_FA) -> LocationResolution:
    """
    Candidate (AI output or caption scan) → LocationResolution.

    Province: per-city override table, then the gazetteer's province for the
    city, then whatever the candidate said. Coordinates come from the most
    specific level the gazetteer knows, area before city. The province is
    used for coordinates only when neither a city nor an area was given.
    """
    c = candidate
    if is_foreign(c):
        return _resolve_foreign(c)

    untranslated: List[str] = []
    out = LocationInfo(
        country_fa=c.country_fa or HOME_COUNTRY_FA,
        country_en=_given_english(c.country_en) or to_english(c.country_fa) or HOME_COUNTRY_EN,
    )

    city_fa, city_en = c.city_fa, _given_english(c.city_en)
    area_fa, area_en = c.area_fa, _given_english(c.area_en)
    if city_fa and not area_fa and is_neighborhood(city_fa):
        # a neighborhood given as the city: it is the area, the city is the home city
        area_fa, area_en = city_fa, city_en
        city_fa, city_en = home_city_fa, None
    elif area_fa and not city_fa and is_neighborhood(area_fa):
        city_fa = home_city_fa

    if city_fa:
        out.city_fa = city_fa
        out.city_en = city_en or translate_name(city_fa, gazetteer)
        if not out.city_en:
            _note(untranslated, city_fa)

    province = None
    if city_fa:
        province = province_override(city_fa) or gazetteer.province_for_city(city_fa)
    if province:
        out.province_fa = province.province_fa
        out.province_en = province.province_en or translate_name(province.province_fa, gazetteer)
    elif c.province_fa:
        out.province_fa = c.province_fa
        out.province_en = _given_english(c.province_en) or translate_name(c.province_fa, gazetteer)
    if out.province_fa and not out.province_en:
        _note(untranslated, out.province_fa)

    if area_fa:
        out.area_fa = area_fa
        out.area_en = area_en or translate_name(area_fa, gazetteer)
        if not out.area_en:
            _note(untranslated, area_fa)

    coords = None
    # a province centroid stands in only when no city or area was named at all
    names = (out.area_fa, out.city_fa) if (out.area_fa or out.city_fa) else (out.province_fa,)
    for name in names:
        if name:
            coords = gazetteer.coordinates(name)
            if coords:
                break
    if coords is None and c.lat is not None and c.lon is not None:
        coords = (c.lat, c.lon)
    if coords:
        out.lat, out.lon = coords

    return LocationResolution(location=out, untranslated=untranslated)

def collect_untranslated(results: Iterable[LocationResolution]) -> List[str]:
    """Unique untranslated names across a batch, first-seen order."""
    seen: List[str] = []
    for r in results:
        for name in r.untranslated:
            _note(seen, name)
    return seen

def apply_translations(locations: Iterable[LocationInfo], translations: Mapping[str, str]) -> int:
    """Fill blank English fields in every record from one batch translation map.
    Returns how many records changed."""
    changed = 0
    for loc in locations:
        touched = False
        for fa_field, en_field in NAME_FIELDS:
            fa = getattr(loc, fa_field)
            if fa and not getattr(loc, en_field):
                en = (translations.get(fa) or "").strip()
                if en:
                    setattr(loc, en_field, en)
                    touched = True
        if touched:
            changed += 1
    return changed
