# gazetteer.py — read-only in-memory index over the locations table
#
# Exact-name lookups only. The first entry inserted for a name wins, and rows are
# inserted cities and towns first (population descending), then provinces, then
# neighborhoods, so "تهران" means the city and the town "گلستان" beats the province.

from __future__ import annotations
import logging
import os
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import and_, case, or_
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session

from db import make_engine
from models import Location
from records import GazetteerEntry, ProvinceInfo

log = logging.getLogger(__name__)

# tiny villages named like common words are left out; provinces and neighborhoods
# are kept whatever their (often missing) population
MIN_POPULATION = 1000
PROVINCE_PREFIX = "استان"

LEVEL_NAMES = {0: "provinces", 1: "major cities", 2: "cities", 3: "neighborhoods"}


def _priority(e: GazetteerEntry) -> Tuple[int, int]:
    rank = {1: 0, 2: 0, 0: 1}.get(e.admin_level, 2)
    return rank, -(e.population or 0)

def _province_rank(e: GazetteerEntry) -> Tuple[int, int]:
    return (0 if e.name_fa.startswith(PROVINCE_PREFIX) else 1), len(e.name_fa)

def _keep(e: GazetteerEntry) -> bool:
    return e.admin_level in (0, 3) or (e.population or 0) >= MIN_POPULATION

def _entry(row: Location) -> GazetteerEntry:
    return GazetteerEntry(
        name_fa=row.name_fa,
        name_en=row.name_en,
        latitude=row.latitude,
        longitude=row.longitude,
        population=row.population or 0,
        admin_level=row.admin_level if row.admin_level is not None else 2,
        province_code=row.province_code or "",
    )


class Gazetteer:
    def __init__(self):
        self._by_name: Dict[str, GazetteerEntry] = {}
        self._levels: Dict[int, Set[str]] = {lvl: set() for lvl in LEVEL_NAMES}
        self._city_province: Dict[str, ProvinceInfo] = {}
        self.available = False

    # ---------- building ----------

    def _index(self, entries: Iterable[GazetteerEntry]) -> None:
        for e in entries:
            if e.name_fa in self._by_name:
                continue
            self._by_name[e.name_fa] = e
            self._levels.setdefault(e.admin_level, set()).add(e.name_fa)

    def _index_provinces(self, cities: Iterable[GazetteerEntry], provinces: Iterable[GazetteerEntry]) -> None:
        by_code: Dict[str, ProvinceInfo] = {}
        for p in provinces:
            if p.province_code not in by_code:
                by_code[p.province_code] = ProvinceInfo(province_fa=p.name_fa, province_en=p.name_en)
        for c in cities:
            if c.name_fa in self._city_province:
                continue
            province = by_code.get(c.province_code)
            if province:
                self._city_province[c.name_fa] = province

    @classmethod
    def from_entries(cls, entries: Iterable[GazetteerEntry]) -> "Gazetteer":
        """Build from raw entries in any order (the load ordering is applied here)."""
        entries = list(entries)
        g = cls()
        g._index(sorted((e for e in entries if _keep(e)), key=_priority))
        g._index_provinces(
            sorted((e for e in entries if e.admin_level in (1, 2) and e.province_code),
                   key=lambda e: -(e.population or 0)),
            sorted((e for e in entries if e.admin_level == 0 and e.province_code), key=_province_rank),
        )
        g.available = True
        return g

    @classmethod
    def load(cls, bind: Engine) -> "Gazetteer":
        level_rank = case((Location.admin_level.in_([1, 2]), 0), (Location.admin_level == 0, 1), else_=2)
        with Session(bind) as db:
            rows = (
                db.query(Location)
                .filter(or_(and_(Location.admin_level <= 2, Location.population >= MIN_POPULATION),
                            Location.admin_level.in_([0, 3])))
                .order_by(level_rank.asc(), Location.population.desc(), Location.id.asc())
                .all()
            )
            cities = (
                db.query(Location)
                .filter(Location.admin_level.in_([1, 2]), Location.province_code.isnot(None))
                .order_by(Location.population.desc(), Location.id.asc())
                .all()
            )
            provinces = (
                db.query(Location)
                .filter(Location.admin_level == 0, Location.province_code.isnot(None))
                .all()
            )
            g = cls()
            g._index(_entry(r) for r in rows)
            g._index_provinces((_entry(r) for r in cities),
                               sorted((_entry(r) for r in provinces), key=_province_rank))
        g.available = True
        log.info("Loaded %s", g.summary())
        return g

    @classmethod
    def open(cls, url: str) -> "Gazetteer":
        """Load from a database URL; an empty, unavailable gazetteer if the SQLite file is missing."""
        u = make_url(url)
        if u.get_backend_name() == "sqlite" and (not u.database or not os.path.exists(u.database)):
            log.warning("Gazetteer not found at %s. Run: python build_gazetteer.py", url)
            return cls()
        engine = make_engine(url)
        try:
            return cls.load(engine)
        finally:
            engine.dispose()

    # ---------- lookups ----------

    def by_local_name(self, name: Optional[str]) -> Optional[GazetteerEntry]:
        if not name: return None
        return self._by_name.get(name.strip())

    def english_name(self, name: Optional[str]) -> Optional[str]:
        e = self.by_local_name(name)
        return e.name_en if e and e.name_en else None

    def coordinates(self, name: Optional[str]) -> Optional[Tuple[float, float]]:
        e = self.by_local_name(name)
        if e is None or e.latitude is None or e.longitude is None:
            return None
        return e.latitude, e.longitude

    def province_for_city(self, name: Optional[str]) -> Optional[ProvinceInfo]:
        if not name: return None
        return self._city_province.get(name.strip())

    def admin_level(self, name: Optional[str]) -> Optional[int]:
        e = self.by_local_name(name)
        return e.admin_level if e else None

    def is_province(self, name: str) -> bool:
        return name in self._levels[0]

    def is_city(self, name: str) -> bool:
        return name in self._levels[1] or name in self._levels[2]

    def is_neighborhood(self, name: str) -> bool:
        return name in self._levels[3]

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def summary(self) -> str:
        parts: List[str] = [f"{len(self._levels[lvl])} {label}" for lvl, label in LEVEL_NAMES.items()]
        return f"{len(self)} locations ({', '.join(parts)})"
