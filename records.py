# records.py — plain records passed between the resolution stages

from __future__ import annotations
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from jalali import format_gregorian, format_jalali, utc_midnight

# provenance tags for ResolvedDate.source
EXACT_NUMERIC_JALALI = "exact-numeric-jalali"
MONTH_NAME_MATCH = "month-name-match"
RELATIVE_DAY = "relative-day"
WEEKDAY_MATCH = "weekday-match"
CAPTION_FALLBACK = "caption-fallback"
ORIGIN_TIMESTAMP_FALLBACK = "origin-timestamp-fallback"

DATE_SOURCES = (
    EXACT_NUMERIC_JALALI, MONTH_NAME_MATCH, RELATIVE_DAY,
    WEEKDAY_MATCH, CAPTION_FALLBACK, ORIGIN_TIMESTAMP_FALLBACK,
)

FOREIGN_COUNTRY_FA = "سایر"
FOREIGN_COUNTRY_EN = "Other"


@dataclass(frozen=True)
class ResolvedDate:
    gregorian: datetime      # always 00:00 UTC
    jalali: str              # YYYY/MM/DD
    source: str

    @classmethod
    def make(cls, when: datetime, source: str) -> "ResolvedDate":
        if source not in DATE_SOURCES:
            raise ValueError(f"unknown date source: {source}")
        day = utc_midnight(when)
        return cls(gregorian=day, jalali=format_jalali(day), source=source)

    def to_dict(self) -> Dict[str, str]:
        return {"gregorian": format_gregorian(self.gregorian), "jalali": self.jalali, "source": self.source}


@dataclass
class LocationInfo:
    """Sparse bilingual location. A field left as None was not mentioned."""
    country_fa: Optional[str] = None
    country_en: Optional[str] = None
    province_fa: Optional[str] = None
    province_en: Optional[str] = None
    city_fa: Optional[str] = None
    city_en: Optional[str] = None
    area_fa: Optional[str] = None
    area_en: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    is_foreign: bool = False

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "LocationInfo":
        if not d: return cls()
        known = {f.name for f in fields(cls)}
        kw = {}
        for k, v in d.items():
            if k not in known or v is None:
                continue
            if isinstance(v, str):
                v = v.strip()
                if not v: continue
            kw[k] = v
        for k in ("lat", "lon"):
            if k in kw:
                try: kw[k] = float(kw[k])
                except (TypeError, ValueError): kw.pop(k)
        if "is_foreign" in kw:
            kw["is_foreign"] = bool(kw["is_foreign"])
        return cls(**kw)

    def to_dict(self) -> Dict[str, Any]:
        """Only the populated fields, same shape the album store keeps."""
        out = {k: v for k, v in asdict(self).items() if v is not None and k != "is_foreign"}
        if self.is_foreign:
            out["is_foreign"] = True
        return out

    def is_empty(self) -> bool:
        return not any(v for k, v in asdict(self).items() if k != "is_foreign")


@dataclass(frozen=True)
class GazetteerEntry:
    name_fa: str
    name_en: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    population: int = 0
    admin_level: int = 2     # 0 province, 1 major city, 2 city/town, 3 neighborhood
    province_code: str = ""


@dataclass(frozen=True)
class ProvinceInfo:
    province_fa: str
    province_en: Optional[str]


@dataclass
class LocationResolution:
    location: LocationInfo
    untranslated: List[str] = field(default_factory=list)


@dataclass
class Analysis:
    dates: List[str] = field(default_factory=list)
    locations: LocationInfo = field(default_factory=LocationInfo)
    confidence: float = 0.0
    raw_response: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dates": list(self.dates),
            "locations": self.locations.to_dict(),
            "confidence": self.confidence,
            "raw_response": self.raw_response,
        }

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "Analysis":
        if not d: return cls()
        return cls(
            dates=[str(x) for x in d.get("dates") or [] if x],
            locations=LocationInfo.from_dict(d.get("locations")),
            confidence=float(d.get("confidence") or 0.0),
            raw_response=d.get("raw_response"),
        )
