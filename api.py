# api.py — FastAPI search over organized albums + the date/location resolvers

import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from config import parse_iso, settings
from db import SessionLocal
from gazetteer import Gazetteer
from location_resolver import resolve_location
from models import Album
from pipeline import resolve_date
from records import LocationInfo

app = FastAPI(title="TDownloader API", version=os.getenv("APP_VERSION", "dev"))

# CORS (open while prototyping)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_gazetteer: Optional[Gazetteer] = None

# ------------------- helpers -------------------

def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_gazetteer() -> Gazetteer:
    """Loaded on first use and kept for the life of the process."""
    global _gazetteer
    if _gazetteer is None:
        _gazetteer = Gazetteer.open(settings.gazetteer_url)
    return _gazetteer

def _reference(s: Optional[str]) -> datetime:
    if not s:
        return datetime.now(timezone.utc)
    try:
        return parse_iso(s)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"bad reference date: {s}")

# ------------------- bodies -------------------

class LocationCandidate(BaseModel):
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

class ResolvedLocationOut(BaseModel):
    location: Dict[str, Any]
    untranslated: List[str] = []

class ResolvedDateOut(BaseModel):
    gregorian: str
    jalali: str
    source: str

# ------------------- endpoints -------------------

@app.get("/health")
def health(gazetteer: Gazetteer = Depends(get_gazetteer)) -> Dict[str, Any]:
    return {"ok": True, "gazetteer": gazetteer.available}

@app.get("/resolve/date", response_model=ResolvedDateOut)
def resolve_date_endpoint(
    text: str = Query(..., description="Farsi date phrase or caption, e.g. '۱۸ دی' or 'دیروز'"),
    reference: Optional[str] = Query(None, description="ISO timestamp the phrase is relative to (default: now)"),
):
    return resolve_date([text], text, _reference(reference)).to_dict()

@app.post("/resolve/location", response_model=ResolvedLocationOut)
def resolve_location_endpoint(body: LocationCandidate, gazetteer: Gazetteer = Depends(get_gazetteer)):
    res = resolve_location(LocationInfo.from_dict(body.model_dump()), gazetteer, settings.home_city_fa)
    return {"location": res.location.to_dict(), "untranslated": res.untranslated}

@app.get("/albums")
def albums(
    date_from: Optional[str] = Query(None, description="YYYY-MM-DD (resolved Gregorian date)"),
    date_to: Optional[str] = Query(None, description="YYYY-MM-DD"),
    province: Optional[str] = Query(None, description="Province name, Farsi or English"),
    city: Optional[str] = Query(None, description="City name, Farsi or English"),
    source: Optional[str] = Query(None, description="Date source, e.g. 'month-name-match'"),
    q: Optional[str] = Query(None, description="Free-text search in the caption"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Search albums by resolved date, place and caption text."""
    qry = db.query(Album)
    if date_from:
        qry = qry.filter(Album.resolved_gregorian >= date_from)
    if date_to:
        qry = qry.filter(Album.resolved_gregorian <= date_to)
    if province:
        qry = qry.filter(or_(Album.geocoded["province_fa"].as_string() == province,
                             Album.geocoded["province_en"].as_string() == province))
    if city:
        qry = qry.filter(or_(Album.geocoded["city_fa"].as_string() == city,
                             Album.geocoded["city_en"].as_string() == city))
    if source:
        qry = qry.filter(Album.date_source == source)
    if q:
        qry = qry.filter(Album.caption_fa.ilike(f"%{q}%"))

    qry = qry.order_by(Album.resolved_gregorian.is_(None), Album.resolved_gregorian.desc(), Album.telegram_date.desc())
    total = qry.count()
    rows = qry.offset(offset).limit(limit).all()

    results: List[Dict[str, Any]] = []
    for a in rows:
        results.append({
            "album_id": a.album_id,
            "telegram_date": a.telegram_date,
            "date": a.resolved_gregorian,
            "date_jalali": a.resolved_jalali,
            "date_source": a.date_source,
            "location": a.geocoded or {},
            "items": len(a.items),
            "path": a.organized_path,
            "snippet": (a.caption_fa or "")[:200],
        })

    return {
        "count": total,
        "limit": limit,
        "offset": offset,
        "results": results,
    }
