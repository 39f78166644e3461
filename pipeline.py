# pipeline.py — analyze / resolve / geocode stages over the album store
#
# Each stage takes an open Session, updates Album rows in place and returns a
# Counter of what happened. Nothing is written on dry runs.

from __future__ import annotations
import logging
from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from analysis import LOW_CONFIDENCE, AIClient, analyze_captions, translate_names
from caption_extractor import date_from_caption, location_from_caption
from date_parser import resolve_candidates
from gazetteer import Gazetteer
from location_resolver import apply_translations, collect_untranslated, resolve_location
from models import Album
from place_names import HOME_CITY_FA
from records import (
    CAPTION_FALLBACK, DATE_SOURCES, ORIGIN_TIMESTAMP_FALLBACK,
    Analysis, LocationInfo, LocationResolution, ResolvedDate,
)

log = logging.getLogger(__name__)

FROM_AI = "ai"
FROM_CAPTION = "caption"


def resolve_date(dates: Iterable[str], caption: Optional[str], reference: datetime) -> ResolvedDate:
    """
    AI date strings first (Jalali phrase, then relative/weekday word), then a
    scan of the caption, then the message's own date. Always returns a date.
    """
    hit = resolve_candidates(dates, reference)
    if hit is not None:
        return ResolvedDate.make(hit[0], hit[1])
    found = date_from_caption(caption or "", reference)
    if found is not None:
        return ResolvedDate.make(found, CAPTION_FALLBACK)
    return ResolvedDate.make(reference, ORIGIN_TIMESTAMP_FALLBACK)

def location_candidate(analysis: Analysis, caption: Optional[str],
                       home_city_fa: str = HOME_CITY_FA) -> Tuple[Optional[LocationInfo], Optional[str]]:
    """The AI's location if it named one, else whatever the caption scan finds."""
    loc = analysis.locations
    if loc.is_foreign or not loc.is_empty():
        return loc, FROM_AI
    found = location_from_caption(caption or "", home_city_fa)
    if found is not None:
        return found, FROM_CAPTION
    return None, None

def _albums(db: Session) -> List[Album]:
    return db.query(Album).order_by(Album.telegram_date.asc(), Album.id.asc()).all()

def _chunks(seq: Sequence, size: int):
    size = max(1, size)
    for i in range(0, len(seq), size):
        yield seq[i:i + size]

# ---------- analyze ----------

async def analyze_albums(db: Session, client: AIClient, concurrency: int = 1,
                         resume: bool = False, dry_run: bool = False) -> Counter:
    stats: Counter = Counter()
    todo: List[Album] = []
    for album in _albums(db):
        if resume and album.analysis:
            stats["skipped"] += 1
            continue
        if not (album.caption_fa or "").strip():
            if not dry_run:
                album.analysis = Analysis().to_dict()
            log.warning("Empty caption, skipping analysis: %s", album.album_id)
            stats["empty"] += 1
            continue
        if dry_run:
            print(f"   [DRY RUN] Would analyze: {album.album_id}  {album.caption_fa[:100]}")
            stats["would_analyze"] += 1
            continue
        todo.append(album)

    done = 0
    for batch in _chunks(todo, concurrency):
        jobs = [(a.caption_fa, a.telegram_date.isoformat()) for a in batch]
        results = await analyze_captions(client, jobs, concurrency)
        for album, result in zip(batch, results):
            if result is None:
                album.analysis = Analysis().to_dict()
                stats["errors"] += 1
                continue
            album.analysis = result.to_dict()
            stats["analyzed"] += 1
            if result.confidence < LOW_CONFIDENCE:
                stats["low_confidence"] += 1
        db.commit()  # per batch, so a crash loses at most one batch
        done += len(batch)
        if done % 10 == 0 or done == len(todo):
            print(f"   Analyzed {done}/{len(todo)}...")

    if not dry_run:
        db.commit()
    return stats

# ---------- resolve ----------

def resolve_albums(db: Session, dry_run: bool = False) -> Counter:
    stats: Counter = Counter({s: 0 for s in DATE_SOURCES})
    for album in _albums(db):
        rd = resolve_date(Analysis.from_dict(album.analysis).dates, album.caption_fa, album.telegram_date)
        stats[rd.source] += 1
        stats["total"] += 1
        greg = rd.to_dict()["gregorian"]
        if dry_run:
            print(f"   {album.album_id}: {greg} / {rd.jalali} ({rd.source})")
            continue
        album.resolved_gregorian = greg
        album.resolved_jalali = rd.jalali
        album.date_source = rd.source
    if not dry_run:
        db.commit()
    return stats

# ---------- geocode ----------

async def geocode_albums(db: Session, gazetteer: Gazetteer, client: Optional[AIClient] = None,
                         concurrency: int = 1, resume: bool = False, dry_run: bool = False,
                         home_city_fa: str = HOME_CITY_FA) -> Counter:
    """
    Phase 1 resolves every album against the gazetteer and static tables.
    Phase 2 sends the names nobody could translate to the model in batches and
    fills them into every record that needs them.
    """
    stats: Counter = Counter()
    results: List[LocationResolution] = []
    pending: List[Tuple[Album, LocationInfo]] = []

    for album in _albums(db):
        if resume and album.geocoded:
            stats["skipped"] += 1
            continue
        candidate, origin = location_candidate(Analysis.from_dict(album.analysis), album.caption_fa, home_city_fa)
        if candidate is None:
            if not dry_run:
                album.geocoded = {}
            stats["no_location"] += 1
            continue
        res = resolve_location(candidate, gazetteer, home_city_fa)
        results.append(res)
        stats["from_ai" if origin == FROM_AI else "from_caption"] += 1
        if dry_run:
            loc = res.location
            print(f"   [DRY RUN] {album.album_id}: {loc.city_fa or '?'} → {loc.city_en or '(needs AI)'} ({origin})")
            continue
        pending.append((album, res.location))

    untranslated = collect_untranslated(results)
    stats["untranslated"] = len(untranslated)
    if untranslated and dry_run:
        print(f"   [DRY RUN] Would AI-translate {len(untranslated)} names:")
        for name in untranslated:
            print(f"     - {name}")
    elif untranslated and client is not None:
        print(f"   Phase 2: AI translating {len(untranslated)} unknown names...")
        translations = await translate_names(client, untranslated, concurrency)
        stats["translated"] = len(translations)
        stats["applied"] = apply_translations((loc for _, loc in pending), translations)
        for name in untranslated:
            if name not in translations:
                log.warning("Could not translate: %s", name)
                stats["warnings"] += 1
    elif untranslated:
        for name in untranslated:
            log.warning("Could not translate: %s", name)
            stats["warnings"] += 1

    if not dry_run:
        for album, loc in pending:
            album.geocoded = loc.to_dict()
        db.commit()
    return stats
