# main.py — command line for the download → analyze → resolve → geocode → organize pipeline

import argparse
import asyncio
import json
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional

import pandas as pd
import uvicorn
from sqlalchemy.orm import Session

import build_gazetteer
from analysis import AIClient, make_client, provider_chain, translate_captions
from config import load_telegram_settings, parse_iso, settings
from db import SessionLocal, init_db
from gazetteer import Gazetteer
from ingest_telethon import download_channel, preview_channel, print_preview
from location_resolver import resolve_location
from models import Album
from organizer import captions_to_translate, organize_albums
from pipeline import analyze_albums, geocode_albums, resolve_albums, resolve_date
from records import Analysis, LocationInfo


def print_stats(title: str, stats: Counter) -> None:
    print(f"\n✅ {title}")
    for key, n in stats.items():
        if key == "files_size_bytes":
            print(f"   {key}: {n / 1024 / 1024:.1f} MB")
        else:
            print(f"   {key}: {n}")

def _client() -> AIClient:
    return make_client(settings)

def albums_frame(db: Session) -> pd.DataFrame:
    """One row per album, for spreadsheets."""
    rows = []
    for a in db.query(Album).order_by(Album.telegram_date.asc()).all():
        loc = LocationInfo.from_dict(a.geocoded)
        rows.append({
            "album_id": a.album_id,
            "telegram_date": a.telegram_date.isoformat(),
            "date": a.resolved_gregorian,
            "date_jalali": a.resolved_jalali,
            "date_source": a.date_source,
            "country": loc.country_en or loc.country_fa,
            "province": loc.province_en or loc.province_fa,
            "city": loc.city_en or loc.city_fa,
            "area": loc.area_en or loc.area_fa,
            "lat": loc.lat,
            "lon": loc.lon,
            "confidence": Analysis.from_dict(a.analysis).confidence if a.analysis else None,
            "items": len(a.items),
            "path": a.organized_path,
            "caption": (a.caption_fa or "").replace("\n", " "),
        })
    return pd.DataFrame(rows)

# ------------------- commands -------------------

def cmd_download(args) -> None:
    tg = load_telegram_settings(args.date_from, args.date_to)
    stats = asyncio.run(download_channel(tg, settings.raw_dir, resume=args.resume,
                                         dry_run=args.dry_run, metadata_only=args.metadata_only))
    print_stats("Download complete", stats)

def cmd_preview(args) -> None:
    tg = load_telegram_settings(args.date_from, args.date_to)
    print_preview(asyncio.run(preview_channel(tg)))

def cmd_analyze(args) -> None:
    async def run(db):
        async with _client() as client:
            return await analyze_albums(db, client, concurrency=settings.ai_concurrency,
                                        resume=args.resume, dry_run=args.dry_run)
    print(f"🔍 Analyzing with {' → '.join(provider_chain(settings.ai_provider, settings.ai_fallbacks))}")
    init_db()
    db = SessionLocal()
    try:
        stats = asyncio.run(run(db))
    finally:
        db.close()
    print_stats("Analysis complete", stats)

def cmd_resolve(args) -> None:
    init_db()
    db = SessionLocal()
    try:
        stats = resolve_albums(db, dry_run=args.dry_run)
    finally:
        db.close()
    print_stats("Date resolution complete", stats)

def cmd_geocode(args) -> None:
    gazetteer = Gazetteer.open(settings.gazetteer_url)
    print(f"🌍 Geocoding ({gazetteer.summary()})")

    async def run(db):
        async with _client() as client:
            return await geocode_albums(db, gazetteer, client, concurrency=settings.ai_concurrency,
                                        resume=args.resume, dry_run=args.dry_run,
                                        home_city_fa=settings.home_city_fa)
    init_db()
    db = SessionLocal()
    try:
        stats = asyncio.run(run(db))
    finally:
        db.close()
    print_stats("Geocoding complete", stats)

def cmd_organize(args) -> None:
    async def translate(captions):
        async with _client() as client:
            return await translate_captions(client, captions, concurrency=settings.ai_concurrency)
    init_db()
    db = SessionLocal()
    try:
        captions_en = None
        if settings.translate_captions and not args.no_translate and not args.dry_run:
            pending = captions_to_translate(db, settings.output_dir, resume=args.resume)
            if pending:
                print(f"🌐 Translating {len(pending)} captions")
                captions_en = asyncio.run(translate(pending))
        stats = organize_albums(db, settings.output_dir, settings.raw_dir, resume=args.resume,
                                dry_run=args.dry_run, keep_raw=args.keep_raw,
                                metadata_only=args.metadata_only, captions_en=captions_en)
    finally:
        db.close()
    print_stats("Organization complete", stats)

def cmd_build_gazetteer(args) -> None:
    argv = ["--url", args.url or settings.gazetteer_url]
    if args.source:
        argv += ["--source", args.source]
    build_gazetteer.main(argv)

def cmd_parse_date(args) -> None:
    ref = parse_iso(args.reference) if args.reference else datetime.now(timezone.utc)
    print(json.dumps(resolve_date([args.text], args.text, ref).to_dict(), ensure_ascii=False))

def cmd_resolve_location(args) -> None:
    candidate = LocationInfo(province_fa=args.province, city_fa=args.city, area_fa=args.area,
                             is_foreign=args.foreign)
    res = resolve_location(candidate, Gazetteer.open(settings.gazetteer_url), settings.home_city_fa)
    print(json.dumps({"location": res.location.to_dict(), "untranslated": res.untranslated},
                     ensure_ascii=False, indent=2))

def cmd_export(args) -> None:
    init_db()
    db = SessionLocal()
    try:
        df = albums_frame(db)
    finally:
        db.close()
    if df.empty:
        print("No albums yet.")
        return
    df.to_csv(args.out, index=False, encoding="utf-8-sig")
    print(f"✅ Saved {len(df)} rows to {args.out}")

def cmd_serve(args) -> None:
    uvicorn.run("api:app", host=args.host, port=args.port, reload=False)

# ------------------- parser -------------------

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="tdownloader", description="Telegram channel media organizer (Farsi dates & places)")
    ap.add_argument("-v", "--verbose", action="store_true")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("download", help="download albums from the channel")
    p.add_argument("--from", dest="date_from", help="ISO start date (default TG_DATE_FROM)")
    p.add_argument("--to", dest="date_to", help="ISO end date (default TG_DATE_TO)")
    p.add_argument("--resume", action="store_true")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--metadata-only", action="store_true")
    p.set_defaults(func=cmd_download)

    p = sub.add_parser("preview", help="count albums, files and size in the date range without downloading")
    p.add_argument("--from", dest="date_from", help="ISO start date (default TG_DATE_FROM)")
    p.add_argument("--to", dest="date_to", help="ISO end date (default TG_DATE_TO)")
    p.set_defaults(func=cmd_preview)

    p = sub.add_parser("analyze", help="extract dates/locations from captions with the AI model")
    p.add_argument("--resume", action="store_true")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(func=cmd_analyze)

    p = sub.add_parser("resolve", help="turn extracted dates into Gregorian/Jalali dates")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(func=cmd_resolve)

    p = sub.add_parser("geocode", help="bilingual location records with province and coordinates")
    p.add_argument("--resume", action="store_true")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(func=cmd_geocode)

    p = sub.add_parser("organize", help="move media into the date/location folder tree")
    p.add_argument("--resume", action="store_true")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--keep-raw", action="store_true")
    p.add_argument("--metadata-only", action="store_true")
    p.add_argument("--no-translate", action="store_true", help="skip caption_en.txt")
    p.set_defaults(func=cmd_organize)

    p = sub.add_parser("build-gazetteer", help="download GeoNames and build the locations database")
    p.add_argument("--source", help="local IR.zip / IR.txt")
    p.add_argument("--url", help="target database URL (default GAZETTEER_URL)")
    p.set_defaults(func=cmd_build_gazetteer)

    p = sub.add_parser("parse-date", help="resolve one Farsi date phrase")
    p.add_argument("text")
    p.add_argument("--reference", help="ISO timestamp (default: now)")
    p.set_defaults(func=cmd_parse_date)

    p = sub.add_parser("resolve-location", help="resolve one location candidate")
    p.add_argument("--city")
    p.add_argument("--area")
    p.add_argument("--province")
    p.add_argument("--foreign", action="store_true")
    p.set_defaults(func=cmd_resolve_location)

    p = sub.add_parser("export", help="write all albums to a CSV file")
    p.add_argument("--out", default="albums.csv")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("serve", help="run the search API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.set_defaults(func=cmd_serve)
    return ap

def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    args.func(args)

if __name__ == "__main__":
    main()
