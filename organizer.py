# organizer.py — move album media into the dated, bilingual location tree
#
# output/<2025-01-07__1403-10-18>/<ایران__Iran>/<استان_تهران__Tehran_Province>/<تهران__Tehran>/<نارمک__Narmak>/album_<id>/

from __future__ import annotations
import json
import logging
import re
import shutil
import time
import unicodedata
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Mapping, Optional

from sqlalchemy.orm import Session

from models import Album
from records import LocationInfo

log = logging.getLogger(__name__)

UNKNOWN = "unknown"
MAX_NAME = 100

_COMBINING_RX = re.compile(r"[\u0300-\u036f]")
_UNSAFE_RX = re.compile(r"[^\w\s\u0600-\u06FF\-]")
_SPACES_RX = re.compile(r"\s+")
_UNDERSCORES_RX = re.compile(r"_+")


def safe_name(text: Optional[str]) -> str:
    """Filesystem-safe folder name; keeps Persian letters, falls back to 'unknown'."""
    if not text: return UNKNOWN
    t = _COMBINING_RX.sub("", unicodedata.normalize("NFKD", text))
    t = _UNSAFE_RX.sub("_", t)
    t = _SPACES_RX.sub("_", t)
    t = _UNDERSCORES_RX.sub("_", t).strip("_")
    return t[:MAX_NAME] or UNKNOWN

def bilingual_folder_name(fa: Optional[str], en: Optional[str]) -> str:
    f, e = safe_name(fa), safe_name(en)
    if f == e or e == UNKNOWN:
        return f
    if f == UNKNOWN:
        return e
    return f"{f}__{e}"

def format_date_for_folder(gregorian: str, jalali: str) -> str:
    return f"{gregorian.split('T')[0]}__{jalali.replace('/', '-')}"

def build_location_path(loc: LocationInfo) -> Path:
    parts = []
    if loc.country_fa or loc.country_en:
        parts.append(bilingual_folder_name(loc.country_fa, loc.country_en))
    if loc.province_fa or loc.province_en:
        parts.append(bilingual_folder_name(loc.province_fa, loc.province_en))
    # "ایران" as the city would just repeat the country folder
    city_is_country = (loc.city_fa and loc.city_fa == loc.country_fa) or (loc.city_en and loc.city_en == loc.country_en)
    if (loc.city_fa or loc.city_en) and not city_is_country:
        parts.append(bilingual_folder_name(loc.city_fa, loc.city_en))
    if loc.area_fa or loc.area_en:
        parts.append(bilingual_folder_name(loc.area_fa, loc.area_en))
    return Path(*parts) if parts else Path(UNKNOWN)

def album_folder(album: Album) -> str:
    return f"album_{safe_name(album.album_id)}"

def album_destination(album: Album, output_dir: Path) -> Path:
    if album.resolved_gregorian and album.resolved_jalali:
        day = format_date_for_folder(album.resolved_gregorian, album.resolved_jalali)
    else:
        day = album.telegram_date.date().isoformat()
    return output_dir / day / build_location_path(LocationInfo.from_dict(album.geocoded)) / album_folder(album)

def move_file(src: Path, dest_dir: Path) -> Path:
    """Move src into dest_dir; a name already taken gets a millisecond suffix."""
    dest = dest_dir / src.name
    if dest.exists():
        dest = dest_dir / f"{src.stem}_{int(time.time() * 1000)}{src.suffix}"
        log.warning("Renamed duplicate: %s", dest)
    shutil.move(str(src), str(dest))
    return dest

def _already_organized(album: Album, output_dir: Path) -> bool:
    if album.organized_path and (Path(album.organized_path) / "meta.json").exists():
        return True
    return any(output_dir.glob(f"**/{album_folder(album)}/meta.json"))

def _write_metadata(album: Album, dest: Path, captions_en: Optional[Mapping[str, str]] = None) -> None:
    if album.caption_fa:
        (dest / "caption_fa.txt").write_text(album.caption_fa, encoding="utf-8")
        if captions_en is not None:
            en = captions_en.get(album.album_id)
            if en:
                (dest / "caption_en.txt").write_text(en, encoding="utf-8")
            else:
                log.warning("Translation failed, no caption_en.txt for %s", album.album_id)
    resolved = None
    if album.resolved_gregorian:
        resolved = {"gregorian": album.resolved_gregorian, "jalali": album.resolved_jalali, "source": album.date_source}
    meta = {
        "album_id": album.album_id,
        "telegram_date": album.telegram_date.isoformat(),
        "resolved_dates": resolved,
        "locations": album.geocoded or {},
        "analysis_confidence": (album.analysis or {}).get("confidence"),
        "organized_at": datetime.now(timezone.utc).isoformat(),
    }
    (dest / "meta.json").write_text(json.dumps(meta, ensure_ascii=False, indent=2), encoding="utf-8")
    items = [{"id": it.message_id, "filename": Path(it.path).name, "type": it.type} for it in album.items]
    (dest / "items.json").write_text(json.dumps(items, ensure_ascii=False, indent=2), encoding="utf-8")

def remove_empty_dirs(raw_dir: Path) -> int:
    removed = 0
    if not raw_dir.is_dir():
        return removed
    for d in raw_dir.iterdir():
        if d.is_dir() and not any(d.iterdir()):
            d.rmdir()
            removed += 1
    return removed

def captions_to_translate(db: Session, output_dir: str, resume: bool = False) -> Dict[str, str]:
    """album_id → Farsi caption for every album organize_albums is about to write."""
    out_root = Path(output_dir)
    return {a.album_id: a.caption_fa for a in db.query(Album).filter(Album.caption_fa.isnot(None)).all()
            if a.caption_fa.strip() and not (resume and _already_organized(a, out_root))}

def organize_albums(db: Session, output_dir: str, raw_dir: str, resume: bool = False, dry_run: bool = False,
                    keep_raw: bool = False, metadata_only: bool = False,
                    captions_en: Optional[Mapping[str, str]] = None) -> Counter:
    """
    Move every album into its folder and write its metadata. With captions_en
    (album_id → English caption) a caption_en.txt is written beside caption_fa.txt.
    """
    stats: Counter = Counter()
    out_root, raw_root = Path(output_dir), Path(raw_dir)
    albums = db.query(Album).order_by(Album.telegram_date.asc(), Album.id.asc()).all()

    for album in albums:
        if resume and _already_organized(album, out_root):
            stats["skipped"] += 1
            continue
        dest = album_destination(album, out_root)

        if dry_run:
            print(f"   [DRY RUN] {album.album_id} → {dest.relative_to(out_root)}")
            for it in album.items:
                print(f"     - {Path(it.path).name}")
            stats["organized"] += 1
            continue

        dest.mkdir(parents=True, exist_ok=True)
        if not metadata_only:
            for it in album.items:
                src = Path(it.path)
                if not src.exists():
                    log.error("Source file not found: %s (%s)", it.path, album.album_id)
                    stats["errors"] += 1
                    continue
                moved = move_file(src, dest)
                stats["files_total"] += 1
                stats["files_size_bytes"] += moved.stat().st_size
        _write_metadata(album, dest, captions_en)
        album.organized_path = str(dest)
        stats["organized"] += 1
        if stats["organized"] % 20 == 0:
            db.commit()
            print(f"   Organized {stats['organized']}/{len(albums) - stats['skipped']}...")

    if not dry_run:
        db.commit()
        if not keep_raw:
            stats["raw_dirs_removed"] = remove_empty_dirs(raw_root)
    return stats
