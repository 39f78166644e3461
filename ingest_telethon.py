# ingest_telethon.py — pull media albums from a channel into RAW_DIR and the album store
#
# Messages sharing a grouped_id form one album; the first caption seen wins.
# Files land in RAW_DIR/<YYYY-MM-DD>/<message_id><ext>.

import asyncio
import logging
import os
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Set, Tuple

from telethon import TelegramClient
from telethon.sessions import StringSession

from config import TelegramSettings
from db import SessionLocal, init_db
from models import Album, AlbumItem

log = logging.getLogger(__name__)

DOWNLOAD_INTERVAL = 1.0   # seconds between media downloads
COMMIT_EVERY = 50

MIME_EXT = {
    "image/jpeg": ".jpg", "image/png": ".png", "image/gif": ".gif", "image/webp": ".webp",
    "video/mp4": ".mp4", "video/quicktime": ".mov", "video/webm": ".webm",
    "audio/mpeg": ".mp3", "audio/ogg": ".ogg", "application/pdf": ".pdf",
}


def file_extension(mime_type: Optional[str], filename: Optional[str]) -> str:
    if filename:
        ext = os.path.splitext(filename)[1].lower()
        if ext:
            return ext
    return MIME_EXT.get((mime_type or "").lower(), ".bin")

def media_kind(message) -> Optional[Tuple[str, str]]:
    """(type, extension) for a message's file, None for media without one (polls, link previews)."""
    if message.photo:
        return "photo", ".jpg"
    if message.document:
        mime = message.file.mime_type if message.file else None
        name = message.file.name if message.file else None
        kind = "video" if (mime or "").startswith("video/") else "document"
        return kind, file_extension(mime, name)
    return None

def album_key(chat_id: int, message) -> str:
    return f"{chat_id}_{message.grouped_id or message.id}"

def make_client(tg: TelegramSettings) -> TelegramClient:
    session = StringSession(tg.session_string) if tg.session_string else tg.session
    return TelegramClient(session, tg.api_id, tg.api_hash, connection_retries=5)

async def download_channel(tg: TelegramSettings, raw_dir: str, resume: bool = False,
                           dry_run: bool = False, metadata_only: bool = False) -> Counter:
    stats: Counter = Counter()
    raw = Path(raw_dir)
    client = make_client(tg)
    await client.start()
    entity = await client.get_entity(tg.channel)
    print(f"✅ Connected. Reading {tg.channel} from {tg.date_to:%Y-%m-%d} back to {tg.date_from:%Y-%m-%d}")

    init_db()
    db = SessionLocal()
    try:
        known = {a for (a,) in db.query(Album.album_id)} if resume else set()
        albums: Dict[str, Album] = {}
        processed = 0

        async for m in client.iter_messages(entity, offset_date=tg.date_to):
            when = m.date.astimezone(timezone.utc)
            if when < tg.date_from:
                break
            if when > tg.date_to or not m.media:
                continue
            kind = media_kind(m)
            if kind is None:
                continue
            key = album_key(entity.id, m)
            if key in known:
                stats["skipped"] += 1
                continue

            album = albums.get(key)
            if album is None:
                if not dry_run:
                    old = db.query(Album).filter_by(album_id=key).one_or_none()
                    if old is not None:
                        db.delete(old); db.flush()
                album = Album(album_id=key, chat_id=entity.id, telegram_date=when, caption_fa="")
                albums[key] = album
                if not dry_run:
                    db.add(album)
                stats["albums_total"] += 1
            if m.message and not album.caption_fa:
                album.caption_fa = m.message

            item_type, ext = kind
            path = raw / when.strftime("%Y-%m-%d") / f"{m.id}{ext}"
            item = AlbumItem(message_id=m.id, path=str(path), type=item_type, size=None)

            if dry_run:
                print(f"   [DRY RUN] Would download: {path}")
            elif not metadata_only:
                path.parent.mkdir(parents=True, exist_ok=True)
                try:
                    saved = await client.download_media(m, file=str(path))
                except Exception as e:  # skip the file, keep walking the channel
                    log.error("Failed to download %s: %s", path, e)
                    stats["errors"] += 1
                    continue
                if saved:
                    item.size = os.path.getsize(saved)
                    stats["files_size_bytes"] += item.size
                await asyncio.sleep(DOWNLOAD_INTERVAL)
            if not dry_run:
                album.items.append(item)
            stats["files_total"] += 1

            processed += 1
            if processed % COMMIT_EVERY == 0:
                if not dry_run:
                    db.commit()
                print(f"   Processed {processed} messages...")
        if not dry_run:
            db.commit()
    finally:
        db.close()
        await client.disconnect()
    return stats

# ---------- preview ----------

PHOTO_SIZE_ESTIMATE = 500 * 1024   # Telegram does not report photo sizes up front
ANALYZE_SECONDS_PER_ALBUM = 30

@dataclass
class PreviewStats:
    """What a download of the same range would fetch. Nothing is downloaded."""
    media_messages: int = 0
    with_caption: int = 0
    photos: int = 0
    videos: int = 0
    documents: int = 0
    size_bytes: int = 0
    earliest: Optional[datetime] = None
    latest: Optional[datetime] = None
    albums: Set[str] = field(default_factory=set)

    def add(self, chat_id: int, message, when: datetime) -> None:
        kind = media_kind(message)
        if kind is None:
            return
        self.media_messages += 1
        self.albums.add(album_key(chat_id, message))
        if message.message:
            self.with_caption += 1
        if self.earliest is None or when < self.earliest:
            self.earliest = when
        if self.latest is None or when > self.latest:
            self.latest = when
        if kind[0] == "photo":
            self.photos += 1
            self.size_bytes += PHOTO_SIZE_ESTIMATE
            return
        if kind[0] == "video":
            self.videos += 1
        else:
            self.documents += 1
        self.size_bytes += (message.file.size if message.file else 0) or 0

    def download_seconds(self) -> float:
        return self.media_messages * DOWNLOAD_INTERVAL

    def analyze_seconds(self) -> float:
        return len(self.albums) * ANALYZE_SECONDS_PER_ALBUM

def format_bytes(n: int) -> str:
    if n <= 0: return "0 B"
    size = float(n)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} GB"

def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{round(seconds)} seconds"
    if seconds < 3600:
        return f"{int(seconds // 60)}m {round(seconds % 60)}s"
    return f"{int(seconds // 3600)}h {int(seconds % 3600 // 60)}m"

def print_preview(p: PreviewStats) -> None:
    print("\n📊 Preview")
    print(f"   Albums:        {len(p.albums)}")
    print(f"   Files:         {p.media_messages} (with caption: {p.with_caption})")
    print(f"   Photos/videos/documents: {p.photos}/{p.videos}/{p.documents}")
    print(f"   Size:          ~{format_bytes(p.size_bytes)}")
    if p.earliest and p.latest:
        print(f"   Dates:         {p.earliest:%Y-%m-%d} → {p.latest:%Y-%m-%d}")
    print(f"   Download:      ~{format_duration(p.download_seconds())}")
    print(f"   AI analysis:   ~{format_duration(p.analyze_seconds())}")
    if p.media_messages > 500:
        print("   Tip: use --from/--to for smaller batches, --metadata-only to skip media")

async def preview_channel(tg: TelegramSettings) -> PreviewStats:
    """Walk the date range like download_channel, counting instead of fetching."""
    p = PreviewStats()
    client = make_client(tg)
    await client.start()
    try:
        entity = await client.get_entity(tg.channel)
        print(f"🔍 Scanning {tg.channel} from {tg.date_from:%Y-%m-%d} to {tg.date_to:%Y-%m-%d} (no downloads)")
        async for m in client.iter_messages(entity, offset_date=tg.date_to):
            when = m.date.astimezone(timezone.utc)
            if when < tg.date_from:
                break
            if when > tg.date_to or not m.media:
                continue
            before = p.media_messages
            p.add(entity.id, m, when)
            if p.media_messages != before and p.media_messages % 100 == 0:
                print(f"   Scanned {p.media_messages} media messages...")
    finally:
        await client.disconnect()
    return p
