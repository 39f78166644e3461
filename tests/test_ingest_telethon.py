from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from config import parse_iso, req
from ingest_telethon import PreviewStats, album_key, file_extension, format_bytes, format_duration, media_kind


def message(id=1, grouped_id=None, photo=None, document=None, file=None):
    return SimpleNamespace(id=id, grouped_id=grouped_id, photo=photo, document=document, file=file)


@pytest.mark.parametrize("mime,name,ext", [
    ("video/mp4", "clip.MOV", ".mov"),
    ("video/mp4", None, ".mp4"),
    ("image/webp", "", ".webp"),
    ("application/x-unknown", None, ".bin"),
    (None, None, ".bin"),
])
def test_file_extension(mime, name, ext):
    assert file_extension(mime, name) == ext

def test_media_kind():
    assert media_kind(message(photo=object())) == ("photo", ".jpg")
    video = message(document=object(), file=SimpleNamespace(mime_type="video/mp4", name=None))
    assert media_kind(video) == ("video", ".mp4")
    pdf = message(document=object(), file=SimpleNamespace(mime_type="application/pdf", name="report.pdf"))
    assert media_kind(pdf) == ("document", ".pdf")
    assert media_kind(message()) is None

def test_album_key_groups_by_grouped_id():
    assert album_key(-100123, message(id=7, grouped_id=555)) == "-100123_555"
    assert album_key(-100123, message(id=7)) == "-100123_7"

def test_parse_iso():
    assert parse_iso("2025-01-07") == datetime(2025, 1, 7, tzinfo=timezone.utc)
    tehran = parse_iso("2025-01-07T03:30:00+03:30")
    assert tehran == datetime(2025, 1, 7, tzinfo=timezone.utc)
    assert tehran.utcoffset() == timedelta(0)

def test_req(monkeypatch):
    monkeypatch.setenv("TG_CHANNEL", "@news")
    assert req("TG_CHANNEL") == "@news"
    monkeypatch.delenv("TG_CHANNEL")
    with pytest.raises(RuntimeError, match="Missing TG_CHANNEL"):
        req("TG_CHANNEL")

class TestPreview:
    def test_counts_and_estimates(self):
        p = PreviewStats()
        t1 = datetime(2025, 1, 7, 10, tzinfo=timezone.utc)
        t2 = datetime(2025, 1, 8, 10, tzinfo=timezone.utc)
        photo = message(id=1, grouped_id=9, photo=object())
        photo.message = "تجمع در نارمک"
        video = message(id=2, grouped_id=9, document=object(),
                        file=SimpleNamespace(mime_type="video/mp4", name=None, size=3_000_000))
        video.message = ""
        pdf = message(id=3, document=object(), file=SimpleNamespace(mime_type="application/pdf", name="a.pdf", size=None))
        pdf.message = None
        poll = message(id=4)
        poll.message = "poll"
        for m, when in ((photo, t2), (video, t2), (pdf, t1), (poll, t1)):
            p.add(-100, m, when)

        assert p.media_messages == 3
        assert p.albums == {"-100_9", "-100_3"}
        assert (p.photos, p.videos, p.documents) == (1, 1, 1)
        assert p.with_caption == 1
        assert p.size_bytes == 500 * 1024 + 3_000_000
        assert (p.earliest, p.latest) == (t1, t2)
        assert p.download_seconds() == 3
        assert p.analyze_seconds() == 60

    @pytest.mark.parametrize("n,text", [(0, "0 B"), (512, "512.00 B"), (1536, "1.50 KB"), (3 * 1024 ** 3, "3.00 GB")])
    def test_format_bytes(self, n, text):
        assert format_bytes(n) == text

    @pytest.mark.parametrize("seconds,text", [(42, "42 seconds"), (90, "1m 30s"), (7320, "2h 2m")])
    def test_format_duration(self, seconds, text):
        assert format_duration(seconds) == text
