import json
from datetime import datetime, timezone

import pytest

from main import albums_frame, build_parser, main
from models import Album, AlbumItem

UTC = timezone.utc


def test_parser():
    args = build_parser().parse_args(["download", "--from", "2025-01-01", "--resume"])
    assert args.date_from == "2025-01-01" and args.resume and not args.dry_run
    args = build_parser().parse_args(["organize", "--keep-raw", "--metadata-only"])
    assert args.keep_raw and args.metadata_only
    args = build_parser().parse_args(["serve", "--port", "9000"])
    assert args.port == 9000
    args = build_parser().parse_args(["preview", "--from", "2025-01-01", "--to", "2025-01-31"])
    assert (args.date_from, args.date_to) == ("2025-01-01", "2025-01-31")
    assert build_parser().parse_args(["organize", "--no-translate"]).no_translate

def test_command_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])

def test_parse_date(capsys):
    main(["parse-date", "۱۸ دی", "--reference", "2025-01-08T15:30:00+00:00"])
    out = json.loads(capsys.readouterr().out)
    assert out == {"gregorian": "2025-01-07", "jalali": "1403/10/18", "source": "month-name-match"}

def test_resolve_location_without_gazetteer(capsys):
    main(["resolve-location", "--city", "کرج"])
    out = json.loads(capsys.readouterr().out)
    assert out["location"]["city_en"] == "Karaj"
    assert out["location"]["province_en"] == "Alborz Province"
    assert out["untranslated"] == []

def test_albums_frame(db):
    a = Album(album_id="1_1", chat_id=1, telegram_date=datetime(2025, 1, 8, 10, tzinfo=UTC),
              caption_fa="تجمع\nدر نارمک", resolved_gregorian="2025-01-07", resolved_jalali="1403/10/18",
              date_source="month-name-match", analysis={"dates": [], "confidence": 0.8},
              geocoded={"city_fa": "تهران", "city_en": "Tehran", "area_fa": "نارمک"})
    a.items = [AlbumItem(message_id=1, path="raw/1.jpg", type="photo")]
    db.add_all([a, Album(album_id="1_2", chat_id=1, telegram_date=datetime(2025, 1, 9, tzinfo=UTC))])
    db.commit()

    df = albums_frame(db)
    assert list(df["album_id"]) == ["1_1", "1_2"]
    first = df.iloc[0]
    assert first["city"] == "Tehran"
    assert first["area"] == "نارمک"
    assert first["confidence"] == 0.8
    assert first["items"] == 1
    assert first["caption"] == "تجمع در نارمک"
    assert df.iloc[1]["items"] == 0
