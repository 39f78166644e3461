import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from analysis import OllamaClient
from models import Album
from pipeline import analyze_albums, geocode_albums, location_candidate, resolve_albums, resolve_date
from records import (
    CAPTION_FALLBACK, EXACT_NUMERIC_JALALI, MONTH_NAME_MATCH, ORIGIN_TIMESTAMP_FALLBACK,
    RELATIVE_DAY, WEEKDAY_MATCH, Analysis, LocationInfo,
)

UTC = timezone.utc


def add_album(db, album_id, caption="", analysis=None, when=datetime(2025, 1, 8, 15, 30, tzinfo=UTC)):
    a = Album(album_id=album_id, chat_id=1, telegram_date=when, caption_fa=caption, analysis=analysis)
    db.add(a)
    db.commit()
    return a

def mock_client(handler):
    return OllamaClient("http://ollama.test", "test-model", retry_delay=0, transport=httpx.MockTransport(handler))

def ollama_reply(payload):
    return httpx.Response(200, json={"response": json.dumps(payload, ensure_ascii=False)})


class TestResolveDate:
    @pytest.mark.parametrize("dates,caption,gregorian,source", [
        (["1403/10/18"], "", "2025-01-07", EXACT_NUMERIC_JALALI),
        (["۱۸ دی"], "", "2025-01-07", MONTH_NAME_MATCH),
        (["نامعلوم", "دیروز"], "", "2025-01-07", RELATIVE_DAY),
        (["دوشنبه"], "", "2025-01-06", WEEKDAY_MATCH),
        ([], "عکس های پریروز", "2025-01-06", CAPTION_FALLBACK),
        (["نامعلوم"], "خبر فوری", "2025-01-08", ORIGIN_TIMESTAMP_FALLBACK),
    ])
    def test_sources(self, reference, dates, caption, gregorian, source):
        rd = resolve_date(dates, caption, reference)
        assert rd.to_dict()["gregorian"] == gregorian
        assert rd.source == source
        assert rd.gregorian.hour == 0 and rd.gregorian.tzinfo is not None

    def test_jalali_matches_gregorian(self, reference):
        rd = resolve_date(["1403/12/30"], None, reference)
        assert rd.to_dict() == {"gregorian": "2025-03-20", "jalali": "1403/12/30", "source": EXACT_NUMERIC_JALALI}

class TestLocationCandidate:
    def test_ai_location_wins(self):
        a = Analysis(locations=LocationInfo(city_fa="مشهد"))
        loc, origin = location_candidate(a, "تجمع در تهران")
        assert (loc.city_fa, origin) == ("مشهد", "ai")

    def test_foreign_without_names_is_still_ai(self):
        loc, origin = location_candidate(Analysis(locations=LocationInfo(is_foreign=True)), "تهران")
        assert loc.is_foreign and origin == "ai"

    def test_caption_fallback(self):
        loc, origin = location_candidate(Analysis(), "تجمع در تهران")
        assert (loc.city_fa, origin) == ("تهران", "caption")

    def test_nothing(self):
        assert location_candidate(Analysis(), "سلام") == (None, None)

def test_resolve_albums(db):
    add_album(db, "1_1", analysis={"dates": ["1403/10/18"]})
    add_album(db, "1_2", caption="دیروز در تهران", analysis={"dates": []})
    add_album(db, "1_3")
    stats = resolve_albums(db)
    assert stats["total"] == 3
    assert stats[EXACT_NUMERIC_JALALI] == 1
    assert stats[CAPTION_FALLBACK] == 1
    assert stats[ORIGIN_TIMESTAMP_FALLBACK] == 1
    assert stats[WEEKDAY_MATCH] == 0

    rows = {a.album_id: a for a in db.query(Album).all()}
    assert (rows["1_1"].resolved_gregorian, rows["1_1"].resolved_jalali) == ("2025-01-07", "1403/10/18")
    assert rows["1_2"].date_source == CAPTION_FALLBACK
    assert rows["1_3"].resolved_gregorian == "2025-01-08"

def test_resolve_albums_dry_run_writes_nothing(db):
    add_album(db, "1_1", analysis={"dates": ["1403/10/18"]})
    stats = resolve_albums(db, dry_run=True)
    assert stats["total"] == 1
    assert db.query(Album).one().resolved_gregorian is None

class TestAnalyze:
    def test_analyze_albums(self, db):
        add_album(db, "1_1", caption="تجمع در مشهد")
        add_album(db, "1_2", caption="   ")
        add_album(db, "1_3", caption="شاید تهران")

        def handler(request):
            prompt = json.loads(request.content)["prompt"]
            conf = 0.3 if "شاید" in prompt else 0.9
            return ollama_reply({"dates": ["۱۸ دی"], "locations": {"city_fa": "مشهد"}, "confidence": conf})

        async def main():
            async with mock_client(handler) as client:
                return await analyze_albums(db, client, concurrency=2)

        stats = asyncio.run(main())
        assert stats["analyzed"] == 2
        assert stats["empty"] == 1
        assert stats["low_confidence"] == 1
        rows = {a.album_id: a for a in db.query(Album).all()}
        assert rows["1_1"].analysis["dates"] == ["۱۸ دی"]
        assert rows["1_2"].analysis["dates"] == []

    def test_resume_skips_analyzed(self, db):
        add_album(db, "1_1", caption="تجمع", analysis={"dates": ["دیروز"]})

        def handler(request):
            raise AssertionError("no request expected")

        async def main():
            async with mock_client(handler) as client:
                return await analyze_albums(db, client, resume=True)

        assert asyncio.run(main())["skipped"] == 1

    def test_failed_request_counts_as_error(self, db):
        add_album(db, "1_1", caption="تجمع در مشهد")

        async def main():
            async with mock_client(lambda r: httpx.Response(400)) as client:
                return await analyze_albums(db, client)

        stats = asyncio.run(main())
        assert stats["errors"] == 1
        assert db.query(Album).one().analysis["locations"] == {}

class TestGeocode:
    def seed(self, db):
        add_album(db, "1_1", analysis={"dates": [], "locations": {"city_fa": "نارمک"}})
        add_album(db, "1_2", caption="تجمع در مشهد", analysis={"dates": [], "locations": {}})
        add_album(db, "1_3", analysis={"dates": [], "locations": {"city_fa": "ناکجاآباد"}})
        add_album(db, "1_4", caption="سلام")

    def test_without_client(self, db, gazetteer):
        self.seed(db)
        stats = asyncio.run(geocode_albums(db, gazetteer))
        assert stats["from_ai"] == 2
        assert stats["from_caption"] == 1
        assert stats["no_location"] == 1
        assert stats["untranslated"] == 1
        assert stats["warnings"] == 1

        rows = {a.album_id: a for a in db.query(Album).all()}
        narmak = rows["1_1"].geocoded
        assert narmak["city_fa"] == "تهران" and narmak["area_en"] == "Narmak"
        assert narmak["province_en"] == "Tehran Province"
        assert narmak["lat"] == 35.7447
        assert rows["1_2"].geocoded["city_en"] == "Mashhad"
        assert "city_en" not in rows["1_3"].geocoded
        assert rows["1_4"].geocoded == {}

    def test_ai_translates_unknown_names(self, db, gazetteer):
        self.seed(db)
        prompts = []

        def handler(request):
            prompts.append(json.loads(request.content)["prompt"])
            return ollama_reply({"ناکجاآباد": "Nakojaabad"})

        async def main():
            async with mock_client(handler) as client:
                return await geocode_albums(db, gazetteer, client)

        stats = asyncio.run(main())
        assert len(prompts) == 1
        assert stats["translated"] == 1 and stats["applied"] == 1
        assert stats["warnings"] == 0
        row = db.query(Album).filter_by(album_id="1_3").one()
        assert row.geocoded["city_en"] == "Nakojaabad"

    def test_resume_and_dry_run(self, db, gazetteer):
        add_album(db, "1_1", analysis={"locations": {"city_fa": "مشهد"}})
        db.query(Album).one().geocoded = {"city_fa": "قم"}
        db.commit()
        add_album(db, "1_2", analysis={"locations": {"city_fa": "مشهد"}})

        stats = asyncio.run(geocode_albums(db, gazetteer, resume=True, dry_run=True))
        assert stats["skipped"] == 1
        assert stats["from_ai"] == 1
        assert db.query(Album).filter_by(album_id="1_2").one().geocoded is None
