import pytest

from location_resolver import apply_translations, collect_untranslated, is_foreign, resolve_location
from records import LocationInfo


class TestResolve:
    def test_neighborhood_as_city_moves_to_area(self, gazetteer):
        loc = resolve_location(LocationInfo(city_fa="نارمک"), gazetteer).location
        assert (loc.city_fa, loc.city_en) == ("تهران", "Tehran")
        assert (loc.area_fa, loc.area_en) == ("نارمک", "Narmak")
        assert (loc.province_fa, loc.province_en) == ("استان تهران", "Tehran Province")
        assert (loc.country_fa, loc.country_en) == ("ایران", "Iran")

    def test_most_specific_coordinates_win(self, gazetteer):
        loc = resolve_location(LocationInfo(city_fa="تهران", area_fa="نارمک"), gazetteer).location
        assert (loc.lat, loc.lon) == (35.7447, 51.5005)

    def test_city_coordinates(self, gazetteer):
        loc = resolve_location(LocationInfo(city_fa="مشهد"), gazetteer).location
        assert (loc.lat, loc.lon) == (36.2972, 59.6067)
        # the override table wins for major cities
        assert loc.province_en == "Razavi Khorasan Province"

    def test_province_from_gazetteer(self, gazetteer):
        res = resolve_location(LocationInfo(city_fa="کوهدشت"), gazetteer)
        assert res.location.province_fa == "استان لرستان"
        assert res.location.province_en == "Lorestan Province"
        assert res.location.city_en == "Kuhdasht"
        assert res.untranslated == []

    def test_known_city_overrides_supplied_province(self, gazetteer):
        c = LocationInfo(city_fa="کوهدشت", province_fa="لرستان", province_en="Lorestan")
        loc = resolve_location(c, gazetteer).location
        assert (loc.province_fa, loc.province_en) == ("استان لرستان", "Lorestan Province")

    def test_city_named_like_its_province(self, gazetteer):
        loc = resolve_location(LocationInfo(city_fa="تهران", province_fa="تهران"), gazetteer).location
        assert (loc.province_fa, loc.province_en) == ("استان تهران", "Tehran Province")

    def test_supplied_province_kept_for_unknown_city(self, gazetteer):
        res = resolve_location(LocationInfo(city_fa="ناکجاآباد", province_fa="استان تهران"), gazetteer)
        assert (res.location.province_fa, res.location.province_en) == ("استان تهران", "Tehran Province")
        # an unknown city never borrows the province centroid
        assert (res.location.lat, res.location.lon) == (None, None)
        assert res.untranslated == ["ناکجاآباد"]

    def test_province_only_gets_province_coordinates(self, gazetteer):
        loc = resolve_location(LocationInfo(province_fa="استان تهران"), gazetteer).location
        assert (loc.lat, loc.lon) == (35.75, 51.5)
        assert loc.city_fa is None

    def test_candidate_coordinates_are_last_resort(self, gazetteer):
        loc = resolve_location(LocationInfo(city_fa="کرج", lat=35.8, lon=50.9), gazetteer).location
        assert loc.city_en == "Karaj"
        assert (loc.lat, loc.lon) == (35.8, 50.9)

    def test_persian_in_english_slot_is_ignored(self, gazetteer):
        loc = resolve_location(LocationInfo(city_fa="مشهد", city_en="مشهد"), gazetteer).location
        assert loc.city_en == "Mashhad"

    def test_static_table_without_gazetteer(self, empty_gazetteer):
        res = resolve_location(LocationInfo(city_fa="شیراز"), empty_gazetteer)
        assert res.location.city_en == "Shiraz"
        assert res.location.province_fa == "استان فارس"
        assert res.location.lat is None

    def test_unknown_name_is_reported(self, gazetteer):
        res = resolve_location(LocationInfo(city_fa="ناکجاآباد"), gazetteer)
        assert res.location.city_fa == "ناکجاآباد"
        assert res.location.city_en is None
        assert res.untranslated == ["ناکجاآباد"]

    def test_empty_candidate(self, gazetteer):
        res = resolve_location(LocationInfo(), gazetteer)
        assert res.location.country_en == "Iran"
        assert res.location.city_fa is None
        assert res.untranslated == []

class TestForeign:
    def test_country_name(self, gazetteer):
        res = resolve_location(LocationInfo(city_fa="فرانسه", is_foreign=True), gazetteer)
        loc = res.location
        assert loc.is_foreign
        assert (loc.country_fa, loc.country_en) == ("سایر", "Other")
        assert (loc.city_fa, loc.city_en) == ("فرانسه", "France")
        assert loc.province_fa is None
        assert res.untranslated == []

    def test_foreign_city_is_untranslated(self, gazetteer):
        res = resolve_location(LocationInfo(city_fa="پاریس", is_foreign=True), gazetteer)
        assert res.location.city_en is None
        assert res.untranslated == ["پاریس"]

    def test_given_english_name_is_used(self, gazetteer):
        res = resolve_location(LocationInfo(country_fa="سایر", city_fa="پاریس", city_en="Paris"), gazetteer)
        assert res.location.city_en == "Paris"
        assert res.untranslated == []

    @pytest.mark.parametrize("c,expected", [
        (LocationInfo(is_foreign=True), True),
        (LocationInfo(country_fa="سایر"), True),
        (LocationInfo(country_en="Other"), True),
        (LocationInfo(country_fa="ایران"), False),
    ])
    def test_is_foreign(self, c, expected):
        assert is_foreign(c) is expected

def test_collect_untranslated_reports_each_name_once(gazetteer):
    results = [
        resolve_location(LocationInfo(city_fa="ناکجاآباد"), gazetteer),
        resolve_location(LocationInfo(city_fa="ناکجاآباد", area_fa="کوچه باغ"), gazetteer),
        resolve_location(LocationInfo(city_fa="مشهد"), gazetteer),
    ]
    assert collect_untranslated(results) == ["ناکجاآباد", "کوچه باغ"]

def test_apply_translations():
    locs = [
        LocationInfo(city_fa="ناکجاآباد"),
        LocationInfo(city_fa="ناکجاآباد", city_en="Nowhere Town"),
        LocationInfo(city_fa="مشهد", city_en="Mashhad", area_fa="کوچه باغ"),
        LocationInfo(city_fa="تبریز"),
    ]
    changed = apply_translations(locs, {"ناکجاآباد": "Nowhere", "کوچه باغ": " Garden Lane "})
    assert changed == 2
    assert locs[0].city_en == "Nowhere"
    assert locs[1].city_en == "Nowhere Town"
    assert locs[2].area_en == "Garden Lane"
    assert locs[3].city_en is None
