from datetime import date, datetime, timedelta, timezone

import pytest

from jalali import (
    InvalidDate, days_in_month, format_gregorian, format_jalali, is_leap,
    parse_gregorian, parse_jalali, to_gregorian, to_jalali, utc_midnight,
)

UTC = timezone.utc


@pytest.mark.parametrize("jalali,greg", [
    ((1403, 10, 18), date(2025, 1, 7)),
    ((1403, 1, 1), date(2024, 3, 20)),
    ((1403, 12, 30), date(2025, 3, 20)),
    ((1404, 1, 1), date(2025, 3, 21)),
    ((1403, 6, 31), date(2024, 9, 21)),
    ((1403, 7, 1), date(2024, 9, 22)),
])
def test_known_dates(jalali, greg):
    g = to_gregorian(*jalali)
    assert g == datetime(greg.year, greg.month, greg.day, tzinfo=UTC)
    assert to_jalali(greg) == jalali

def test_round_trip_every_day_1900_2100():
    d = date(1900, 1, 1)
    end = date(2100, 12, 31)
    while d <= end:
        assert to_gregorian(*to_jalali(d)).date() == d
        d += timedelta(days=1)

def test_round_trip_wide_year_range():
    for y in range(1, 3000, 7):
        assert to_jalali(to_gregorian(y, 1, 1)) == (y, 1, 1)
        last = days_in_month(y, 12)
        assert to_jalali(to_gregorian(y, 12, last)) == (y, 12, last)
        # the day after Esfand's last day is Nowruz
        assert to_jalali(to_gregorian(y, 12, last) + timedelta(days=1)) == (y + 1, 1, 1)

def test_leap_years():
    assert is_leap(1403)
    assert not is_leap(1404)
    assert days_in_month(1403, 12) == 30
    assert days_in_month(1404, 12) == 29
    assert days_in_month(1404, 7) == 30
    assert days_in_month(1404, 6) == 31

@pytest.mark.parametrize("bad", [(1404, 12, 30), (1403, 13, 1), (1403, 0, 5), (1403, 7, 31), (1403, 1, 0), (0, 1, 1)])
def test_invalid_dates(bad):
    with pytest.raises(InvalidDate):
        to_gregorian(*bad)

def test_invalid_date_is_value_error():
    assert issubclass(InvalidDate, ValueError)

class TestNoDrift:
    def test_aware_datetimes_use_the_utc_day(self):
        late_evening_ny = datetime(2025, 3, 20, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert format_jalali(late_evening_ny) == "1404/01/01"
        early_tehran = datetime(2025, 3, 21, 2, 0, tzinfo=timezone(timedelta(hours=3, minutes=30)))
        assert format_jalali(early_tehran) == "1403/12/30"

    def test_naive_is_utc(self):
        assert utc_midnight(datetime(2024, 12, 31, 23, 59)) == datetime(2024, 12, 31, tzinfo=UTC)

    @pytest.mark.parametrize("s", ["1403/12/30", "1404/01/01", "1403/01/01", "1402/12/29"])
    def test_jalali_string_round_trip(self, s):
        assert format_jalali(parse_jalali(s)) == s

    @pytest.mark.parametrize("s", ["2024-12-31", "2025-01-01", "2025-03-20", "2025-03-21"])
    def test_gregorian_string_round_trip(self, s):
        assert format_gregorian(parse_gregorian(s)) == s
        assert format_gregorian(parse_jalali(format_jalali(parse_gregorian(s)))) == s

def test_parse_jalali_rejects_garbage():
    with pytest.raises(InvalidDate):
        parse_jalali("1403/10")
    with pytest.raises(InvalidDate):
        parse_jalali("x/y/z")
