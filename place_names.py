# place_names.py — static FA→EN place tables (fallback when the gazetteer has no entry)

import re
from types import MappingProxyType
from typing import Optional

from records import ProvinceInfo

HOME_COUNTRY_FA = "ایران"
HOME_COUNTRY_EN = "Iran"
HOME_CITY_FA = "تهران"

_PERSIAN_TO_ENGLISH = {
    # ---- Major cities ----
    "تهران": "Tehran", "اصفهان": "Isfahan", "شیراز": "Shiraz",
    "مشهد": "Mashhad", "تبریز": "Tabriz", "کرج": "Karaj",
    "قم": "Qom", "اهواز": "Ahvaz", "کرمان": "Kerman",
    "رشت": "Rasht", "همدان": "Hamadan", "یزد": "Yazd",
    "کرمانشاه": "Kermanshah", "ارومیه": "Urmia", "زاهدان": "Zahedan",
    "سنندج": "Sanandaj", "بندرعباس": "Bandar Abbas", "بندر عباس": "Bandar Abbas",
    "اردبیل": "Ardabil", "قزوین": "Qazvin", "زنجان": "Zanjan", "گرگان": "Gorgan",
    "ساری": "Sari", "بوشهر": "Bushehr", "خرم‌آباد": "Khorramabad",
    "خرمآباد": "Khorramabad",

    # ---- Other cities ----
    "آمل": "Amol", "بابل": "Babol", "نوشهر": "Nowshahr",
    "چالوس": "Chalus", "تنکابن": "Tonekabon", "رامسر": "Ramsar",
    "بابلسر": "Babolsar", "قائمشهر": "Ghaemshahr",
    "لاهیجان": "Lahijan", "انزلی": "Anzali", "بندر انزلی": "Bandar Anzali",
    "آستارا": "Astara", "کاشان": "Kashan", "نیشابور": "Nishapur",
    "سبزوار": "Sabzevar", "بیرجند": "Birjand",
    "آبادان": "Abadan", "خرمشهر": "Khorramshahr", "دزفول": "Dezful",
    "مراغه": "Maragheh", "مرند": "Marand", "خوی": "Khoy",
    "مهاباد": "Mahabad", "ایلام": "Ilam", "بجنورد": "Bojnord",
    "یاسوج": "Yasuj", "شهرکرد": "Shahrekord", "سمنان": "Semnan",
    "اراک": "Arak", "بروجرد": "Borujerd", "اسلامشهر": "Eslamshahr", "فردیس": "Fardis",
    "ورامین": "Varamin", "نظرآباد": "Nazarabad",

    # ---- Tehran neighborhoods ----
    "صادقیه": "Sadeghieh", "نارمک": "Narmak", "ونک": "Vanak",
    "تجریش": "Tajrish", "ولیعصر": "Valiasr", "پونک": "Punak",
    "سعادت‌آباد": "Saadat Abad", "سعادتآباد": "Saadat Abad",
    "تهرانپارس": "Tehranpars", "تهران‌پارس": "Tehranpars",
    "پیروزی": "Piroozi", "شهرک غرب": "Shahrak-e Gharb",
    "اکباتان": "Ekbatan", "شهران": "Shahran", "ستارخان": "Sattarkhan",
    "آزادی": "Azadi", "انقلاب": "Enghelab", "یوسف‌آباد": "Yousefabad",
    "میرداماد": "Mirdamad", "الهیه": "Elahieh", "زعفرانیه": "Zafaraniyeh",
    "نیاوران": "Niavaran", "فرمانیه": "Farmaniyeh", "قیطریه": "Gheytarieh",
    "پاسداران": "Pasdaran", "شریعتی": "Shariati",
    "آریاشهر": "Ariashahr", "جنت‌آباد": "Jannat Abad", "جنتآباد": "Jannat Abad",
    "گیشا": "Gisha", "هفت‌حوض": "Haft Hoz",

    # ---- Provinces ----
    "گیلان": "Gilan", "مازندران": "Mazandaran",
    "آذربایجان شرقی": "East Azerbaijan", "آذربایجان غربی": "West Azerbaijan",
    "خراسان رضوی": "Razavi Khorasan", "فارس": "Fars",
    "خوزستان": "Khuzestan", "البرز": "Alborz",

    # ---- Country ----
    "ایران": "Iran",
}
PERSIAN_TO_ENGLISH = MappingProxyType(_PERSIAN_TO_ENGLISH)

def _province(fa: str, en: str) -> ProvinceInfo:
    return ProvinceInfo(province_fa=f"استان {fa}", province_en=f"{en} Province")

# Province for major cities; wins over the gazetteer, which files some of them under the wrong province
CITY_PROVINCE = MappingProxyType({
    "تهران": _province("تهران", "Tehran"),
    "مشهد": _province("خراسان رضوی", "Razavi Khorasan"),
    "اصفهان": _province("اصفهان", "Isfahan"),
    "شیراز": _province("فارس", "Fars"),
    "تبریز": _province("آذربایجان شرقی", "East Azerbaijan"),
    "کرج": _province("البرز", "Alborz"),
    "قم": _province("قم", "Qom"),
    "اهواز": _province("خوزستان", "Khuzestan"),
    "کرمان": _province("کرمان", "Kerman"),
    "رشت": _province("گیلان", "Gilan"),
    "همدان": _province("همدان", "Hamadan"),
    "یزد": _province("یزد", "Yazd"),
    "کرمانشاه": _province("کرمانشاه", "Kermanshah"),
    "ارومیه": _province("آذربایجان غربی", "West Azerbaijan"),
    "زاهدان": _province("سیستان و بلوچستان", "Sistan and Baluchestan"),
    "سنندج": _province("کردستان", "Kurdistan"),
    "بندرعباس": _province("هرمزگان", "Hormozgan"),
    "اردبیل": _province("اردبیل", "Ardabil"),
    "قزوین": _province("قزوین", "Qazvin"),
    "زنجان": _province("زنجان", "Zanjan"),
    "گرگان": _province("گلستان", "Golestan"),
    "ساری": _province("مازندران", "Mazandaran"),
    "بوشهر": _province("بوشهر", "Bushehr"),
    "خرم‌آباد": _province("لرستان", "Lorestan"),
    "خرمآباد": _province("لرستان", "Lorestan"),
    "کاشان": _province("اصفهان", "Isfahan"),
    "نیشابور": _province("خراسان رضوی", "Razavi Khorasan"),
    "سبزوار": _province("خراسان رضوی", "Razavi Khorasan"),
    "بیرجند": _province("خراسان جنوبی", "South Khorasan"),
    "آبادان": _province("خوزستان", "Khuzestan"),
    "خرمشهر": _province("خوزستان", "Khuzestan"),
    "دزفول": _province("خوزستان", "Khuzestan"),
    "ایلام": _province("ایلام", "Ilam"),
    "بجنورد": _province("خراسان شمالی", "North Khorasan"),
    "یاسوج": _province("کهگیلویه و بویراحمد", "Kohgiluyeh and Boyer-Ahmad"),
    "شهرکرد": _province("چهارمحال و بختیاری", "Chaharmahal and Bakhtiari"),
    "سمنان": _province("سمنان", "Semnan"),
    "ورامین": _province("تهران", "Tehran"),
    "نظرآباد": _province("البرز", "Alborz"),
    "آمل": _province("مازندران", "Mazandaran"),
    "بابل": _province("مازندران", "Mazandaran"),
    "قائمشهر": _province("مازندران", "Mazandaran"),
    "لاهیجان": _province("گیلان", "Gilan"),
    "مهاباد": _province("آذربایجان غربی", "West Azerbaijan"),
    "خوی": _province("آذربایجان غربی", "West Azerbaijan"),
    "مراغه": _province("آذربایجان شرقی", "East Azerbaijan"),
    "مرند": _province("آذربایجان شرقی", "East Azerbaijan"),
    "اراک": _province("مرکزی", "Markazi"),
    "بروجرد": _province("لرستان", "Lorestan"),
    "اسلامشهر": _province("تهران", "Tehran"),
    "فردیس": _province("البرز", "Alborz"),
})

# Tehran neighborhoods: a mention anchors the city to Tehran even when the caption never says تهران
TEHRAN_NEIGHBORHOODS = frozenset({
    "صادقیه", "نارمک", "ونک", "تجریش", "ولیعصر", "پونک",
    "سعادت‌آباد", "سعادتآباد", "تهرانپارس", "تهران‌پارس",
    "پیروزی", "شهرک غرب", "اکباتان", "شهران", "ستارخان",
    "آزادی", "انقلاب", "یوسف‌آباد", "میرداماد", "الهیه",
    "زعفرانیه", "نیاوران", "فرمانیه", "قیطریه", "پاسداران",
    "شریعتی", "گیشا", "هفت‌حوض", "فلکه",
    "آریاشهر", "جنت‌آباد", "جنتآباد",
})

# Countries only; foreign cities may also show up in Iran news
FOREIGN_COUNTRIES = MappingProxyType({
    "فرانسه": "France", "آلمان": "Germany", "انگلستان": "UK", "انگلیس": "UK",
    "ایتالیا": "Italy", "اسپانیا": "Spain", "هلند": "Netherlands",
    "بلژیک": "Belgium", "سوئیس": "Switzerland", "اتریش": "Austria",
    "یونان": "Greece", "پرتغال": "Portugal", "سوئد": "Sweden",
    "نروژ": "Norway", "دانمارک": "Denmark", "فنلاند": "Finland",
    "لهستان": "Poland", "چک": "Czech", "اوکراین": "Ukraine",
    "روسیه": "Russia", "آمریکا": "USA", "امریکا": "USA",
    "ایالات متحده": "USA", "کانادا": "Canada", "مکزیک": "Mexico",
    "برزیل": "Brazil", "چین": "China", "ژاپن": "Japan",
    "کره": "Korea", "هند": "India", "پاکستان": "Pakistan",
    "افغانستان": "Afghanistan", "عراق": "Iraq", "ترکیه": "Turkey",
    "امارات": "UAE", "عربستان": "Saudi Arabia", "قطر": "Qatar",
    "کویت": "Kuwait", "بحرین": "Bahrain", "اسرائیل": "Israel",
    "فلسطین": "Palestine", "لبنان": "Lebanon", "سوریه": "Syria",
    "اردن": "Jordan", "مصر": "Egypt", "استرالیا": "Australia",
    "نیوزیلند": "New Zealand",
})

# Curated names the caption scan may match; the full gazetteer would match common words
KNOWN_LOCATIONS = frozenset(
    {k for k in _PERSIAN_TO_ENGLISH if k != HOME_COUNTRY_FA} | set(CITY_PROVINCE) | TEHRAN_NEIGHBORHOODS
)

def _norm(s: Optional[str]) -> str:
    if not s: return ""
    s = s.strip()
    s = re.sub(r"\s+", " ", s)
    return s

def to_english(name: Optional[str]) -> Optional[str]:
    """English name from the static table, or None if unknown."""
    return PERSIAN_TO_ENGLISH.get(_norm(name))

def province_override(city_fa: Optional[str]) -> Optional[ProvinceInfo]:
    return CITY_PROVINCE.get(_norm(city_fa))

def foreign_country_english(name: Optional[str]) -> Optional[str]:
    return FOREIGN_COUNTRIES.get(_norm(name))

def is_neighborhood(name: Optional[str]) -> bool:
    return _norm(name) in TEHRAN_NEIGHBORHOODS
