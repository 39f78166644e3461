# build_gazetteer.py — download GeoNames IR.zip and build the locations database
#
# Run once:  python build_gazetteer.py            (downloads, writes data/iran-locations.sqlite)
#            python build_gazetteer.py --source IR.zip   (use a file you already have)

import argparse
import csv
import logging
import zipfile
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import httpx
import pandas as pd
from sqlalchemy.orm import Session

from config import settings
from db import make_engine
from farsi_text import contains_persian
from models import GazetteerBase, Location

log = logging.getLogger(__name__)

GEONAMES_URL = "https://download.geonames.org/export/dump/IR.zip"
GEONAMES_COLUMNS = [
    "geonameid", "name", "asciiname", "alternatenames", "latitude", "longitude",
    "feature_class", "feature_code", "country_code", "cc2", "admin1_code",
    "admin2_code", "admin3_code", "admin4_code", "population", "elevation",
    "dem", "timezone", "modification_date",
]

PLACE_FEATURE_CODES = {
    "PPL", "PPLA", "PPLA2", "PPLA3", "PPLA4", "PPLC", "PPLG",
    "PPLL", "PPLQ", "PPLR", "PPLS", "PPLW", "PPLX",
}
ADMIN_FEATURE_CODES = {"ADM1"}
BIG_TOWN = 50_000
BATCH = 1000


def download(url: str, dest_dir: Path) -> Path:
    dest_dir.mkdir(parents=True, exist_ok=True)
    target = dest_dir / url.rsplit("/", 1)[-1]
    print(f"📥 Downloading {url} ...")
    with httpx.stream("GET", url, timeout=60.0, follow_redirects=True) as r:
        r.raise_for_status()
        with open(target, "wb") as f:
            for chunk in r.iter_bytes():
                f.write(chunk)
    return target

def read_geonames(source: Path) -> pd.DataFrame:
    """GeoNames dump (zip or txt) → populated places and provinces only."""
    opts = dict(sep="\t", header=None, names=GEONAMES_COLUMNS, dtype=str,
                quoting=csv.QUOTE_NONE, keep_default_na=False, on_bad_lines="skip")
    if source.suffix == ".zip":
        with zipfile.ZipFile(source) as zf:
            member = next(n for n in zf.namelist() if n.endswith(".txt") and not n.startswith("readme"))
            with zf.open(member) as fh:
                df = pd.read_csv(fh, **opts)
    else:
        df = pd.read_csv(source, **opts)

    places = (df["feature_class"] == "P") & df["feature_code"].isin(PLACE_FEATURE_CODES)
    provinces = (df["feature_class"] == "A") & df["feature_code"].isin(ADMIN_FEATURE_CODES)
    df = df[places | provinces].copy()
    df["population"] = pd.to_numeric(df["population"], errors="coerce").fillna(0).astype(int)
    df["latitude"] = pd.to_numeric(df["latitude"], errors="coerce")
    df["longitude"] = pd.to_numeric(df["longitude"], errors="coerce")
    return df

def persian_names(name: str, alternates: str) -> List[str]:
    """Main name if it is in Persian script, plus every Persian alternate name."""
    out: List[str] = []
    if contains_persian(name):
        out.append(name.strip())
    for alt in (alternates or "").split(","):
        alt = alt.strip()
        if len(alt) >= 2 and contains_persian(alt) and alt not in out:
            out.append(alt)
    return out

def admin_level(feature_code: str, population: int) -> int:
    if feature_code == "ADM1":
        return 0
    if feature_code in ("PPLC", "PPLA", "PPLG", "PPLA2", "PPLA3"):
        return 1
    if feature_code == "PPLA4" or population >= BIG_TOWN:
        return 2
    if feature_code in ("PPLX", "PPLL"):
        return 3
    return 2

def location_rows(df: pd.DataFrame) -> Iterator[Dict]:
    for r in df.itertuples(index=False):
        level = admin_level(r.feature_code, r.population)
        lat = None if pd.isna(r.latitude) else float(r.latitude)
        lon = None if pd.isna(r.longitude) else float(r.longitude)
        for fa in persian_names(r.name, r.alternatenames):
            yield {
                "geonameid": r.geonameid,
                "name_fa": fa,
                "name_en": r.asciiname or r.name,
                "latitude": lat,
                "longitude": lon,
                "population": int(r.population),
                "feature_code": r.feature_code,
                "province_code": r.admin1_code or None,
                "admin_level": level,
            }

def write_locations(df: pd.DataFrame, url: str) -> int:
    """Recreate the locations table at `url` and fill it from df. Returns rows inserted."""
    if url.startswith("sqlite:///"):
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
    engine = make_engine(url)
    GazetteerBase.metadata.drop_all(engine)
    GazetteerBase.metadata.create_all(engine)
    count = 0
    try:
        with Session(engine) as db:
            batch: List[Dict] = []
            for row in location_rows(df):
                batch.append(row)
                if len(batch) >= BATCH:
                    db.execute(Location.__table__.insert(), batch)
                    count += len(batch); batch = []
                    print(f"   Inserted {count} names...")
            if batch:
                db.execute(Location.__table__.insert(), batch)
                count += len(batch)
            db.commit()
    finally:
        engine.dispose()
    return count

def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Build the Iran locations gazetteer from GeoNames")
    ap.add_argument("--url", default=settings.gazetteer_url, help="target database URL")
    ap.add_argument("--source", help="local IR.zip / IR.txt (skips the download)")
    ap.add_argument("--geonames-url", default=GEONAMES_URL)
    ap.add_argument("--keep-download", action="store_true")
    args = ap.parse_args(argv)

    downloaded = None
    if args.source:
        source = Path(args.source)
    else:
        source = downloaded = download(args.geonames_url, Path("data"))

    df = read_geonames(source)
    print(f"📊 {len(df)} locations (populated places + provinces)")
    n = write_locations(df, args.url)
    if downloaded and not args.keep_download:
        downloaded.unlink()
    print(f"✅ Done. {n} location names → {args.url}")

if __name__ == "__main__":
    main()
