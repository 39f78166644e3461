import os

# keep the real .db files out of test runs; must happen before config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GAZETTEER_URL"] = "sqlite:///does-not-exist/iran-locations.sqlite"

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gazetteer import Gazetteer
from models import Base, GazetteerBase, Location
from records import GazetteerEntry

UTC = timezone.utc

GAZETTEER_ENTRIES = [
    GazetteerEntry("تهران", "Tehran", 35.6944, 51.4215, 7153309, 1, "26"),
    GazetteerEntry("تهران", "Tehran Province", 35.75, 51.5, 0, 0, "26"),
    GazetteerEntry("استان تهران", "Tehran Province", 35.75, 51.5, 0, 0, "26"),
    GazetteerEntry("تهران", "Tehran Village", 30.0, 50.0, 120, 2, "05"),
    GazetteerEntry("نارمک", "Narmak", 35.7447, 51.5005, 0, 3, "26"),
    GazetteerEntry("مشهد", "Mashhad", 36.2972, 59.6067, 2307177, 1, "30"),
    GazetteerEntry("کوهدشت", "Kuhdasht", 33.535, 47.606, 85000, 2, "23"),
    GazetteerEntry("لرستان", "Lorestan", 33.5, 48.3, 0, 0, "23"),
    GazetteerEntry("استان لرستان", "Lorestan Province", 33.5, 48.3, 0, 0, "23"),
]


def memory_engine():
    return create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})

@pytest.fixture
def gazetteer():
    return Gazetteer.from_entries(GAZETTEER_ENTRIES)

@pytest.fixture
def empty_gazetteer():
    return Gazetteer()

@pytest.fixture
def gazetteer_engine():
    engine = memory_engine()
    GazetteerBase.metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(Location.__table__.insert(), [
            {"name_fa": e.name_fa, "name_en": e.name_en, "latitude": e.latitude, "longitude": e.longitude,
             "population": e.population, "admin_level": e.admin_level, "province_code": e.province_code}
            for e in GAZETTEER_ENTRIES
        ])
    yield engine
    engine.dispose()

@pytest.fixture
def session_factory():
    engine = memory_engine()
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()

@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()

@pytest.fixture
def reference():
    # Wednesday 1403/10/19, mid-afternoon UTC
    return datetime(2025, 1, 8, 15, 30, tzinfo=UTC)
