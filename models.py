# models.py (SQLite-friendly)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy import (
    Column, Integer, Float, Text, TIMESTAMP, ForeignKey, Index
)
from sqlalchemy.sql import func
from sqlalchemy.types import JSON  # JSON works on SQLite (stored as TEXT)

Base = declarative_base()
# the gazetteer lives in its own database file, built once by build_gazetteer.py
GazetteerBase = declarative_base()

class Location(GazetteerBase):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    geonameid = Column(Text)
    name_fa = Column(Text, nullable=False)
    name_en = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    population = Column(Integer, default=0)
    feature_code = Column(Text)
    province_code = Column(Text)
    admin_level = Column(Integer, default=2)   # 0 province, 1 major city, 2 city/town, 3 neighborhood

    __table_args__ = (
        Index("idx_name_fa", "name_fa"),
        Index("idx_population", "population"),
        Index("idx_admin_level", "admin_level"),
    )

class Album(Base):
    __tablename__ = "album"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    album_id = Column(Text, unique=True, index=True, nullable=False)   # <chat_id>_<grouped_id|message_id>
    chat_id = Column(Integer, index=True, nullable=True)
    telegram_date = Column(TIMESTAMP(timezone=True), nullable=False)
    caption_fa = Column(Text, default="")

    analysis = Column(JSON)            # {"dates": [...], "locations": {...}, "confidence": 0.9}
    resolved_gregorian = Column(Text)  # YYYY-MM-DD
    resolved_jalali = Column(Text)     # YYYY/MM/DD
    date_source = Column(Text)
    geocoded = Column(JSON)            # bilingual location, {} = no location data
    organized_path = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    items = relationship("AlbumItem", backref="album", lazy="selectin",
                         cascade="all, delete-orphan", order_by="AlbumItem.message_id")

class AlbumItem(Base):
    __tablename__ = "album_item"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    album_pk = Column(Integer, ForeignKey("album.id", ondelete="CASCADE"), index=True)
    message_id = Column(Integer, nullable=False)
    path = Column(Text, nullable=False)
    type = Column(Text, default="document")   # photo | video | document
    size = Column(Integer)
