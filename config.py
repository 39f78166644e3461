# config.py — settings from the environment (.env supported)

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv(override=True)

def req(name: str) -> str:
    v = os.getenv(name)
    if not v:
        raise RuntimeError(f"Missing {name}. Put it in your .env.")
    return v

def parse_iso(s: str) -> datetime:
    """ISO date/datetime → aware UTC datetime (naive values are taken as UTC)."""
    dt = datetime.fromisoformat(s.strip())
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

@dataclass
class Settings:
    database_url: str
    gazetteer_url: str
    raw_dir: str
    output_dir: str
    ollama_url: str
    ollama_model: str
    ai_timeout: float
    ai_concurrency: int
    home_city_fa: str
    ai_provider: str = "ollama"
    ai_fallbacks: Tuple[str, ...] = ()
    openai_url: str = "https://api.openai.com/v1/chat/completions"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_compat_url: Optional[str] = None
    openai_compat_api_key: Optional[str] = None
    openai_compat_model: Optional[str] = None
    translate_captions: bool = True

@dataclass
class TelegramSettings:
    api_id: int
    api_hash: str
    channel: str
    session: str
    session_string: Optional[str]
    date_from: datetime
    date_to: datetime

def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///tdownloader.db"),
        gazetteer_url=os.getenv("GAZETTEER_URL", "sqlite:///data/iran-locations.sqlite"),
        raw_dir=os.getenv("RAW_DIR", "raw"),
        output_dir=os.getenv("OUTPUT_DIR", "output"),
        ollama_url=os.getenv("OLLAMA_URL", "http://localhost:11434"),
        ollama_model=os.getenv("OLLAMA_MODEL", "aya:35b"),
        ai_timeout=float(os.getenv("AI_TIMEOUT", "120")),
        ai_concurrency=int(os.getenv("AI_CONCURRENCY", "1")),
        home_city_fa=os.getenv("HOME_CITY_FA", "تهران"),
        ai_provider=os.getenv("AI_PROVIDER", "ollama"),
        ai_fallbacks=tuple(p for p in os.getenv("AI_FALLBACKS", "").split(",") if p.strip()),
        openai_url=os.getenv("OPENAI_URL", "https://api.openai.com/v1/chat/completions"),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        openai_compat_url=os.getenv("OPENAI_COMPAT_URL"),
        openai_compat_api_key=os.getenv("OPENAI_COMPAT_API_KEY"),
        openai_compat_model=os.getenv("OPENAI_COMPAT_MODEL"),
        translate_captions=os.getenv("TRANSLATE_CAPTIONS", "1").lower() not in ("0", "false", "no"),
    )

def load_telegram_settings(date_from: Optional[str] = None, date_to: Optional[str] = None) -> TelegramSettings:
    return TelegramSettings(
        api_id=int(req("TG_API_ID")),
        api_hash=req("TG_API_HASH"),
        channel=req("TG_CHANNEL"),
        session=os.getenv("TG_SESSION", "tdownloader"),
        session_string=os.getenv("TG_SESSION_STRING"),
        date_from=parse_iso(date_from or req("TG_DATE_FROM")),
        date_to=parse_iso(date_to or req("TG_DATE_TO")),
    )

settings = load_settings()
