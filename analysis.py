# analysis.py — ask an AI model (Ollama, OpenAI or a compatible server) about a caption
#
# Providers form a fallback chain: AI_PROVIDER first, then AI_FALLBACKS in order.
# The model's reply is untrusted text: parse the whole thing as JSON, else the
# first balanced {...} inside it. A failed request never raises; it comes back
# as AIResponse(success=False) and the album gets an empty analysis.

from __future__ import annotations
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from records import Analysis, LocationInfo

log = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
LOW_CONFIDENCE = 0.5
MAX_CAPTION_CHARS = 4000
TRANSLATE_BATCH = 30
RETRYABLE_STATUS = {429, 500, 502, 503, 504}


@dataclass
class AIResponse:
    text: str
    success: bool
    error: Optional[str] = None

# ---------- prompts ----------

def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit - 3] + "..."

def build_prompt(caption: str, telegram_date: str) -> str:
    return f"""Analyze this Farsi caption and extract location information.

Caption: "{truncate(caption, MAX_CAPTION_CHARS)}"
Telegram date: {telegram_date}

TASK: Extract the MAIN location this event happened in.

LOCATION RULES:
1. Find the Iranian city where the event took place (تهران، مشهد، اصفهان، شیراز، تبریز، رشت، کرج، قم، اهواز، کرمانشاه، etc.)
2. If a neighborhood/street/area is mentioned, extract it too (نارمک، صادقیه، ونک، اشرفی اصفهانی، etc.)
3. The location words MUST appear in the caption - don't guess
4. If location is outside Iran (آمریکا، فرانسه، etc.), set is_foreign: true
5. Common phrases like "بنا بر"، "حوالی"، "نرسیده به" are NOT locations

EXAMPLES:
- "تیراندازی در مشهد" → city_fa: "مشهد"
- "اشرفی اصفهانی، تهران" → city_fa: "تهران", area_fa: "اشرفی اصفهانی"
- "نارمک تهران" → city_fa: "تهران", area_fa: "نارمک"
- "اعتراضات در پاریس" → is_foreign: true, foreign_location: "پاریس"

Respond ONLY with valid JSON:
{{
  "dates": ["۱۸ دی"],
  "locations": {{
    "city_fa": "تهران",
    "area_fa": "نارمک"
  }},
  "is_foreign": false,
  "confidence": 0.9
}}

- dates: array of Persian dates found (or empty [])
- locations: object with city_fa and optionally area_fa (or empty {{}})
- is_foreign: true if event is outside Iran
- confidence: 0.0 to 1.0"""

def build_translate_prompt(names: Sequence[str]) -> str:
    listing = "\n".join(f"{i}. {n}" for i, n in enumerate(names, start=1))
    return f"""Transliterate these Persian/Iranian location names to English. These are cities, neighborhoods, streets, and areas in Iran.

Return ONLY a JSON object mapping each Persian name to its English transliteration.

Names:
{listing}

Example format: {{"نارمک": "Narmak", "صادقیه": "Sadeghieh"}}"""

# ---------- reply parsing ----------

def first_json_object(text: str) -> Optional[str]:
    """The first balanced {...} in text, or None."""
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    for i in range(start, len(text)):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None

def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    if not text: return None
    try:
        parsed = json.loads(text)
    except ValueError:
        chunk = first_json_object(text)
        if chunk is None:
            return None
        try:
            parsed = json.loads(chunk)
        except ValueError:
            return None
    return parsed if isinstance(parsed, dict) else None

def parse_analysis_response(text: str) -> Optional[Analysis]:
    parsed = _loads_object(text)
    if parsed is None:
        return None

    dates = parsed.get("dates")
    dates = [d.strip() for d in dates if isinstance(d, str) and d.strip()] if isinstance(dates, list) else []

    raw_loc = parsed.get("locations")
    raw_loc = dict(raw_loc) if isinstance(raw_loc, dict) else {}
    # the model puts foreign places in a separate key
    foreign = raw_loc.pop("foreign_location", None) or parsed.get("foreign_location")
    loc = LocationInfo.from_dict(raw_loc)
    if parsed.get("is_foreign") is True:
        loc.is_foreign = True
    if loc.is_foreign and not loc.city_fa and isinstance(foreign, str) and foreign.strip():
        loc.city_fa = foreign.strip()

    conf = parsed.get("confidence")
    if isinstance(conf, bool) or not isinstance(conf, (int, float)):
        conf = DEFAULT_CONFIDENCE

    return Analysis(dates=dates, locations=loc, confidence=float(conf), raw_response=text)

def parse_translations(text: str) -> Dict[str, str]:
    parsed = _loads_object(text) or {}
    out: Dict[str, str] = {}
    for fa, en in parsed.items():
        if isinstance(en, str) and en.strip():
            out[fa.strip()] = en.strip()
    return out

# ---------- clients ----------

SYSTEM_PROMPT = ("You are a helpful assistant that analyzes Farsi text and extracts structured "
                 "information. Always respond with valid JSON.")

class AIClient:
    """
    Retrying async client around one HTTP endpoint. Subclasses implement
    `_once`; `generate` retries timeouts, dropped connections and 429/5xx
    with exponential backoff. Use as `async with`.
    """
    name = "ai"

    def __init__(self, base_url: str, model: str, timeout: float = 120.0,
                 max_retries: int = 2, retry_delay: float = 2.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 headers: Optional[Dict[str, str]] = None):
        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._http = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout,
                                       transport=transport, headers=headers)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, url: str, body: Dict[str, Any]) -> Any:
        r = await self._http.post(url, json=body)
        r.raise_for_status()
        return r.json()

    def _failure(self, e: Exception) -> AIResponse:
        if isinstance(e, httpx.HTTPStatusError):
            return AIResponse("", False, f"{self.label} error: HTTP {e.response.status_code}")
        return AIResponse("", False, f"{self.label} error: {e!r}")

    @property
    def label(self) -> str:
        return self.name

    async def _once(self, prompt: str, max_tokens: int, json_mode: bool) -> AIResponse:
        raise NotImplementedError

    @staticmethod
    def _retryable(res: AIResponse) -> bool:
        err = (res.error or "").lower()
        if any(f"http {code}" in err for code in RETRYABLE_STATUS):
            return True
        return any(w in err for w in ("timeout", "connect", "reset"))

    async def generate(self, prompt: str, max_tokens: int = 500, json_mode: bool = True) -> AIResponse:
        res = AIResponse("", False, "No attempts made")
        for attempt in range(self.max_retries + 1):
            res = await self._once(prompt, max_tokens, json_mode)
            if res.success or not self._retryable(res):
                return res
            if attempt < self.max_retries:
                delay = self.retry_delay * (2 ** attempt)
                log.warning("Retry %d/%d after %.1fs: %s", attempt + 1, self.max_retries, delay, res.error)
                await asyncio.sleep(delay)
        return res

class OllamaClient(AIClient):
    """Ollama's /api/generate."""
    name = "ollama"

    @property
    def label(self) -> str:
        return "Ollama"

    async def _once(self, prompt: str, max_tokens: int, json_mode: bool) -> AIResponse:
        body: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": 0.1, "num_predict": max_tokens},
        }
        if json_mode:
            body["format"] = "json"
        try:
            data = await self._post("/api/generate", body)
        except (httpx.HTTPError, ValueError) as e:
            return self._failure(e)
        return AIResponse(text=str(data.get("response") or "").strip(), success=True)

class ChatCompletionsClient(AIClient):
    """
    OpenAI chat completions, or any server speaking the same protocol.
    `url` is the full endpoint. Only OpenAI itself is sent `response_format`;
    compatible servers often reject it.
    """

    def __init__(self, url: str, api_key: str, model: str, name: str = "openai",
                 json_format: bool = True, **kw):
        super().__init__(url, model, headers={"Authorization": f"Bearer {api_key}"}, **kw)
        self.url = url
        self.name = name
        self.json_format = json_format

    @property
    def label(self) -> str:
        return "OpenAI" if self.name == "openai" else "OpenAI-compat"

    async def _once(self, prompt: str, max_tokens: int, json_mode: bool) -> AIResponse:
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": 0.1,
        }
        if json_mode and self.json_format:
            body["response_format"] = {"type": "json_object"}
        try:
            data = await self._post(self.url, body)
            text = data["choices"][0]["message"]["content"] or ""
        except (httpx.HTTPError, ValueError) as e:
            return self._failure(e)
        except (KeyError, IndexError, TypeError):
            return AIResponse("", False, f"{self.label} error: no choices in reply")
        return AIResponse(text=str(text).strip(), success=True)

class FallbackClient(AIClient):
    """Tries each client in turn until one answers. Retries happen inside each client."""
    name = "fallback"

    def __init__(self, clients: Sequence[AIClient]):
        if not clients:
            raise ValueError("FallbackClient needs at least one client")
        self.clients = list(clients)

    @property
    def model(self) -> str:
        return self.clients[0].model

    async def __aenter__(self) -> "FallbackClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        for c in self.clients:
            await c.aclose()

    async def generate(self, prompt: str, max_tokens: int = 500, json_mode: bool = True) -> AIResponse:
        res = AIResponse("", False, "No providers configured")
        for i, client in enumerate(self.clients):
            res = await client.generate(prompt, max_tokens, json_mode)
            if res.success:
                return res
            if i < len(self.clients) - 1:
                log.warning("Provider %s failed (%s), trying %s", client.name, res.error, self.clients[i + 1].name)
        return res

PROVIDERS = ("ollama", "openai", "openai-compat")

def provider_chain(primary: str, fallbacks: Sequence[str]) -> List[str]:
    """Primary first, then the fallbacks in order, each name once."""
    chain: List[str] = []
    for p in [primary, *fallbacks]:
        p = p.strip().lower()
        if not p: continue
        if p not in PROVIDERS:
            raise ValueError(f"Unknown AI provider {p!r}; expected one of {', '.join(PROVIDERS)}")
        if p not in chain:
            chain.append(p)
    return chain

def make_client(s, transport: Optional[httpx.AsyncBaseTransport] = None):
    """
    Client for the configured provider chain. Providers without credentials are
    skipped with a warning; with a single usable provider no FallbackClient is
    wrapped around it.
    """
    clients: List[AIClient] = []
    for p in provider_chain(s.ai_provider, s.ai_fallbacks):
        if p == "ollama":
            clients.append(OllamaClient(s.ollama_url, s.ollama_model, timeout=s.ai_timeout, transport=transport))
        elif p == "openai":
            if not s.openai_api_key:
                log.warning("Skipping openai (OPENAI_API_KEY not set)")
                continue
            clients.append(ChatCompletionsClient(s.openai_url, s.openai_api_key, s.openai_model,
                                                 timeout=s.ai_timeout, transport=transport))
        else:
            if not (s.openai_compat_url and s.openai_compat_api_key and (s.openai_compat_model or s.ollama_model)):
                log.warning("Skipping openai-compat (OPENAI_COMPAT_URL / OPENAI_COMPAT_API_KEY not set)")
                continue
            clients.append(ChatCompletionsClient(s.openai_compat_url, s.openai_compat_api_key,
                                                 s.openai_compat_model or s.ollama_model, name="openai-compat",
                                                 json_format=False, timeout=s.ai_timeout, transport=transport))
    if not clients:
        raise RuntimeError("No AI provider is configured. Check AI_PROVIDER and its keys in your .env.")
    return clients[0] if len(clients) == 1 else FallbackClient(clients)

# ---------- batch helpers ----------

async def analyze_captions(client: AIClient, jobs: Sequence[tuple], concurrency: int = 1) -> List[Optional[Analysis]]:
    """
    jobs: (caption, telegram_date_iso) pairs. Returns one Analysis (or None on
    failure) per job, same order. Requests inside a batch run concurrently.
    """
    out: List[Optional[Analysis]] = []
    step = max(1, concurrency)
    for i in range(0, len(jobs), step):
        batch = jobs[i:i + step]
        replies = await asyncio.gather(*(client.generate(build_prompt(c, d)) for c, d in batch))
        for res in replies:
            if not res.success:
                log.error("%s", res.error)
                out.append(None)
            else:
                out.append(parse_analysis_response(res.text))
    return out

async def translate_names(client: AIClient, names: Sequence[str], concurrency: int = 1) -> Dict[str, str]:
    """Persian place names → English, TRANSLATE_BATCH names per prompt."""
    results: Dict[str, str] = {}
    batches = [list(names[i:i + TRANSLATE_BATCH]) for i in range(0, len(names), TRANSLATE_BATCH)]
    step = max(1, concurrency)
    for i in range(0, len(batches), step):
        group = batches[i:i + step]
        replies = await asyncio.gather(*(client.generate(build_translate_prompt(b)) for b in group))
        for batch, res in zip(group, replies):
            if not res.success:
                log.error("Translation batch failed: %s", res.error)
                continue
            wanted = set(batch)
            for fa, en in parse_translations(res.text).items():
                if fa in wanted:
                    results[fa] = en
    return results

CAPTION_TRANSLATE_CHARS = 500

def build_caption_prompt(caption: str) -> str:
    return ("Translate this Farsi text to English. Only output the translation, nothing else:\n\n"
            + caption[:CAPTION_TRANSLATE_CHARS])

async def translate_caption(client: AIClient, caption: str) -> Optional[str]:
    """Plain-text English rendering of a caption, None when the model failed."""
    if not caption or not caption.strip():
        return None
    res = await client.generate(build_caption_prompt(caption), max_tokens=200, json_mode=False)
    if not res.success:
        log.warning("Caption translation failed: %s", res.error)
        return None
    return res.text or None

async def translate_captions(client: AIClient, captions: Mapping[str, str], concurrency: int = 1) -> Dict[str, str]:
    """album_id → caption, to album_id → English caption (failures left out)."""
    out: Dict[str, str] = {}
    items = list(captions.items())
    step = max(1, concurrency)
    for i in range(0, len(items), step):
        batch = items[i:i + step]
        replies = await asyncio.gather(*(translate_caption(client, text) for _, text in batch))
        for (album_id, _), en in zip(batch, replies):
            if en:
                out[album_id] = en
    return out
