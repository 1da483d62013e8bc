"""
Entity extraction: free text -> place names, place types and locations.

The LLM is asked for a strict JSON object first. Anything that goes wrong on
that path (connection error, timeout, unparseable output) drops to a
deterministic keyword/regex extraction, so ``extract`` never raises.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Iterable, List, Optional

from domain.models import ExtractedEntities
from services.json_repair import JSONRepairError, parse_json_loose
from services.llm_client import GenerationOptions, LLMClient, LLMError

logger = logging.getLogger(__name__)

EXTRACTION_SYSTEM_PROMPT = """
You are a JSON extractor. Extract location information from the user's text and return ONLY valid JSON (no extra commentary).
Requirements:
- Output must be a single JSON object with keys: place_names, place_types, locations.
- Each key must be an array (can be empty).
- place_names: specific place names (e.g., "Warung MJS", "One Eighty Coffee").
- place_types: normalized place types (english if possible, e.g., "restaurant", "cafe", "park").
- locations: city/area names (lowercase).
- Use deterministic style: short concise output.

Example:
{"place_names":["Warung MJS"],"place_types":["restaurant"],"locations":["bandung"]}

Return only the JSON object.
""".strip()

EXTRACTION_MAX_TOKENS = 200
MAX_FALLBACK_PLACE_NAMES = 6

# Regional synonyms -> canonical provider category.
PLACE_TYPE_SYNONYMS = {
    "restoran": "restaurant",
    "rumah makan": "restaurant",
    "warung": "restaurant",
    "resto": "restaurant",
    "kafe": "cafe",
    "coffee shop": "cafe",
    "coffee shops": "cafe",
    "kedai": "cafe",
    "kedai kopi": "cafe",
    "taman": "park",
    "pantai": "beach",
    "gunung": "mountain",
    "danau": "lake",
    "pasar": "market",
    "toko": "store",
    "candi": "temple",
    "coworking": "co-working",
    "tempat wisata": "point_of_interest",
}

KNOWN_PLACE_TYPES = (
    "restaurant",
    "restoran",
    "resto",
    "cafe",
    "kafe",
    "coffee shop",
    "kedai kopi",
    "warung",
    "rumah makan",
    "hotel",
    "mall",
    "park",
    "taman",
    "museum",
    "temple",
    "candi",
    "beach",
    "pantai",
    "mountain",
    "gunung",
    "lake",
    "danau",
    "market",
    "pasar",
    "store",
    "toko",
    "ramen",
    "sate",
    "bakso",
    "seafood",
    "co-working",
    "coworking",
    "bakery",
)

KNOWN_LOCATIONS = (
    "jakarta",
    "bandung",
    "surabaya",
    "medan",
    "semarang",
    "makassar",
    "palembang",
    "tangerang",
    "depok",
    "bekasi",
    "bogor",
    "yogyakarta",
    "jogja",
    "bali",
    "denpasar",
    "malang",
    "solo",
    "surakarta",
    "pekanbaru",
    "batam",
    "bandar lampung",
    "padang",
    "manado",
    "pontianak",
    "balikpapan",
    "majene",
    "cilacap",
    "cirebon",
    "tasikmalaya",
)

# "di Bandung", "kota Malang", "kabupaten Sleman"
_LOCATION_MARKER_RE = re.compile(r"\b(?:di kota|di kabupaten|kota|kabupaten|di)\s+([A-Za-zÀ-ſ'-]{3,40})", re.IGNORECASE)
# "in Jakarta", "near Kuta Beach"
_LOCATION_PREPOSITION_RE = re.compile(r"\b(?:in|near|around)\s+([A-Z][A-Za-zÀ-ſ'-]{2,40})")
_PLACE_NAME_RE = re.compile(r"\b([A-Z][\w'-]+(?:\s+[A-Z][\w'-]+){1,4})\b")


def normalize_place_type(value: str) -> Optional[str]:
    t = value.strip().lower()
    if not t:
        return None
    return PLACE_TYPE_SYNONYMS.get(t, t)


def _as_strings(value: Any) -> List[str]:
    """Coerce a JSON array into trimmed strings; anything else is an empty list."""
    if not isinstance(value, list):
        return []
    out = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            continue
        text = str(item).strip()
        if text:
            out.append(text)
    return out


def normalize_entities(raw: Any) -> ExtractedEntities:
    """Turn a parsed (possibly wrong-shaped) object into ExtractedEntities."""
    if not isinstance(raw, dict):
        return ExtractedEntities()
    types = (normalize_place_type(t) for t in _as_strings(raw.get("place_types")))
    return ExtractedEntities(
        place_names=tuple(_as_strings(raw.get("place_names"))),
        place_types=tuple(t for t in types if t),
        locations=tuple(loc.lower() for loc in _as_strings(raw.get("locations"))),
    )


def extract_place_types(text: str) -> List[str]:
    lowered = text.lower()
    found: List[str] = []
    for keyword in KNOWN_PLACE_TYPES:
        if keyword in lowered:
            canonical = PLACE_TYPE_SYNONYMS.get(keyword, keyword)
            if canonical not in found:
                found.append(canonical)
    return found


def extract_locations(text: str) -> List[str]:
    lowered = text.lower()
    found = [loc for loc in KNOWN_LOCATIONS if loc in lowered]
    for regex in (_LOCATION_MARKER_RE, _LOCATION_PREPOSITION_RE):
        for match in regex.finditer(text):
            candidate = match.group(1).strip().lower()
            if candidate not in found:
                found.append(candidate)
    return found


def extract_place_names(text: str, locations: Iterable[str] = ()) -> List[str]:
    skip = set(locations)
    names: List[str] = []
    for match in _PLACE_NAME_RE.finditer(text):
        candidate = match.group(1).strip()
        if candidate.lower() in skip or candidate in names:
            continue
        names.append(candidate)
        if len(names) >= MAX_FALLBACK_PLACE_NAMES:
            break
    return names


def fallback_extract(text: str) -> ExtractedEntities:
    """Keyword and regex extraction with no external calls."""
    locations = extract_locations(text)
    return normalize_entities(
        {
            "place_names": extract_place_names(text, locations),
            "place_types": extract_place_types(text),
            "locations": locations,
        }
    )


class EntityExtractor:
    def __init__(self, llm: LLMClient, timeout: float = 20.0):
        self.llm = llm
        self.timeout = timeout

    def extract(self, text: str) -> ExtractedEntities:
        options = GenerationOptions(
            temperature=0.0,
            max_tokens=EXTRACTION_MAX_TOKENS,
            strict_json=True,
            timeout=self.timeout,
        )
        try:
            raw = self.llm.generate(f'Extract from: """{text}"""', EXTRACTION_SYSTEM_PROMPT, options)
            parsed = parse_json_loose(raw)
        except (LLMError, JSONRepairError) as exc:
            logger.warning("Entity extraction fallback active: %s", exc)
            return fallback_extract(text)
        except Exception:
            logger.exception("Entity extraction failed unexpectedly, using fallback")
            return fallback_extract(text)
        return normalize_entities(parsed)
