"""
Core domain models for the place query service.
These are framework-agnostic and can be used across all services.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from services.places_types import Coordinates, PlaceRecord


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    """Deduplicate while keeping first-seen order."""
    seen: Dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return tuple(seen)


@dataclass(frozen=True)
class ExtractedEntities:
    """
    Structured intent pulled out of a free-text prompt.

    All three fields are always present and deduplicated. Produced once per
    request by the entity extractor and never mutated.
    """
    place_names: Tuple[str, ...] = ()
    place_types: Tuple[str, ...] = ()
    locations: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "place_names", _unique(self.place_names or ()))
        object.__setattr__(self, "place_types", _unique(self.place_types or ()))
        object.__setattr__(self, "locations", _unique(self.locations or ()))

    @property
    def is_empty(self) -> bool:
        return not (self.place_names or self.place_types or self.locations)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "place_names": list(self.place_names),
            "place_types": list(self.place_types),
            "locations": list(self.locations),
        }


@dataclass(frozen=True)
class QueryRequest:
    """A validated place search request."""
    prompt: str
    user_location: Optional[Coordinates] = None
    max_results: int = 5
    use_cache: bool = True

    def cache_key_parts(self) -> Tuple[str, str]:
        """Key parts for the response cache: the prompt and the serialized location."""
        if self.user_location is None:
            location = "null"
        else:
            location = json.dumps(
                {"lat": self.user_location.lat, "lng": self.user_location.lng},
                separators=(",", ":"),
            )
        return (self.prompt, location)


@dataclass
class QueryResult:
    """
    The combined response for a query.

    Only ``llm_text`` and ``places`` are cached; ``request_id``, ``cached`` and
    ``processing_time`` always describe the current request.
    """
    llm_text: str
    places: List[PlaceRecord]
    request_id: str
    cached: bool = False
    processing_time: float = 0.0  # milliseconds

    def cache_payload(self) -> Dict[str, Any]:
        return {
            "llm_text": self.llm_text,
            "places": [p.to_dict() for p in self.places],
        }

    @classmethod
    def from_cache_payload(
        cls,
        payload: Dict[str, Any],
        request_id: str,
        processing_time: float,
    ) -> "QueryResult":
        return cls(
            llm_text=payload["llm_text"],
            places=[PlaceRecord.from_dict(p) for p in payload.get("places") or []],
            request_id=request_id,
            cached=True,
            processing_time=processing_time,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "llm_text": self.llm_text,
            "places": [p.to_dict() for p in self.places],
            "request_id": self.request_id,
            "cached": self.cached,
            "processing_time": self.processing_time,
        }


@dataclass
class SearchPlan:
    """Provider text searches derived from the extracted entities."""
    queries: List[Tuple[str, Optional[str]]] = field(default_factory=list)  # (query, place_type)
    from_prompt: bool = False
