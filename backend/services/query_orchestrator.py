"""
End-to-end query resolution.

Flow per request:
1. Cache check (unless ``use_cache`` is off)
2. Entity extraction
3. Provider search built from the entities (or the raw prompt)
4. Empty result -> "nothing found" narrative, NoPlacesFound
5. Truncate to ``max_results``, narrative, cache write

Collaborators are injected so each can be replaced by a test double.
"""
from __future__ import annotations

import logging
import time
import uuid
from typing import Dict, List, Optional

from domain.models import ExtractedEntities, QueryRequest, QueryResult, SearchPlan
from services.cache import CacheService
from services.entity_extractor import EntityExtractor
from services.narrative_engine import NarrativeGenerator
from services.places_client import LocationLike, PlacesClient
from services.places_types import Coordinates, PlaceRecord

logger = logging.getLogger(__name__)

QUERY_CACHE_TTL = 1800
PLACE_CACHE_TTL = 3600
MAX_TYPE_SEARCHES = 2


class QueryError(Exception):
    def __init__(self, request_id: str, message: str):
        super().__init__(message)
        self.request_id = request_id


class NoPlacesFound(QueryError):
    """The provider returned nothing for the query; carries the apology narrative."""

    def __init__(self, request_id: str, llm_text: str):
        super().__init__(request_id, "No places found matching your query.")
        self.llm_text = llm_text


class QueryFailed(QueryError):
    def __init__(self, request_id: str, cause: BaseException):
        super().__init__(request_id, "Failed to process query")
        self.cause = cause


def new_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000.0, 2)


def build_search_plan(entities: ExtractedEntities, prompt: str) -> SearchPlan:
    """Turn extracted entities into provider text searches, falling back to the prompt."""
    area = " ".join(entities.locations)
    if entities.place_types:
        queries = [
            (" ".join(part for part in (place_type, area) if part), place_type)
            for place_type in entities.place_types[:MAX_TYPE_SEARCHES]
        ]
        return SearchPlan(queries=queries)
    if entities.place_names:
        query = " ".join(part for part in (" ".join(entities.place_names), area) if part)
        return SearchPlan(queries=[(query, None)])
    return SearchPlan(queries=[(prompt, None)], from_prompt=True)


class QueryOrchestrator:
    def __init__(
        self,
        extractor: EntityExtractor,
        places: PlacesClient,
        narrator: NarrativeGenerator,
        cache: CacheService,
        query_ttl: int = QUERY_CACHE_TTL,
        place_ttl: int = PLACE_CACHE_TTL,
    ):
        self.extractor = extractor
        self.places = places
        self.narrator = narrator
        self.cache = cache
        self.query_ttl = query_ttl
        self.place_ttl = place_ttl

    def _cached_result(self, request: QueryRequest, request_id: str, start: float) -> Optional[QueryResult]:
        payload = self.cache.get(*request.cache_key_parts())
        if not isinstance(payload, dict):
            return None
        try:
            result = QueryResult.from_cache_payload(payload, request_id, _elapsed_ms(start))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("[%s] Ignoring malformed cached result: %s", request_id, exc)
            return None
        # the key ignores max_results; the stored entry may hold more than this request wants
        result.places = result.places[: request.max_results]
        return result

    def _search(self, plan: SearchPlan, location: Optional[Coordinates]) -> List[PlaceRecord]:
        seen: Dict[str, PlaceRecord] = {}
        for query, place_type in plan.queries:
            for place in self.places.search_by_text(query, location=location, place_type=place_type):
                seen.setdefault(place.place_id, place)
        return list(seen.values())

    def process(self, request: QueryRequest) -> QueryResult:
        start = time.perf_counter()
        request_id = new_request_id()

        if request.use_cache:
            cached = self._cached_result(request, request_id, start)
            if cached is not None:
                logger.info("[%s] Using cached result (%.0fms)", request_id, cached.processing_time)
                return cached

        logger.info('[%s] Processing query: "%s"', request_id, request.prompt)
        try:
            entities = self.extractor.extract(request.prompt)
            logger.info("[%s] Extracted entities: %s", request_id, entities.to_dict())

            plan = build_search_plan(entities, request.prompt)
            places = self._search(plan, request.user_location)
            logger.info(
                "[%s] Provider returned %d places (%d searches%s)",
                request_id,
                len(places),
                len(plan.queries),
                ", raw prompt" if plan.from_prompt else "",
            )

            places = places[: request.max_results]
            llm_text = self.narrator.summarize(places, request.prompt)
        except Exception as exc:
            logger.exception("[%s] Query processing failed after %.0fms", request_id, _elapsed_ms(start))
            raise QueryFailed(request_id, exc) from exc

        if not places:
            logger.info("[%s] No places found (%.0fms)", request_id, _elapsed_ms(start))
            raise NoPlacesFound(request_id, llm_text)

        result = QueryResult(
            llm_text=llm_text,
            places=places,
            request_id=request_id,
            cached=False,
        )
        if request.use_cache:
            self.cache.set(result.cache_payload(), self.query_ttl, *request.cache_key_parts())

        result.processing_time = _elapsed_ms(start)
        logger.info("[%s] Finished in %.0fms", request_id, result.processing_time)
        return result

    def get_place_details(self, place_id: str) -> Optional[PlaceRecord]:
        cached = self.cache.get("place", place_id)
        if isinstance(cached, dict):
            try:
                return PlaceRecord.from_dict(cached)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Ignoring malformed cached place %s: %s", place_id, exc)

        details = self.places.get_details(place_id)
        if details is None:
            return None
        self.cache.set(details.to_dict(), self.place_ttl, "place", place_id)
        return details

    def nearby(
        self,
        location: LocationLike,
        place_type: str,
        radius: int = 1000,
        keyword: Optional[str] = None,
    ) -> List[PlaceRecord]:
        return self.places.search_nearby(location, place_type, radius=radius, keyword=keyword)
