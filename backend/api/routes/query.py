"""
Place query API routes.

Handles natural-language queries, place details, nearby search and health.
"""
import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.dependencies import ServiceContainer, enforce_rate_limit, get_orchestrator, get_services
from domain.models import QueryRequest
from services.places_types import Coordinates
from services.query_orchestrator import NoPlacesFound, QueryFailed, QueryOrchestrator

router = APIRouter()
logger = logging.getLogger(__name__)


class UserLocation(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_coordinates(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)


class QueryBody(BaseModel):
    prompt: str = Field(..., min_length=3, max_length=500)
    user_location: Optional[UserLocation] = None
    max_results: int = Field(5, ge=1, le=10)
    use_cache: bool = True


class QueryResponse(BaseModel):
    llm_text: str
    places: List[Dict[str, Any]]
    request_id: str
    cached: bool
    processing_time: float


class NearbyBody(BaseModel):
    # Optional here so a missing value is answered with our own 400 body
    location: Optional[UserLocation] = None
    place_type: Optional[str] = None
    radius: int = Field(1000, ge=1, le=50000)
    keyword: Optional[str] = None


class NearbyResponse(BaseModel):
    places: List[Dict[str, Any]]
    total: int


@router.post("/query", response_model=QueryResponse)
def process_query(
    body: QueryBody,
    http_request: Request,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
    services: ServiceContainer = Depends(get_services),
):
    """
    Resolve a natural-language place search.

    404 when nothing matched (with the explanatory text), 500 when any stage
    of the pipeline failed.
    """
    enforce_rate_limit(http_request, services)
    request = QueryRequest(
        prompt=body.prompt,
        user_location=body.user_location.to_coordinates() if body.user_location else None,
        max_results=body.max_results,
        use_cache=body.use_cache,
    )
    try:
        result = orchestrator.process(request)
    except NoPlacesFound as exc:
        return JSONResponse(
            status_code=404,
            content={"error": str(exc), "request_id": exc.request_id, "llm_text": exc.llm_text},
        )
    except QueryFailed as exc:
        content = {"error": str(exc), "request_id": exc.request_id}
        if services.debug:
            content["message"] = str(exc.cause)
        return JSONResponse(status_code=500, content=content)
    return result.to_dict()


@router.get("/place/{place_id}")
def get_place_details(place_id: str, orchestrator: QueryOrchestrator = Depends(get_orchestrator)):
    """Get extended details (phone, hours, reviews, photos) for one place."""
    details = orchestrator.get_place_details(place_id)
    if details is None:
        return JSONResponse(status_code=404, content={"error": "Place not found"})
    return details.to_dict()


@router.post("/nearby", response_model=NearbyResponse)
def nearby_search(
    body: NearbyBody,
    http_request: Request,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
    services: ServiceContainer = Depends(get_services),
):
    if body.location is None or not (body.place_type or "").strip():
        return JSONResponse(status_code=400, content={"error": "Location and place_type are required"})
    enforce_rate_limit(http_request, services)
    places = orchestrator.nearby(
        body.location.to_coordinates(),
        body.place_type.strip(),
        radius=body.radius,
        keyword=body.keyword,
    )
    return NearbyResponse(places=[p.to_dict() for p in places], total=len(places))


@router.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": int(time.time() * 1000)}
