"""
Service wiring for the API.

All collaborators are built once per application and stored on
``app.state.services``; routes receive them through FastAPI dependencies.
"""
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request

from services.cache import CacheService
from services.entity_extractor import EntityExtractor
from services.llm_client import LLMClient, create_llm_client
from services.narrative_engine import NarrativeGenerator
from services.places_client import PlacesClient
from services.query_orchestrator import QueryOrchestrator
from services.rate_limit import RateLimiter


@dataclass
class ServiceContainer:
    llm: LLMClient
    cache: CacheService
    orchestrator: QueryOrchestrator
    rate_limiter: RateLimiter
    debug: bool = False


def build_services(settings) -> ServiceContainer:
    llm = create_llm_client(settings)
    cache = CacheService.from_settings(settings)
    orchestrator = QueryOrchestrator(
        extractor=EntityExtractor(llm, timeout=settings.LLM_EXTRACTION_TIMEOUT),
        places=PlacesClient.from_settings(settings),
        narrator=NarrativeGenerator(llm),
        cache=cache,
    )
    return ServiceContainer(
        llm=llm,
        cache=cache,
        orchestrator=orchestrator,
        rate_limiter=RateLimiter(cache, settings.RATE_LIMIT_MAX_REQUESTS),
        debug=settings.is_development,
    )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_orchestrator(services: ServiceContainer = Depends(get_services)) -> QueryOrchestrator:
    return services.orchestrator


def enforce_rate_limit(request: Request, services: ServiceContainer) -> None:
    """
    Count this request against the client's budget, raising 429 once it is spent.

    Called from the handlers rather than declared as a route dependency:
    dependencies run before body validation, and rejected bodies must not
    consume budget.
    """
    client_id = request.client.host if request.client else "anonymous"
    if not services.rate_limiter.hit(client_id):
        raise HTTPException(status_code=429, detail="Too many requests, please try again later.")
