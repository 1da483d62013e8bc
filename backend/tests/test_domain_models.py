import dataclasses

import pytest

from domain.models import ExtractedEntities, QueryRequest, QueryResult
from services.cache import CacheService
from services.places_types import Coordinates
from services.rate_limit import RateLimiter

from fakes import make_place


def test_extracted_entities_dedupe_and_keep_order():
    entities = ExtractedEntities(
        place_names=("A", "B", "A"),
        place_types=("cafe", "cafe"),
        locations=("bandung", "jakarta", "bandung"),
    )
    assert entities.place_names == ("A", "B")
    assert entities.place_types == ("cafe",)
    assert entities.to_dict() == {
        "place_names": ["A", "B"],
        "place_types": ["cafe"],
        "locations": ["bandung", "jakarta"],
    }


def test_extracted_entities_are_immutable():
    entities = ExtractedEntities()
    with pytest.raises(dataclasses.FrozenInstanceError):
        entities.place_types = ("cafe",)


def test_cache_key_parts_depend_on_prompt_and_location():
    no_loc = QueryRequest("coffee").cache_key_parts()
    with_loc = QueryRequest("coffee", user_location=Coordinates(-6.2, 106.8)).cache_key_parts()

    assert no_loc == ("coffee", "null")
    assert with_loc == ("coffee", '{"lat":-6.2,"lng":106.8}')
    # max_results and use_cache do not change the key
    assert QueryRequest("coffee", max_results=2, use_cache=False).cache_key_parts() == no_loc


def test_cached_payload_only_refreshes_request_fields():
    original = QueryResult(llm_text="text", places=[make_place("p1", "A")], request_id="req_1")
    restored = QueryResult.from_cache_payload(original.cache_payload(), "req_2", 3.5)

    assert restored.cache_payload() == original.cache_payload()
    assert restored.cached is True
    assert restored.processing_time == 3.5
    assert restored.request_id == "req_2"


def test_rate_limiter_allows_when_cache_is_down():
    class DownCache(CacheService):
        def increment(self, *parts):
            return 0

    limiter = RateLimiter(DownCache(), max_requests=1)
    assert all(limiter.hit("1.2.3.4") for _ in range(5))


def test_rate_limiter_lets_client_back_in_after_window_despite_retries(fake_redis, clock):
    cache = CacheService(client_factory=lambda: fake_redis, clock=clock)
    limiter = RateLimiter(cache, max_requests=2)

    assert [limiter.hit("a") for _ in range(3)] == [True, True, False]
    clock.advance(30)
    assert limiter.hit("a") is False
    clock.advance(31)
    assert limiter.hit("a") is True


def test_rate_limiter_disabled_with_zero_budget(fake_redis, clock):
    cache = CacheService(client_factory=lambda: fake_redis, clock=clock)
    limiter = RateLimiter(cache, max_requests=0)
    assert all(limiter.hit("a") for _ in range(50))
    assert fake_redis.store == {}
