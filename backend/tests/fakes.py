"""Test doubles shared across the test modules."""
from services.places_client import format_place


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """Dict-backed stand-in for the handful of redis commands the cache uses."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.store = {}
        self.calls = []

    def _live(self, key):
        item = self.store.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self.clock() >= expires_at:
            del self.store[key]
            return None
        return value

    def ping(self):
        return True

    def get(self, key):
        self.calls.append(("get", key))
        return self._live(key)

    def setex(self, key, ttl, value):
        self.calls.append(("setex", key, ttl))
        self.store[key] = (value, self.clock() + ttl)
        return True

    def delete(self, key):
        self.calls.append(("delete", key))
        return 1 if self.store.pop(key, None) is not None else 0

    def incr(self, key):
        current = int(self._live(key) or 0) + 1
        expires_at = self.store.get(key, (None, None))[1]
        self.store[key] = (str(current), expires_at)
        return current

    def expire(self, key, ttl):
        value = self._live(key)
        if value is None:
            return False
        self.store[key] = (value, self.clock() + ttl)
        return True

    def ttl(self, key):
        if self._live(key) is None:
            return -2
        expires_at = self.store[key][1]
        if expires_at is None:
            return -1
        return max(int(expires_at - self.clock()), 0)

    def close(self):
        return None


class FakeLLM:
    """Records prompts and returns queued responses (or raises queued exceptions)."""

    provider = "fake"

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def generate(self, prompt, system_prompt=None, options=None):
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "options": options})
        if not self.responses:
            return "Here is a short summary."
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def check_model(self):
        return True


def raw_place(place_id: str, name: str, lat: float = -6.2, lng: float = 106.8, **extra) -> dict:
    data = {
        "place_id": place_id,
        "name": name,
        "formatted_address": f"{name} street, Jakarta",
        "geometry": {"location": {"lat": lat, "lng": lng}},
        "rating": 4.5,
        "user_ratings_total": 120,
        "types": ["cafe", "food"],
    }
    data.update(extra)
    return data


def make_place(place_id: str, name: str, **extra):
    return format_place(raw_place(place_id, name, **extra), api_key="test-key")


