"""Fixed-window request counting on top of the cache counters."""
from __future__ import annotations

import logging

from services.cache import CacheService

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self, cache: CacheService, max_requests: int = 30):
        self.cache = cache
        self.max_requests = max_requests

    def hit(self, client_id: str) -> bool:
        """Count a request for ``client_id``; False once the window's budget is spent."""
        if self.max_requests <= 0:
            return True
        count = self.cache.increment("rate", client_id)
        # 0 means the cache is unreachable; never block on it
        if count == 0 or count <= self.max_requests:
            return True
        logger.info("Rate limit exceeded for %s (%d requests)", client_id, count)
        return False
