"""
Redis-backed response cache.

Keys are content-addressed: all key parts are joined with ":" and hashed, so
callers pass the natural parts (prompt, location, place id) and never build
keys themselves. The cache is an optimization only; every operation returns a
miss value instead of raising when Redis is unavailable.
"""
from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from typing import Any, Callable, Optional

import redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "llm_maps"
COUNTER_TTL_SECONDS = 60
RECONNECT_BASE_DELAY = 0.1
RECONNECT_MAX_DELAY = 10.0


def generate_key(*parts: Any) -> str:
    key_string = ":".join(str(p) for p in parts)
    return f"{KEY_PREFIX}:{hashlib.md5(key_string.encode('utf-8')).hexdigest()}"


class CacheService:
    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        password: Optional[str] = None,
        db: int = 0,
        default_ttl: int = 1800,
        client_factory: Optional[Callable[[], Any]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.host = host
        self.port = port
        self.default_ttl = default_ttl
        self._client_factory = client_factory or (
            lambda: redis.Redis(
                host=host,
                port=port,
                password=password,
                db=db,
                socket_timeout=2.0,
                socket_connect_timeout=2.0,
                decode_responses=True,
            )
        )
        self._clock = clock
        self._client: Optional[Any] = None
        self._lock = threading.Lock()
        self._failures = 0
        self._next_attempt_at = 0.0

    @classmethod
    def from_settings(cls, settings) -> "CacheService":
        return cls(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            password=settings.REDIS_PASSWORD,
            db=settings.REDIS_DB,
            default_ttl=settings.CACHE_TTL,
        )

    def _backoff_delay(self) -> float:
        return min(RECONNECT_BASE_DELAY * (2 ** (self._failures - 1)), RECONNECT_MAX_DELAY)

    def _mark_failed(self, exc: Exception) -> None:
        self._client = None
        self._failures += 1
        delay = self._backoff_delay()
        self._next_attempt_at = self._clock() + delay
        logger.warning("Redis unavailable (%s); reconnect attempt #%d in %.1fs", exc, self._failures, delay)

    def _connect(self) -> Optional[Any]:
        """Return a live client, connecting lazily and honouring the reconnect back-off."""
        with self._lock:
            if self._client is not None:
                return self._client
            if self._clock() < self._next_attempt_at:
                return None
            try:
                client = self._client_factory()
                client.ping()
            except redis.exceptions.RedisError as exc:
                self._mark_failed(exc)
                return None
            self._client = client
            self._failures = 0
            logger.info("Redis connected to %s:%s", self.host, self.port)
            return client

    def _command_failed(self, op: str, exc: Exception) -> None:
        logger.error("Cache %s error: %s", op, exc)
        if isinstance(exc, (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError)):
            with self._lock:
                self._mark_failed(exc)

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def get(self, *parts: Any) -> Optional[Any]:
        client = self._connect()
        if client is None:
            return None
        key = generate_key(*parts)
        try:
            value = client.get(key)
        except redis.exceptions.RedisError as exc:
            self._command_failed("get", exc)
            return None
        if value is None:
            logger.debug("Cache miss for key: %s", key)
            return None
        try:
            decoded = json.loads(value)
        except (TypeError, ValueError):
            logger.warning("Discarding undecodable cache value for key: %s", key)
            return None
        logger.debug("Cache hit for key: %s", key)
        return decoded

    def set(self, value: Any, ttl: Optional[int] = None, *parts: Any) -> bool:
        client = self._connect()
        if client is None:
            return False
        key = generate_key(*parts)
        expiry = ttl or self.default_ttl
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            logger.error("Cache set error: value for %s is not serializable: %s", key, exc)
            return False
        try:
            client.setex(key, expiry, payload)
        except redis.exceptions.RedisError as exc:
            self._command_failed("set", exc)
            return False
        logger.debug("Cached key: %s with TTL: %s", key, expiry)
        return True

    def delete(self, *parts: Any) -> bool:
        client = self._connect()
        if client is None:
            return False
        key = generate_key(*parts)
        try:
            result = client.delete(key)
        except redis.exceptions.RedisError as exc:
            self._command_failed("delete", exc)
            return False
        if result:
            logger.debug("Deleted cache key: %s", key)
        return bool(result)

    def increment(self, *parts: Any) -> int:
        """Increment a counter that expires COUNTER_TTL_SECONDS after its first hit."""
        client = self._connect()
        if client is None:
            return 0
        key = generate_key(*parts)
        try:
            value = client.incr(key)
            # -1: the key exists without an expiry (INCR succeeded, EXPIRE never ran)
            if value == 1 or client.ttl(key) == -1:
                client.expire(key, COUNTER_TTL_SECONDS)
        except redis.exceptions.RedisError as exc:
            self._command_failed("increment", exc)
            return 0
        return int(value)

    def close(self) -> None:
        with self._lock:
            client, self._client = self._client, None
        if client is None:
            return
        try:
            client.close()
            logger.info("Redis connection closed by application")
        except redis.exceptions.RedisError as exc:
            logger.error("Error closing Redis connection: %s", exc)
