from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Protocol

import redis
from fastapi import HTTPException

from form_builder.core.config import settings

_LOG = logging.getLogger("form_builder.rate_limit")


@dataclass
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int
    current_value: int


class RateLimiter(Protocol):
    def hit(self, key: str, *, limit: int, window_seconds: int) -> RateLimitResult:
        ...


class InMemoryRateLimiter:
    """Process-local fixed window counter used when Redis is unreachable."""

    def __init__(self, max_keys: int = 10_000):
        self.max_keys = max_keys
        self._windows: dict[str, tuple[int, datetime]] = {}
        self._lock = Lock()

    def _prune(self, now: datetime) -> None:
        expired = [key for key, (_, expires_at) in self._windows.items() if expires_at <= now]
        for key in expired:
            del self._windows[key]

    def hit(self, key: str, *, limit: int, window_seconds: int) -> RateLimitResult:
        now = datetime.now(timezone.utc)
        with self._lock:
            if len(self._windows) >= self.max_keys:
                self._prune(now)
            count, expires_at = self._windows.get(key, (0, now))
            if expires_at <= now:
                count = 0
                expires_at = now + timedelta(seconds=max(int(window_seconds), 1))
            count += 1
            self._windows[key] = (count, expires_at)
        retry_after = max(0, int((expires_at - now).total_seconds()))
        return RateLimitResult(allowed=count <= limit, retry_after_seconds=retry_after, current_value=count)


class RedisRateLimiter:
    def __init__(self, client: redis.Redis):
        self.client = client

    def hit(self, key: str, *, limit: int, window_seconds: int) -> RateLimitResult:
        window = int(max(window_seconds, 1))
        with self.client.pipeline() as pipe:
            pipe.incr(key)
            pipe.ttl(key)
            count, ttl = pipe.execute()
        # First hit of a window has no expiry yet.
        if int(ttl) < 0:
            self.client.expire(key, window)
            ttl = window
        return RateLimitResult(allowed=int(count) <= limit, retry_after_seconds=int(ttl), current_value=int(count))


_cached_limiter: RateLimiter | None = None


def _build_limiter() -> RateLimiter:
    try:
        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=0.4,
            socket_connect_timeout=0.4,
        )
        client.ping()
        return RedisRateLimiter(client)
    except redis.RedisError:
        _LOG.warning("Redis limiter unavailable; fallback to in-memory limiter")
        return InMemoryRateLimiter()


def get_rate_limiter() -> RateLimiter:
    global _cached_limiter
    if _cached_limiter is None:
        _cached_limiter = _build_limiter()
    return _cached_limiter


def reset_rate_limiter_for_tests() -> None:
    global _cached_limiter
    _cached_limiter = None


def _hash_key_part(raw: str | None) -> str:
    value = str(raw or "").strip()
    if not value:
        return "-"
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:20]


def submission_rate_limit_or_429(limiter: RateLimiter, *, form_id: str, client_ip: str | None) -> None:
    window = int(max(settings.PUBLIC_SUBMIT_RATE_LIMIT_WINDOW_SECONDS, 1))
    limit = int(max(settings.PUBLIC_SUBMIT_RATE_LIMIT, 1))
    key = f"forms:submit:ip:{_hash_key_part(client_ip)}:form:{form_id}"
    result = limiter.hit(key, limit=limit, window_seconds=window)
    if not result.allowed:
        _LOG.warning("form submit rate limited form_id=%s count=%s", form_id, result.current_value)
        raise HTTPException(
            status_code=429,
            detail=f"Too many submissions. Retry in {max(result.retry_after_seconds, 1)} s.",
        )
