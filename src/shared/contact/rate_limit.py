"""Sliding-window rate limiting for the contact form.

The limiter counts recent requests per client identifier. Storage sits behind
``RateLimitStore`` so the same policy can run on process memory (default) or on
Redis when several instances serve the endpoint.
"""

import logging
import math
import time
import uuid
from collections import OrderedDict, deque
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

from fastapi import Request
from redis import Redis
from redis.exceptions import RedisError


UNKNOWN_CLIENT = "unknown"

REDIS_SOCKET_TIMEOUT_SECONDS = 2.0

# Checked in order; each may hold a comma-separated proxy chain.
FORWARDING_HEADERS = ("X-Forwarded-For", "X-Real-IP", "X-Vercel-Forwarded-For")


def get_client_ip(request: Request) -> str:
    """Get client IP address for rate limiting."""
    for header in FORWARDING_HEADERS:
        forwarded = request.headers.get(header)
        if forwarded:
            # Take the first IP in the chain
            client_ip = forwarded.split(",")[0].strip()
            if client_ip:
                return client_ip
    # Fallback to direct connection
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


class RateLimitStore:
    """Storage for per-client request timestamps."""

    def count_recent(self, key: str, window_start: float) -> int:
        """Drops timestamps older than ``window_start`` and counts the rest."""
        raise NotImplementedError

    def record(self, key: str, timestamp: float, window_seconds: float) -> None:
        raise NotImplementedError


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local store. Timestamps are pruned lazily when a client is seen.

    ``max_clients`` bounds the number of tracked identifiers, evicting the
    least recently seen one; 0 means unbounded.
    """

    def __init__(self, max_clients: int = 0):
        self.max_clients = max_clients
        self._entries = OrderedDict()
        self._lock = Lock()

    def count_recent(self, key: str, window_start: float) -> int:
        with self._lock:
            timestamps = self._entries.get(key)
            if timestamps is None:
                return 0
            while timestamps and timestamps[0] < window_start:
                timestamps.popleft()
            if not timestamps:
                del self._entries[key]
                return 0
            self._entries.move_to_end(key)
            return len(timestamps)

    def record(self, key: str, timestamp: float, window_seconds: float) -> None:
        with self._lock:
            timestamps = self._entries.get(key)
            if timestamps is None:
                timestamps = self._entries[key] = deque()
            timestamps.append(timestamp)
            self._entries.move_to_end(key)
            if self.max_clients:
                while len(self._entries) > self.max_clients:
                    self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)


class RedisRateLimitStore(RateLimitStore):
    """Shared store using one Redis sorted set per client, scored by timestamp."""

    def __init__(self, client: Redis, prefix: str = "rate_limit:contact"):
        self.redis = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def count_recent(self, key: str, window_start: float) -> int:
        redis_key = self._key(key)
        try:
            # Exclusive bound: a timestamp equal to window_start is still inside.
            self.redis.zremrangebyscore(redis_key, "-inf", f"({window_start}")
            return int(self.redis.zcard(redis_key))
        except RedisError as e:
            # Rate limiting is advisory; an unreachable Redis lets the request through
            logging.warning(f"Failed to read contact rate limit for {key}: {str(e)}")
            return 0

    def record(self, key: str, timestamp: float, window_seconds: float) -> None:
        redis_key = self._key(key)
        try:
            self.redis.zadd(redis_key, {f"{timestamp}:{uuid.uuid4().hex}": timestamp})
            self.redis.expire(redis_key, max(1, math.ceil(window_seconds)))
        except RedisError as e:
            logging.error(f"Failed to record contact rate limit for {key}: {str(e)}")


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    retry_after_seconds: int = 0


class SlidingWindowRateLimiter:
    """Allows at most ``max_requests`` per client within a trailing window."""

    def __init__(self, store: RateLimitStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    def check(self, client_id: str, window_seconds: float, max_requests: int) -> RateLimitDecision:
        """
        Counts the client's requests inside the window and records this one
        when it is allowed. Rejected requests are not recorded.
        """
        now = self.clock()
        recent = self.store.count_recent(client_id, now - window_seconds)
        if recent >= max_requests:
            return RateLimitDecision(
                allowed=False,
                count=recent,
                retry_after_seconds=math.ceil(window_seconds),
            )
        self.store.record(client_id, now, window_seconds)
        return RateLimitDecision(allowed=True, count=recent + 1)


def build_rate_limit_store(redis_url: Optional[str] = None, max_clients: int = 0) -> RateLimitStore:
    """
    Returns a Redis-backed store when a URL is configured and reachable,
    otherwise the in-memory store.
    """
    if redis_url:
        try:
            client = Redis.from_url(
                redis_url,
                decode_responses=True,
                socket_timeout=REDIS_SOCKET_TIMEOUT_SECONDS,
                socket_connect_timeout=REDIS_SOCKET_TIMEOUT_SECONDS,
            )
            client.ping()
            logging.info("Contact rate limiting uses Redis")
            return RedisRateLimitStore(client)
        except (RedisError, ValueError) as e:
            logging.warning(f"Redis unavailable for rate limiting, using in-memory store: {str(e)}")
    return InMemoryRateLimitStore(max_clients=max_clients)
