"""Per-source sliding-window rate limiting for inbound webhooks."""

import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from collections import deque

import redis.asyncio as redis

from src.api.core.models.rate_limit import (
    ClientIdentifier,
    RateLimitClientType,
    RateLimitResult,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)


class RateLimitStore(ABC):
    """Counts requests per key inside a sliding window."""

    @abstractmethod
    async def hit(
        self, client_identifier: ClientIdentifier, limit: int, window_seconds: int
    ) -> RateLimitResult:
        """Record one request and report whether it is within the limit."""


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local counters.

    Only advisory when the app runs on more than one instance; use
    ``RedisRateLimitStore`` there.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = clock()
        self._lock = asyncio.Lock()

    async def hit(
        self, client_identifier: ClientIdentifier, limit: int, window_seconds: int
    ) -> RateLimitResult:
        key = client_identifier.to_cache_key()
        async with self._lock:
            now = self._clock()
            cutoff = now - window_seconds
            if now - self._last_sweep >= window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now

            hits = self._hits.get(key) or deque()
            while hits and hits[0] <= cutoff:
                hits.popleft()

            is_allowed = len(hits) < limit
            if is_allowed:
                hits.append(now)
            if hits:
                self._hits[key] = hits
            else:
                self._hits.pop(key, None)

            time_to_reset = (
                None
                if is_allowed or not hits
                else max(0, int(window_seconds - (now - hits[0])))
            )

            return RateLimitResult(
                is_allowed=is_allowed,
                current_count=len(hits),
                time_to_reset=time_to_reset,
                client_identifier=client_identifier,
                limit=limit,
                window_seconds=window_seconds,
            )

    def _sweep(self, cutoff: float) -> None:
        # Sources that went quiet for a whole window
        for key in [k for k, hits in self._hits.items() if hits[-1] <= cutoff]:
            del self._hits[key]

    def tracked_sources(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        self._hits.clear()


class RedisRateLimitStore(RateLimitStore):
    """Shared sliding window kept as a sorted set of hit timestamps per source.

    Prune, record and count go out as one MULTI/EXEC round trip. A rejected
    hit is taken back out so that a flooding source cannot keep its own
    window full forever.
    """

    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    async def hit(
        self, client_identifier: ClientIdentifier, limit: int, window_seconds: int
    ) -> RateLimitResult:
        key = client_identifier.to_cache_key()
        now = time.time()
        member = f"{now:.6f}-{uuid.uuid4().hex[:12]}"

        try:
            pipe = self.redis_client.pipeline(transaction=True)
            pipe.zremrangebyscore(key, "-inf", now - window_seconds)
            pipe.zadd(key, {member: now})
            pipe.zcard(key)
            pipe.expire(key, window_seconds)
            _, _, count, _ = await pipe.execute()

            is_allowed = count <= limit
            if not is_allowed:
                await self.redis_client.zrem(key, member)
        except redis.RedisError as e:
            # Webhooks keep flowing while Redis is unreachable
            logger.error(
                "rate_limiter_store_error", client=str(client_identifier), error=str(e)
            )
            return RateLimitResult(
                is_allowed=True,
                current_count=0,
                time_to_reset=None,
                client_identifier=client_identifier,
                limit=limit,
                window_seconds=window_seconds,
            )

        return RateLimitResult(
            is_allowed=is_allowed,
            current_count=count if is_allowed else count - 1,
            # Upper bound; the oldest hit may expire sooner
            time_to_reset=None if is_allowed else window_seconds,
            client_identifier=client_identifier,
            limit=limit,
            window_seconds=window_seconds,
        )


class WebhookRateLimiter:
    """Applies the webhook limit per source IP on top of a store."""

    def __init__(self, store: RateLimitStore, limit: int = 60, window_seconds: int = 60):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds

    async def check(self, ip_address: str) -> RateLimitResult:
        client = ClientIdentifier(
            client_type=RateLimitClientType.WEBHOOK_IP, client_id=ip_address
        )
        result = await self.store.hit(client, self.limit, self.window_seconds)
        if not result.is_allowed:
            logger.warning(
                "webhook_rate_limited",
                ip_address=ip_address,
                current_count=result.current_count,
                limit=self.limit,
                time_to_reset=result.time_to_reset,
            )
        return result
