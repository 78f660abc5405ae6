"""Token-bucket limits for passkey redemption and key issuance.

Each caller owns a bucket of ``capacity`` tokens that refills at
``refill_rate`` tokens per second; every request spends one.  Passkeys
are guessable strings, so redemption gets a small bucket: a handful of
attempts, then roughly one every ten seconds.

Two backends share the RateLimiter protocol:

  - InMemoryRateLimiter keeps buckets in a dict (tests, single process).
  - RedisRateLimiter runs the same arithmetic inside a Lua script so all
    API instances share one bucket per caller.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    limit: int
    retry_after: float  # seconds until the next token; 0 when allowed


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """capacity is the burst size, refill_rate the sustained rate per second."""

    capacity: int = 60
    refill_rate: float = 1.0
    scope: str = "default"


REDEEM_LIMIT = RateLimitConfig(capacity=5, refill_rate=0.1, scope="redeem")
PLATFORM_LIMIT = RateLimitConfig(capacity=30, refill_rate=0.5, scope="platform")
DISPATCH_LIMIT = RateLimitConfig(capacity=120, refill_rate=2.0, scope="dispatch")


@runtime_checkable
class RateLimiter(Protocol):
    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult: ...
    async def reset(self, key: str) -> None: ...


def _take(
    tokens: float, elapsed: float, config: RateLimitConfig
) -> tuple[float, RateLimitResult]:
    tokens = min(config.capacity, tokens + elapsed * config.refill_rate)
    if tokens >= 1:
        tokens -= 1
        return tokens, RateLimitResult(
            allowed=True, remaining=int(tokens), limit=config.capacity, retry_after=0
        )
    return tokens, RateLimitResult(
        allowed=False,
        remaining=0,
        limit=config.capacity,
        retry_after=(1 - tokens) / config.refill_rate,
    )


class InMemoryRateLimiter:
    """Per-process buckets.  Each API instance counts separately."""

    def __init__(self) -> None:
        # "scope:key" -> (tokens, last_seen monotonic)
        self._buckets: dict[str, tuple[float, float]] = {}

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        bucket_key = f"{config.scope}:{key}"
        now = time.monotonic()
        tokens, last_seen = self._buckets.get(bucket_key, (config.capacity, now))
        tokens, result = _take(tokens, now - last_seen, config)
        self._buckets[bucket_key] = (tokens, now)
        return result

    async def reset(self, key: str) -> None:
        for bucket_key in [k for k in self._buckets if k.endswith(f":{key}")]:
            del self._buckets[bucket_key]


class RedisRateLimiter:
    """Shared buckets in Redis; the Lua script makes read-refill-spend atomic."""

    # KEYS[1] bucket; ARGV capacity, refill_rate, now.
    # Returns {allowed, remaining, retry_after_ms}.
    _LUA_SCRIPT = """
    local capacity = tonumber(ARGV[1])
    local rate = tonumber(ARGV[2])
    local now = tonumber(ARGV[3])
    local ttl = math.ceil(capacity / rate) + 60

    local state = redis.call('HMGET', KEYS[1], 'tokens', 'ts')
    local tokens = tonumber(state[1]) or capacity
    local ts = tonumber(state[2]) or now

    tokens = math.min(capacity, tokens + (now - ts) * rate)
    local allowed = 0
    local retry_ms = 0
    if tokens >= 1 then
        tokens = tokens - 1
        allowed = 1
    else
        retry_ms = math.ceil((1 - tokens) / rate * 1000)
    end
    redis.call('HSET', KEYS[1], 'tokens', tokens, 'ts', now)
    redis.call('EXPIRE', KEYS[1], ttl)
    return {allowed, math.floor(tokens), retry_ms}
    """

    def __init__(self, redis_client) -> None:
        self._redis = redis_client
        self._script = None

    def _bucket(self, key: str, config: RateLimitConfig) -> str:
        return f"ratelimit:{config.scope}:{key}"

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        if self._script is None:
            self._script = self._redis.register_script(self._LUA_SCRIPT)
        allowed, remaining, retry_ms = await self._script(
            keys=[self._bucket(key, config)],
            args=[config.capacity, config.refill_rate, time.time()],
        )
        return RateLimitResult(
            allowed=bool(allowed),
            remaining=0 if not allowed else int(remaining),
            limit=config.capacity,
            retry_after=retry_ms / 1000,
        )

    async def reset(self, key: str) -> None:
        async for bucket in self._redis.scan_iter(match=f"ratelimit:*:{key}"):
            await self._redis.delete(bucket)
