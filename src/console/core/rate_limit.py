"""Rate limiting with optional Redis backend.

Two layers:
1. Endpoint decorators (slowapi): per-IP limits on read-heavy console endpoints.
2. Sliding-window rules: per-employee limits on sensitive actions such as
   starting an impersonation session or exporting an audit trail. Uses a
   Redis sorted set when REDIS_URL is configured and falls back to
   in-memory storage (per-process) otherwise.
"""

import asyncio
import math
import time
from collections import defaultdict
from dataclasses import dataclass
from uuid import uuid7

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from src.console.core.config import get_settings
from src.console.core.logging import get_logger
from src.console.core.redis import get_redis

logger = get_logger(__name__)

# In-memory fallback storage: key -> attempt timestamps inside the window
_sliding_windows: dict[str, list[float]] = defaultdict(list)
_sliding_window_lock = asyncio.Lock()


def get_rate_limit_key(request: Request) -> str:
    """Generate rate limit key from client IP only.

    Never include user-controlled headers in the key: rotating them would
    create unlimited buckets.
    """
    return get_remote_address(request) or "unknown"


def create_limiter() -> Limiter:
    """Create the endpoint limiter. Disabled in testing environment."""
    settings = get_settings()

    if settings.app_env == "testing":
        logger.info("Rate limiter disabled (testing environment)")
        return Limiter(key_func=get_rate_limit_key, enabled=False)

    if settings.redis_url:
        logger.info("Rate limiter using Redis backend")
        return Limiter(key_func=get_rate_limit_key, storage_uri=settings.redis_url)

    logger.info("Rate limiter using in-memory backend (not distributed)")
    return Limiter(key_func=get_rate_limit_key)


limiter = create_limiter()


@dataclass(frozen=True)
class RateLimitRule:
    """A sliding-window rule: at most ``limit`` attempts per ``window_seconds``.

    With ``block_seconds`` set, a caller that hits the limit stays blocked
    for that long after its last accepted attempt.
    """

    action: str
    limit: int
    window_seconds: int
    block_seconds: int | None = None


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int = 0


def get_rate_limit_rule(action: str) -> RateLimitRule:
    """Resolve a named rule from settings.

    Raises:
        KeyError: If the action has no configured rule.
    """
    settings = get_settings()
    rules = {
        "impersonation": RateLimitRule(
            "impersonation", settings.impersonation_starts_per_hour, 3600
        ),
        "export": RateLimitRule("export", settings.audit_exports_per_hour, 3600),
    }
    return rules[action]


def _blocked_until(rule: RateLimitRule, attempts: list[float]) -> float:
    """End of the block period, or 0.0 when the caller is not blocked.

    The caller is blocked once its newest accepted attempt filled the window.
    """
    if not rule.block_seconds or len(attempts) < rule.limit:
        return 0.0
    newest = max(attempts)
    filled = sum(1 for ts in attempts if ts > newest - rule.window_seconds)
    if filled < rule.limit:
        return 0.0
    return newest + rule.block_seconds


def _decide(rule: RateLimitRule, attempts: list[float], now: float) -> RateLimitResult:
    """Decide on a new attempt given the accepted ones still retained."""
    in_window = [ts for ts in attempts if ts > now - rule.window_seconds]
    blocked_until = _blocked_until(rule, attempts)

    window_full = len(in_window) >= rule.limit
    if window_full or now < blocked_until:
        window_free = min(in_window) + rule.window_seconds if window_full and in_window else now
        wait = max(blocked_until, window_free) - now
        return RateLimitResult(
            allowed=False,
            limit=rule.limit,
            remaining=0,
            retry_after=max(1, math.ceil(wait)) if wait > 0 else rule.window_seconds,
        )
    return RateLimitResult(
        allowed=True,
        limit=rule.limit,
        remaining=rule.limit - len(in_window) - 1,
    )


def _retention_seconds(rule: RateLimitRule) -> int:
    """How long accepted attempts are kept: the window plus any block period."""
    return rule.window_seconds + (rule.block_seconds or 0)


async def _check_in_memory(rule: RateLimitRule, key: str, now: float) -> RateLimitResult:
    """Sliding window over an in-process list of timestamps."""
    horizon = now - _retention_seconds(rule)
    async with _sliding_window_lock:
        prior = [ts for ts in _sliding_windows[key] if ts > horizon]
        result = _decide(rule, prior, now)
        if result.allowed:
            prior.append(now)
        _sliding_windows[key] = prior
    return result


async def _check_redis(
    redis: object,  # Redis client (typed as object to avoid import complexity)
    rule: RateLimitRule,
    key: str,
    now: float,
) -> RateLimitResult:
    """Sliding window over a Redis sorted set.

    The attempt is added before counting and removed again when it breaks
    the limit, so concurrent callers always see each other's attempts.
    """
    member = f"{now:.6f}:{uuid7().hex}"
    ttl = _retention_seconds(rule)

    async with redis.pipeline(transaction=True) as pipe:  # type: ignore[attr-defined]
        pipe.zremrangebyscore(key, 0, now - ttl)
        pipe.zadd(key, {member: now})
        pipe.zrange(key, 0, -1, withscores=True)
        pipe.expire(key, ttl)
        _, _, entries, _ = await pipe.execute()

    prior = [float(score) for name, score in entries if name != member]
    result = _decide(rule, prior, now)
    if not result.allowed:
        await redis.zrem(key, member)  # type: ignore[attr-defined]
    return result


async def check_rate_limit(rule: RateLimitRule, identifier: str) -> RateLimitResult:
    """Record an attempt against ``rule`` for ``identifier``.

    Uses Redis when available and falls back to in-memory state when Redis
    is not configured or fails. Always allows in the testing environment.
    """
    settings = get_settings()
    if settings.app_env == "testing":
        return RateLimitResult(allowed=True, limit=rule.limit, remaining=rule.limit)

    key = f"ratelimit:{rule.action}:{identifier}"
    now = time.time()

    redis = await get_redis()
    if redis:
        try:
            result = await _check_redis(redis, rule, key, now)
        except Exception as e:
            logger.warning(
                "Redis rate limit check failed, falling back to in-memory",
                error=str(e),
                action=rule.action,
            )
            result = await _check_in_memory(rule, key, now)
    else:
        result = await _check_in_memory(rule, key, now)

    if not result.allowed:
        logger.warning(
            "Rate limit exceeded",
            action=rule.action,
            identifier=identifier,
            retry_after=result.retry_after,
        )
    return result
