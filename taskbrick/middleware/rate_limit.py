"""
Rate Limiting Middleware

Token buckets kept in Redis, one per tenant for tenant-scoped routes and
one per client IP for the unauthenticated /api/auth/ routes. Tenants may
override the default rate and burst on their row.

The refill-and-take step runs as a Lua script so concurrent requests of
the same tenant can't both spend the last token.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from typing import Optional, Tuple
import math
import redis
import time

from taskbrick.config import get_settings
from taskbrick.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)
settings = get_settings()

AUTH_PREFIX = "/api/auth/"

# KEYS[1] bucket hash; ARGV: capacity, tokens per second, now, ttl
# Returns {allowed (0/1), remaining tokens as string}
TOKEN_BUCKET_LUA = """
local capacity = tonumber(ARGV[1])
local rate = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local bucket = redis.call('HMGET', KEYS[1], 'tokens', 'ts')
local tokens = tonumber(bucket[1])
local ts = tonumber(bucket[2])
if tokens == nil then
  tokens = capacity
  ts = now
end
tokens = math.min(capacity, tokens + math.max(0, now - ts) * rate)
local allowed = 0
if tokens >= 1 then
  tokens = tokens - 1
  allowed = 1
end
redis.call('HSET', KEYS[1], 'tokens', tokens, 'ts', now)
redis.call('EXPIRE', KEYS[1], tonumber(ARGV[4]))
return {allowed, tostring(tokens)}
"""


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-tenant / per-IP token bucket.

    Runs inside TenantMiddleware, so request.state.tenant is set for
    tenant-scoped routes. Other tenant-less routes are not limited.

    TRADEOFF: fails open. If Redis is down at startup or errors on a
    request, the request goes through.
    """

    def __init__(self, app):
        super().__init__(app)
        self.redis_client = None
        self._take_token = None

        if not settings.RATE_LIMIT_ENABLED:
            logger.info("Rate limiting disabled by configuration")
            return

        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            self.redis_client.ping()
            self._take_token = self.redis_client.register_script(TOKEN_BUCKET_LUA)
            logger.info("Redis connection established for rate limiting")
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.error(f"Redis connection failed, rate limiting disabled: {e}")

    async def dispatch(self, request: Request, call_next):
        if self._take_token is None or request.method == "OPTIONS":
            return await call_next(request)

        bucket = self._bucket_for(request)
        if bucket is None:
            return await call_next(request)

        key, per_minute, burst = bucket
        allowed, retry_after = self._check_rate_limit(key, per_minute, burst)

        if not allowed:
            log_security_event(
                "rate_limit_exceeded",
                {"bucket": key, "path": request.url.path},
                logger
            )
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Rate limit exceeded. Please try again later.",
                    "type": "rate_limit_exceeded",
                    "retry_after": retry_after
                },
                headers={"Retry-After": str(retry_after)}
            )

        return await call_next(request)

    def _bucket_for(self, request: Request) -> Optional[Tuple[str, int, int]]:
        """Bucket key and limits for this request, or None when unlimited."""
        tenant = getattr(request.state, "tenant", None)
        if tenant is not None:
            return (
                f"rate_limit:tenant:{tenant.id}",
                tenant.rate_limit_per_minute or settings.RATE_LIMIT_PER_MINUTE,
                tenant.rate_limit_burst or settings.RATE_LIMIT_BURST,
            )

        if request.url.path.startswith(AUTH_PREFIX):
            client_ip = request.client.host if request.client else "unknown"
            return (
                f"rate_limit:ip:{client_ip}",
                settings.AUTH_RATE_LIMIT_PER_MINUTE,
                settings.AUTH_RATE_LIMIT_BURST,
            )
        return None

    def _check_rate_limit(self, key: str, per_minute: int, burst: int) -> Tuple[bool, int]:
        """
        Take one token from the bucket.

        Returns (allowed, retry_after_seconds). The bucket holds at most
        `burst` tokens and refills at `per_minute` tokens a minute.
        """
        per_second = per_minute / 60.0
        # Idle buckets expire once they'd be full again anyway
        ttl = math.ceil(burst / per_second) + 1

        try:
            allowed, remaining = self._take_token(keys=[key], args=[burst, per_second, time.time(), ttl])
        except redis.RedisError as e:
            logger.error(f"Redis error in rate limiting: {e}")
            return True, 0

        if int(allowed):
            return True, 0
        return False, int((1 - float(remaining)) / per_second) + 1
