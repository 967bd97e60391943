"""
Fixed-window rate limiting backed by Redis.

RATE LIMITING STRATEGY
======================

Each (scope, client) pair gets one counter per window:
    key = "ratelimit:{scope}:{client}:{window_start}"
    INCR key; on the first hit, EXPIRE key window

Scopes mirror the public surface:
  - auth:  login/register brute force protection (5 per 15 minutes)
  - api:   organizer endpoints (1000 per 15 minutes, 100 in production)
  - rsvp:  RSVP submissions, including the public token link (20 per minute)

Failure mode:
  Redis is advisory only. If it is disabled or failing, the limiter
  "fails open" and admits the request. The database constraints still
  protect every RSVP invariant; only abuse protection is degraded.
"""

import time
from typing import Optional

from redis.exceptions import RedisError
from fastapi import Request

from planorama.core.config import get_settings
from planorama.core.exceptions import RateLimitedError
from planorama.core.logging import get_logger
from planorama.core.metrics import record_rate_limited, redis_connection_errors
from planorama.infrastructure import redis_client

logger = get_logger(__name__)
settings = get_settings()


def _client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


class RateLimiter:
    """
    FastAPI dependency enforcing `limit` requests per `window` seconds.

    Usage:
        rsvp_limiter = RateLimiter("rsvp", limit=20, window=60)

        @router.post("/token/{token}", dependencies=[Depends(rsvp_limiter)])
    """

    def __init__(self, scope: str, limit: int, window: int, message: Optional[str] = None):
        self.scope = scope
        self.limit = limit
        self.window = window
        self.message = message

    def _make_key(self, client: str, now: float) -> str:
        window_start = int(now // self.window) * self.window
        return f"ratelimit:{self.scope}:{client}:{window_start}"

    async def hit(self, client: str) -> bool:
        """Count one request for `client`. Returns False when over the limit."""
        conn = await redis_client.get_redis()
        if conn is None:
            return True

        key = self._make_key(client, time.time())
        try:
            count = await conn.incr(key)
            if count == 1:
                await conn.expire(key, self.window)
        except RedisError as e:
            redis_connection_errors.inc()
            logger.error("rate_limit_backend_error", scope=self.scope, error=str(e))
            return True

        return count <= self.limit

    async def __call__(self, request: Request) -> None:
        client = _client_key(request)
        if not await self.hit(client):
            record_rate_limited(self.scope)
            logger.warning("rate_limited", scope=self.scope, client=client, limit=self.limit)
            raise RateLimitedError(self.message)


auth_rate_limiter = RateLimiter(
    "auth",
    settings.AUTH_RATE_LIMIT,
    settings.AUTH_RATE_WINDOW,
    "Too many authentication attempts, please try again later",
)
api_rate_limiter = RateLimiter("api", settings.api_rate_limit, settings.API_RATE_WINDOW)
rsvp_rate_limiter = RateLimiter(
    "rsvp",
    settings.RSVP_RATE_LIMIT,
    settings.RSVP_RATE_WINDOW,
    "Too many RSVP requests, please try again later",
)
