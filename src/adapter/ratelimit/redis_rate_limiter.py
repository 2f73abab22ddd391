"""Redis implementation of RateLimiter.

Shares one fixed-window counter per client across every API instance:
- Key: ``credential:ratelimit:<client_key>``, created with the window as TTL
- Count: INCR inside the same MULTI, so the TTL is never lost
- Connection: cached client with automatic reconnection

When Redis is unreachable the limiter admits requests and logs a warning.
"""

import logging
import os
import time
from typing import Optional

import redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

REDIS_URL = os.getenv('REDIS_URL', '')
KEY_PREFIX = 'credential:ratelimit:'
RECONNECT_BACKOFF_SECONDS = float(os.getenv('REDIS_RECONNECT_BACKOFF_SECONDS', '5'))


class RedisRateLimiter:
    def __init__(
        self,
        limit: int = 60,
        window_seconds: int = 60,
        redis_url: str = REDIS_URL,
        client: Optional[redis.Redis] = None,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._redis_url = redis_url
        self._client_cache: Optional[redis.Redis] = client
        self._connection_attempted: bool = client is not None
        self._not_configured: bool = False
        self._retry_at: float = 0.0

    def _get_client(self) -> Optional[redis.Redis]:
        """Get Redis client with caching and reconnection logic.

        A missing REDIS_URL is final. Connection errors are retried on a later
        call once RECONNECT_BACKOFF_SECONDS have passed, so the limiter starts
        enforcing again as soon as Redis comes back.
        """
        if self._client_cache:
            try:
                self._client_cache.ping()
                return self._client_cache
            except RedisError:
                self._client_cache = None
                logger.debug("[REDIS] Cached client failed ping, attempting reconnection...")

        if self._not_configured or time.monotonic() < self._retry_at:
            return None

        if not self._redis_url:
            logger.error("[REDIS] REDIS_URL not configured.")
            self._not_configured = True
            return None

        try:
            client = redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
            )
            client.ping()

            is_first = not self._connection_attempted
            self._connection_attempted = True
            self._client_cache = client

            if is_first:
                logger.info("[REDIS] Connected successfully")

            return client
        except (RedisError, ValueError, OSError) as e:
            self._retry_at = time.monotonic() + RECONNECT_BACKOFF_SECONDS
            logger.error(f"[REDIS] Connection failed, retrying in {RECONNECT_BACKOFF_SECONDS:g}s: {str(e)[:200]}")
            return None

    # ── RateLimiter implementation ───────────────────────────

    def admit(self, client_key: str) -> bool:
        client = self._get_client()
        if not client:
            logger.warning("Rate limiter store unavailable, admitting request", extra={"clientKey": client_key})
            return True

        key = f'{KEY_PREFIX}{client_key}'
        try:
            pipe = client.pipeline(transaction=True)
            pipe.set(key, 0, ex=self.window_seconds, nx=True)
            pipe.incr(key)
            _, count = pipe.execute()
        except RedisError as e:
            logger.warning("Rate limit check failed, admitting request", extra={"clientKey": client_key, "error": str(e)})
            return True

        return int(count) <= self.limit

    def ping(self) -> bool:
        return self._get_client() is not None
