import logging
import os
from functools import lru_cache

from fastapi import HTTPException, Request, status

from adapter.mongodb.connection import get_mongodb_client, DATABASE_NAME
from adapter.mongodb.user_repository import MongoUserRepository
from adapter.ratelimit.memory_rate_limiter import InMemoryRateLimiter
from adapter.ratelimit.redis_rate_limiter import RedisRateLimiter
from port.rate_limiter import RateLimiter
from port.user_repository import UserRepository
from utils.password import (
    DEFAULT_MEMORY_COST,
    DEFAULT_PARALLELISM,
    DEFAULT_TIME_COST,
    PasswordHasher,
)

logger = logging.getLogger(__name__)

RATE_LIMIT_BACKEND = os.getenv('RATE_LIMIT_BACKEND', 'memory').lower()
RATE_LIMIT_REQUESTS = int(os.getenv('RATE_LIMIT_REQUESTS', '60'))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv('RATE_LIMIT_WINDOW_SECONDS', '60'))
RATE_LIMIT_MAX_CLIENTS = int(os.getenv('RATE_LIMIT_MAX_CLIENTS', '10000'))

ARGON2_TIME_COST = int(os.getenv('ARGON2_TIME_COST', str(DEFAULT_TIME_COST)))
ARGON2_MEMORY_COST = int(os.getenv('ARGON2_MEMORY_COST', str(DEFAULT_MEMORY_COST)))
ARGON2_PARALLELISM = int(os.getenv('ARGON2_PARALLELISM', str(DEFAULT_PARALLELISM)))


def _get_db():
    """Get MongoDB database, raising an opaque 500 if unavailable."""
    client = get_mongodb_client()
    if client is None:
        logger.error("User store unavailable: MongoDB client not connected")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )
    return client[DATABASE_NAME]


_indexes_ready = False


def get_user_repo() -> UserRepository:
    """Users repository; the first call that reaches MongoDB creates its indexes.

    Index creation is retried on later calls until it succeeds, so a store that
    was down at startup still gets its unique email index once it is reachable.
    """
    global _indexes_ready
    repo = MongoUserRepository(_get_db())
    if not _indexes_ready:
        _indexes_ready = repo.ensure_indexes()
        if _indexes_ready:
            logger.info("MongoDB indexes verified/created successfully")
    return repo


@lru_cache(maxsize=1)
def get_password_hasher() -> PasswordHasher:
    """Process-wide hasher; building it precomputes the dummy hash record."""
    return PasswordHasher(
        time_cost=ARGON2_TIME_COST,
        memory_cost=ARGON2_MEMORY_COST,
        parallelism=ARGON2_PARALLELISM,
    )


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    """Process-wide rate limiter, backend chosen by RATE_LIMIT_BACKEND."""
    if RATE_LIMIT_BACKEND == 'redis':
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter(
            limit=RATE_LIMIT_REQUESTS,
            window_seconds=RATE_LIMIT_WINDOW_SECONDS,
        )
    if RATE_LIMIT_BACKEND != 'memory':
        logger.warning(f"Unknown RATE_LIMIT_BACKEND '{RATE_LIMIT_BACKEND}', using in-memory rate limiter")
    return InMemoryRateLimiter(
        limit=RATE_LIMIT_REQUESTS,
        window_seconds=RATE_LIMIT_WINDOW_SECONDS,
        max_clients=RATE_LIMIT_MAX_CLIENTS,
    )


def get_client_key(request: Request) -> str:
    """Rate limit key for the caller: its source address."""
    return request.client.host if request.client else "unknown"
