import os
import time
import logging
from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError

logger = logging.getLogger(__name__)

# Set pymongo logger to WARNING to reduce noise from driver-level logs
pymongo_logger = logging.getLogger('pymongo')
pymongo_logger.setLevel(logging.WARNING)

MONGO_URL = os.getenv('MONGO_URL')
DATABASE_NAME = os.getenv('MONGODB_DATABASE', 'credentials')
USERS_COLLECTION_NAME = 'users'
RECONNECT_BACKOFF_SECONDS = float(os.getenv('MONGO_RECONNECT_BACKOFF_SECONDS', '5'))

_client_cache = None
_connection_attempted = False
_not_configured = False
_retry_at = 0.0


def get_mongodb_client() -> MongoClient | None:
    """Get MongoDB client with connection caching and reconnection logic.

    Connection strategy:
    1. Return cached client if healthy (ping succeeds)
    2. If cached client fails, attempt reconnection
    3. If MONGO_URL is missing, don't retry
    4. After a connection error, retry once RECONNECT_BACKOFF_SECONDS have passed

    Returns:
        MongoDB client or None if connection fails
    """
    global _client_cache, _connection_attempted, _not_configured, _retry_at

    if _client_cache:
        try:
            _client_cache.admin.command('ping')
            return _client_cache
        except PyMongoError:
            _client_cache = None
            logger.debug("[MONGODB] Cached client failed ping, attempting reconnection...")

    if _not_configured or time.monotonic() < _retry_at:
        return None

    if not MONGO_URL:
        logger.error("[MONGODB] MONGO_URL not configured.")
        _not_configured = True
        return None

    client = None
    try:
        client = MongoClient(
            MONGO_URL,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
            maxPoolSize=10,
            minPoolSize=0,
            maxIdleTimeMS=30000,
            waitQueueTimeoutMS=10000,
            retryWrites=True,
            retryReads=True,
            tz_aware=True,  # timestamps come back as UTC-aware datetimes
        )
        client.admin.command('ping')

        is_first_connection = not _connection_attempted
        _connection_attempted = True
        _client_cache = client

        if is_first_connection:
            logger.info(f"[MONGODB] Connected successfully to {DATABASE_NAME}")

        return client
    except (ConnectionFailure, PyMongoError) as e:
        if client is not None:
            client.close()
        _retry_at = time.monotonic() + RECONNECT_BACKOFF_SECONDS
        logger.error(f"[MONGODB] Connection failed, retrying in {RECONNECT_BACKOFF_SECONDS:g}s: {str(e)[:200]}")
        return None
