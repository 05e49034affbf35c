import json
import redis
from redis.exceptions import RedisError

from app.core.config import REDIS_URL
from app.core.logging_config import get_logger

logger = get_logger()

_redis_client = None


def get_redis_client():
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    if not REDIS_URL:
        return None

    try:
        client = redis.Redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        client.ping()
        logger.info("Redis connected")
        _redis_client = client
        return _redis_client
    except RedisError as e:
        logger.warning(f"Redis unavailable: {e}")
        return None


def push_json(key: str, value: dict):
    """Append an event to a Redis list. Raises RedisError on delivery failure."""
    client = get_redis_client()
    if not client:
        return False
    client.rpush(key, json.dumps(value, separators=(",", ":"), default=str))
    return True


def acquire_lock(key: str, token: str, ttl: int) -> bool:
    """SET NX lock shared by every app process. True when Redis is not configured."""
    client = get_redis_client()
    if not client:
        return True
    try:
        return bool(client.set(key, token, nx=True, ex=ttl))
    except RedisError as e:
        logger.warning(f"Redis lock {key} unavailable, continuing with local lock: {e}")
        return True


def release_lock(key: str, token: str):
    client = get_redis_client()
    if not client:
        return
    try:
        if client.get(key) == token:
            client.delete(key)
    except RedisError as e:
        logger.warning(f"Redis lock {key} not released, it expires after its TTL: {e}")
