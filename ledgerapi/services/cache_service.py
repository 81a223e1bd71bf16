"""
Redis cache service with graceful error handling.
- Never raises exceptions (returns None/False on failure)
- Lazy connection with health checks
- Automatic JSON serialization/deserialization

Writes in the ledger are committed before any cache call, so a Redis outage
only costs freshness, never correctness.
"""

from typing import Optional, Any
import redis
import json
import logging
import time
from ledgerapi.config import Settings

logger = logging.getLogger(__name__)


class CacheService:
    def __init__(self, settings: Settings):
        self._settings = settings
        self._client: Optional[redis.Redis] = None
        self._retry_after = 0.0
        self._logger = logging.getLogger(__name__)

    def _get_client(self) -> Optional[redis.Redis]:
        """Lazy connection with health check, backing off after a failed connect"""
        if not self._settings.REDIS_ENABLED:
            return None
        if self._client is None:
            now = time.monotonic()
            if now < self._retry_after:
                return None
            try:
                redis_kwargs = {
                    "host": self._settings.REDIS_HOST,
                    "port": self._settings.REDIS_PORT,
                    "db": self._settings.REDIS_DB,
                    "decode_responses": True,
                    "socket_connect_timeout": 2,
                    "socket_keepalive": True,
                    "health_check_interval": 30,
                }

                # Only add password if it's set
                if self._settings.REDIS_PASSWORD:
                    redis_kwargs["password"] = self._settings.REDIS_PASSWORD

                self._client = redis.Redis(**redis_kwargs)
                self._client.ping()
            except Exception as e:
                self._retry_after = now + self._settings.REDIS_RETRY_BACKOFF_SECONDS
                self._logger.warning(
                    f"Redis connection failed, retrying in "
                    f"{self._settings.REDIS_RETRY_BACKOFF_SECONDS}s: {e}"
                )
                self._client = None
        return self._client

    def ping(self) -> Optional[bool]:
        """None when caching is disabled, otherwise reachability"""
        if not self._settings.REDIS_ENABLED:
            return None
        try:
            client = self._get_client()
            return bool(client is not None and client.ping())
        except Exception as e:
            self._logger.warning(f"Redis PING failed: {e}")
            return False

    def get(self, key: str) -> Optional[Any]:
        """Get cached value, returns None if not found or error"""
        try:
            client = self._get_client()
            if client is None:
                return None
            value = client.get(key)
            return json.loads(value) if value else None
        except Exception as e:
            self._logger.warning(f"Redis GET failed for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Set cache with TTL, returns success status"""
        try:
            client = self._get_client()
            if client is None:
                return False
            serialized = json.dumps(value, default=str)
            client.setex(key, ttl_seconds, serialized)
            return True
        except Exception as e:
            self._logger.warning(f"Redis SET failed for {key}: {e}")
            return False

    def delete(self, *keys: str) -> int:
        try:
            client = self._get_client()
            if client is None or not keys:
                return 0
            return client.delete(*keys)
        except Exception as e:
            self._logger.warning(f"Redis DEL failed for {keys}: {e}")
            return 0

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern (SCAN based)"""
        try:
            client = self._get_client()
            if client is None:
                return 0
            deleted = 0
            batch = []
            for key in client.scan_iter(match=pattern, count=500):
                batch.append(key)
                if len(batch) >= 500:
                    deleted += client.delete(*batch)
                    batch = []
            if batch:
                deleted += client.delete(*batch)
            return deleted
        except Exception as e:
            self._logger.warning(f"Redis pattern delete failed for {pattern}: {e}")
            return 0

    def incr_with_expiry(self, key: str, window_seconds: int) -> Optional[int]:
        """Increment a counter, starting its TTL window on first hit"""
        try:
            client = self._get_client()
            if client is None:
                return None
            count = int(client.incr(key))
            if count == 1:
                client.expire(key, window_seconds)
            return count
        except Exception as e:
            self._logger.warning(f"Redis INCR failed for {key}: {e}")
            return None

    def invalidate(self, *keys_or_patterns: str) -> None:
        """Delete keys; entries containing '*' are treated as patterns"""
        for item in keys_or_patterns:
            if "*" in item:
                self.delete_pattern(item)
            else:
                self.delete(item)

    def close(self):
        """Close connection pool on app shutdown"""
        if self._client:
            self._client.close()
            self._client = None
