"""Read-through cache for tenant directory lookups, backed by Redis."""

import logging
import uuid

import redis.asyncio as redis

from src.modules.tenancy.constants import CACHE_PREFIX, CACHE_TTL_DEFAULT

logger = logging.getLogger(__name__)


class DirectoryCache:
    """Maps an external tenant key to its internal tenant id for a short TTL.

    Only successful resolutions are cached, so a key can never be served from
    cache unless it resolved to an active tenant within the last TTL window.
    Redis errors degrade to a cache miss, never to a guessed tenant.
    """

    def __init__(self, redis_client: redis.Redis, ttl: int = CACHE_TTL_DEFAULT) -> None:
        self._redis = redis_client
        self._ttl = ttl

    @classmethod
    def from_url(cls, url: str, ttl: int = CACHE_TTL_DEFAULT) -> "DirectoryCache":
        return cls(redis.from_url(url, decode_responses=True), ttl=ttl)

    def _make_key(self, external_key: str) -> str:
        return f"{CACHE_PREFIX}:{external_key}"

    async def get(self, external_key: str) -> uuid.UUID | None:
        try:
            raw = await self._redis.get(self._make_key(external_key))
        except redis.RedisError as exc:
            logger.warning("Directory cache read failed for key=%s: %s", external_key, exc)
            return None
        if raw is None:
            return None
        try:
            return uuid.UUID(raw)
        except ValueError:
            logger.warning("Discarding malformed directory cache entry for key=%s", external_key)
            await self.invalidate(external_key)
            return None

    async def set(self, external_key: str, tenant_id: uuid.UUID) -> None:
        try:
            await self._redis.set(self._make_key(external_key), str(tenant_id), ex=self._ttl)
        except redis.RedisError as exc:
            logger.warning("Directory cache write failed for key=%s: %s", external_key, exc)

    async def invalidate(self, *external_keys: str) -> None:
        keys = [self._make_key(k) for k in external_keys if k]
        if not keys:
            return
        try:
            await self._redis.delete(*keys)
        except redis.RedisError as exc:
            logger.warning("Directory cache invalidation failed: %s", exc)

    async def close(self) -> None:
        await self._redis.aclose()
