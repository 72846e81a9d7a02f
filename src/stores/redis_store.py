import logging
from typing import Awaitable, Callable, Optional

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from services.persona_engine.models import DerivationRecord
from src.cache.connection import NAMESPACE, get_redis
from src.stores.base import StoreError

logger = logging.getLogger(__name__)

DERIVED_KEY_PREFIX = f"{NAMESPACE}derived:"

RedisGetter = Callable[[], Awaitable[Optional[aioredis.Redis]]]


def derived_key(user_id: str) -> str:
    return f"{DERIVED_KEY_PREFIX}{user_id}"


class RedisDerivationStore:
    """
    Derivation records as JSON strings under ``pde:derived:{user_id}``.

    Args:
        redis_getter: Coroutine returning a client, or None when Redis is down.
        ttl_seconds: Optional expiry for each record; None keeps records until overwritten.
    """

    def __init__(self, redis_getter: RedisGetter = get_redis, ttl_seconds: Optional[int] = None):
        self.redis_getter = redis_getter
        self.ttl_seconds = ttl_seconds

    async def _client(self) -> aioredis.Redis:
        client = await self.redis_getter()
        if client is None:
            raise StoreError("Redis unavailable")
        return client

    async def get_derivation_record(self, user_id: str) -> Optional[DerivationRecord]:
        client = await self._client()
        try:
            raw = await client.get(derived_key(user_id))
        except RedisError as e:
            raise StoreError(str(e)) from e
        if raw is None:
            return None
        try:
            return DerivationRecord.model_validate_json(raw)
        except ValidationError as e:
            # An unreadable entry is as good as a missing one; it gets overwritten.
            logger.warning(f"Discarding unreadable derivation record for user {user_id}: {e}")
            return None

    async def put_derivation_record(self, user_id: str, record: DerivationRecord) -> None:
        client = await self._client()
        ex = self.ttl_seconds if self.ttl_seconds and self.ttl_seconds > 0 else None
        try:
            await client.set(derived_key(user_id), record.model_dump_json(), ex=ex)
        except RedisError as e:
            raise StoreError(str(e)) from e

    async def purge(self) -> int:
        """
        Removes every stored derivation record using SCAN and UNLINK.

        Returns:
            Number of keys removed.
        """
        client = await self._client()
        deleted = 0
        try:
            batch = []
            async for key in client.scan_iter(match=f"{DERIVED_KEY_PREFIX}*", count=500):
                batch.append(key)
                if len(batch) >= 500:
                    deleted += await client.unlink(*batch)
                    batch = []
            if batch:
                deleted += await client.unlink(*batch)
        except RedisError as e:
            raise StoreError(str(e)) from e
        logger.info(f"Purged {deleted} derivation records from Redis")
        return deleted
