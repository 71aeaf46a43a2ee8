"""Telegram update de-duplication.

Telegram redelivers a webhook update until it gets a 2xx. The first delivery
of an update_id claims a short-lived Redis key (SET NX EX); redeliveries find
the key and are skipped, so a retried BET payload is never staked twice.
"""

import logging
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

_KEY_PREFIX = "tg:update:"


class UpdateDeduplicatorProtocol(Protocol):
    async def first_delivery(self, update_id: int) -> bool: ...


class RedisUpdateDeduplicator:
    def __init__(self, redis: aioredis.Redis, ttl_seconds: int = 3600) -> None:
        self._redis = redis
        self._ttl = ttl_seconds

    async def first_delivery(self, update_id: int) -> bool:
        """True if this update_id has not been seen within the TTL.

        When Redis is unreachable the update is processed (availability over
        de-duplication) and a warning is logged.
        """
        try:
            claimed = await self._redis.set(
                f"{_KEY_PREFIX}{update_id}", "1", nx=True, ex=self._ttl
            )
        except RedisError:
            logger.warning("Update dedup unavailable, processing update %s", update_id)
            return True
        return bool(claimed)
