"""Redis client factory: used for Telegram update de-duplication only.

NOT used for pools, stakes or market state (those go through PostgreSQL).
"""

import redis.asyncio as aioredis


def build_redis(redis_url: str) -> aioredis.Redis:
    """Create the Redis connection pool (called once from the app lifespan)."""
    return aioredis.from_url(
        redis_url,
        decode_responses=True,
    )
