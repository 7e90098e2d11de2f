import logging
from typing import Optional

import redis.asyncio as redis


logger = logging.getLogger(__name__)


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


class NoopBus:

    enabled = False

    async def publish(self, channel: str, message: str) -> None:
        return

    async def close(self) -> None:
        return


class RedisBus:

    enabled = True

    def __init__(self, url: str) -> None:
        self._redis = redis.from_url(url)

    async def publish(self, channel: str, message: str) -> None:
        await self._redis.publish(channel, message)

    async def close(self) -> None:
        await self._redis.aclose()


def create_bus(url: Optional[str]):
    if not url:
        logger.info("REDIS_URL not set, realtime fan-out disabled")
        return NoopBus()
    logger.info("Realtime fan-out via Redis pub/sub")
    return RedisBus(url)
