import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI

from app.core.config import get_settings
from app.database.connection import close_mongo_connection, connect_to_mongo
from app.repositories.conversation_repository import ConversationRepository
from app.repositories.message_repository import MessageRepository
from app.routers.conversations import router as conversations_router
from app.utils.cache import SimpleCache
from app.utils.realtime_bus import create_bus


CACHE_CLEANUP_INTERVAL_SECONDS = 300

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


async def _cache_cleanup_loop(cache: SimpleCache) -> None:
    while True:
        await asyncio.sleep(CACHE_CLEANUP_INTERVAL_SECONDS)
        dropped = cache.cleanup()
        if dropped:
            logger.debug("Dropped %d expired cache entries", dropped)


@asynccontextmanager
async def lifespan(app: FastAPI):

    client = await connect_to_mongo(settings)
    app.state.db = client[settings.MONGODB_DB]
    app.state.bus = create_bus(settings.REDIS_URL)
    app.state.user_cache = SimpleCache(default_ttl=settings.USER_CACHE_TTL_SECONDS)

    await ConversationRepository(app.state.db).ensure_indexes()
    await MessageRepository(app.state.db).ensure_indexes()
    logger.info("Indexes ensured")

    cleanup_task = asyncio.create_task(_cache_cleanup_loop(app.state.user_cache))
    try:
        yield
    finally:
        cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await cleanup_task
        await app.state.bus.close()
        await close_mongo_connection(client)


app = FastAPI(title="Farm Market Messaging API", lifespan=lifespan)


app.include_router(conversations_router)


@app.get("/health")
async def health():

    return {"status": "healthy", "service": settings.APP_NAME}
