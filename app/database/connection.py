import logging

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.config import Settings


logger = logging.getLogger(__name__)


async def connect_to_mongo(settings: Settings) -> AsyncIOMotorClient:
    client = AsyncIOMotorClient(settings.MONGODB_URI, tz_aware=True)
    logger.info("Connected to MongoDB database %s", settings.MONGODB_DB)
    return client


async def close_mongo_connection(client: AsyncIOMotorClient) -> None:
    client.close()
    logger.info("MongoDB connection closed")


def get_database(request: Request) -> AsyncIOMotorDatabase:
    # set by the lifespan in app.main; one client per process
    return request.app.state.db


async def mongo_db_dependency(request: Request) -> AsyncIOMotorDatabase:
    return get_database(request)
