import asyncio
import json

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from app.database.connection import mongo_db_dependency
from app.main import app
from app.repositories.conversation_repository import ConversationRepository
from app.repositories.message_repository import MessageRepository
from app.repositories.user_repository import UserRepository
from app.services.chat_service import ChatService
from app.utils.cache import SimpleCache
from app.utils.dependencies import get_realtime_bus, get_user_cache


class RecordingBus:

    enabled = True

    def __init__(self) -> None:
        self.published = []

    async def publish(self, channel: str, message: str) -> None:
        self.published.append((channel, json.loads(message)))

    async def close(self) -> None:
        return


@pytest.fixture
def db():
    return AsyncMongoMockClient()["test_market"]


@pytest.fixture
def bus():
    return RecordingBus()


@pytest.fixture
def user_cache():
    return SimpleCache()


@pytest.fixture
def client(db, bus, user_cache):
    app.dependency_overrides[mongo_db_dependency] = lambda: db
    app.dependency_overrides[get_realtime_bus] = lambda: bus
    app.dependency_overrides[get_user_cache] = lambda: user_cache
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def service(db, bus, user_cache):
    return ChatService(MessageRepository(db), ConversationRepository(db), UserRepository(db, user_cache), bus)


@pytest.fixture
def users(db):
    farmer = {"_id": ObjectId(), "name": "Ravi", "email": "ravi@farm.in", "role": "farmer", "password": "x"}
    buyer = {"_id": ObjectId(), "name": "Meera", "email": "meera@buy.in", "role": "buyer", "password": "x"}
    outsider = {"_id": ObjectId(), "name": "Sam", "email": "sam@else.in", "role": "buyer", "password": "x"}
    asyncio.run(db["users"].insert_many([farmer, buyer, outsider]))
    return {"A": str(farmer["_id"]), "B": str(buyer["_id"]), "C": str(outsider["_id"])}


def as_user(user_id: str) -> dict:
    return {"X-User-Id": user_id}


def open_conversation(client, user_id: str, other_id: str, **extra) -> str:
    response = client.post("/conversations", json={"otherUserId": other_id, **extra}, headers=as_user(user_id))
    assert response.status_code == 200
    return response.json()["conversationId"]


def get_conversation(db, conversation_id: str) -> dict:
    return asyncio.run(db["conversations"].find_one({"_id": ObjectId(conversation_id)}))
