from datetime import datetime
from typing import List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from app.core.errors import StorageError
from app.models.message import MessageDocument
from app.utils.ids import id_variants


class MessageRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["messages"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("conversationId", ASCENDING), ("createdAt", ASCENDING)])
        await self.collection.create_index([("sender", ASCENDING)])
        await self.collection.create_index([("read", ASCENDING)])

    async def save_message(
        self,
        conversation_id: ObjectId,
        sender_id: str,
        content: str,
        message_type: str,
        created_at: datetime,
    ) -> MessageDocument:
        doc: MessageDocument = {
            "conversationId": conversation_id,
            "sender": sender_id,
            "content": content,
            "messageType": message_type,
            "read": False,
            "createdAt": created_at,
        }
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as exc:
            raise StorageError("Failed to save message") from exc
        doc["_id"] = result.inserted_id
        return doc

    async def get_messages_by_conversation(self, conversation_id: ObjectId) -> List[MessageDocument]:
        # ObjectIds grow with insertion order, so _id breaks createdAt ties
        sort = [("createdAt", ASCENDING), ("_id", ASCENDING)]
        try:
            cursor = self.collection.find({"conversationId": conversation_id}).sort(sort)
            return await cursor.to_list(length=None)
        except PyMongoError as exc:
            raise StorageError("Failed to load messages") from exc

    async def mark_read(self, conversation_id: ObjectId, reader_id: str) -> int:
        try:
            result = await self.collection.update_many(
                {"conversationId": conversation_id, "sender": {"$nin": id_variants(reader_id)}, "read": False},
                {"$set": {"read": True}},
            )
        except PyMongoError as exc:
            raise StorageError("Failed to mark messages read") from exc
        return result.modified_count or 0

    async def count_unread(self, conversation_id: ObjectId, user_id: str) -> int:
        try:
            return await self.collection.count_documents(
                {"conversationId": conversation_id, "sender": {"$nin": id_variants(user_id)}, "read": False}
            )
        except PyMongoError as exc:
            raise StorageError("Failed to count unread messages") from exc
